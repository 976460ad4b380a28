"""Structured logging configuration using structlog.

Reconcilers and the HTTP layer log through structlog; records are bridged
into stdlib ``logging`` so one console handler and one rotating JSON file
handler receive everything, including httpx's own records.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from datetime import datetime, timedelta
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

LOG_DIR = Path.home() / ".local" / "state" / "vcluster-ops"
LOG_FILE = LOG_DIR / "vcluster-ops.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5
RETENTION_DAYS = 30

CONSOLE_HANDLER_NAME = "vcluster-ops-console"
FILE_HANDLER_NAME = "vcluster-ops-file"

# Event keys whose values are credentials or secret payloads
SENSITIVE_KEYS = frozenset({"password", "token", "authorization", "data", "kubeconfig", "values"})
REDACTED = "***"

# Libraries that log every request at INFO
CHATTY_LOGGERS = ("httpx", "httpcore")


def redact_sensitive(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential and secret values before any renderer sees them."""
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS and event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
    redact_sensitive,
]


def _level_for(verbose: bool, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def _install_handler(handler: logging.Handler, name: str) -> None:
    """Attach ``handler`` to the root logger, replacing an earlier one of the same name."""
    handler.set_name(name)
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == name]:
        root.removeHandler(existing)
        existing.close()
    root.addHandler(handler)


def _cleanup_old_logs() -> None:
    """Delete rotated log files older than RETENTION_DAYS."""
    if not LOG_DIR.exists():
        return
    cutoff = datetime.now() - timedelta(days=RETENTION_DAYS)
    for log_file in LOG_DIR.glob(f"{LOG_FILE.name}*"):
        try:
            if datetime.fromtimestamp(log_file.stat().st_mtime) < cutoff:
                log_file.unlink()
        except OSError:
            pass  # a locked or vanished file is retried on the next run


def _setup_file_logging() -> None:
    """Attach the rotating JSON file handler; the file always records DEBUG."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    _cleanup_old_logs()

    file_handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=_SHARED_PROCESSORS,
        )
    )
    _install_handler(file_handler, FILE_HANDLER_NAME)


def configure_logging(
    verbose: bool = False,
    debug: bool = False,
    json_output: bool = False,
) -> None:
    """Configure structured logging for the CLI and the reconcilers.

    Console output goes to stderr so command output on stdout stays
    clean. Calling this again replaces the handlers it installed before.

    Args:
        verbose: Enable verbose (INFO level) output, e.g. retry and poll events.
        debug: Enable debug mode (DEBUG level), including httpx request logs.
        json_output: Render console logs as JSON.
    """
    log_level = _level_for(verbose, debug)

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=debug),
        )
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=_SHARED_PROCESSORS)
    )

    logging.getLogger().setLevel(logging.DEBUG)  # handlers filter
    _install_handler(console_handler, CONSOLE_HANDLER_NAME)
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    _setup_file_logging()


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Get a configured logger with optional initial context.

    Args:
        name: Logger name. If None, uses the calling module's name.
        **initial_context: Context variables to bind to the logger.

    Returns:
        A bound structlog logger.
    """
    logger: structlog.BoundLogger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger

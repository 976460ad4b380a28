"""Unit tests for logging configuration."""

from __future__ import annotations

import logging
import os
from collections.abc import Generator
from datetime import datetime, timedelta
from logging.handlers import RotatingFileHandler
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from vcluster_ops.logging.config import (
    CONSOLE_HANDLER_NAME,
    REDACTED,
    RETENTION_DAYS,
    _cleanup_old_logs,
    _setup_file_logging,
    configure_logging,
    get_logger,
    redact_sensitive,
)


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None]:
    """Restore root handlers and structlog defaults after each test."""
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    yield
    root.handlers = original_handlers
    structlog.reset_defaults()


def _age(path: Path, days: int) -> None:
    old_time = (datetime.now() - timedelta(days=days)).timestamp()
    os.utime(path, (old_time, old_time))


@pytest.mark.unit
class TestCleanupOldLogs:
    """Tests for _cleanup_old_logs."""

    def test_missing_log_dir(self, tmp_path: Path) -> None:
        """Nothing happens when the directory does not exist yet."""
        with patch("vcluster_ops.logging.config.LOG_DIR", tmp_path / "nonexistent"):
            _cleanup_old_logs()

    def test_expired_rotations_removed(self, tmp_path: Path) -> None:
        """Rotated files past the retention window are deleted, recent ones kept."""
        expired = tmp_path / "vcluster-ops.log.3"
        recent = tmp_path / "vcluster-ops.log"
        unrelated = tmp_path / "other.log"
        for path in (expired, recent, unrelated):
            path.write_text("line\n")
        _age(expired, RETENTION_DAYS + 5)
        _age(unrelated, RETENTION_DAYS + 5)

        with patch("vcluster_ops.logging.config.LOG_DIR", tmp_path):
            _cleanup_old_logs()

        assert not expired.exists()
        assert recent.exists()
        assert unrelated.exists()

    def test_unlink_failure_tolerated(self, tmp_path: Path) -> None:
        """A file that cannot be removed is left for the next run."""
        expired = tmp_path / "vcluster-ops.log.1"
        expired.write_text("line\n")
        _age(expired, RETENTION_DAYS + 5)

        with (
            patch("vcluster_ops.logging.config.LOG_DIR", tmp_path),
            patch.object(Path, "unlink", side_effect=OSError("permission denied")),
        ):
            _cleanup_old_logs()

        assert expired.exists()


@pytest.mark.unit
class TestSetupFileLogging:
    """Tests for _setup_file_logging."""

    def test_rotating_handler_attached(self, tmp_path: Path) -> None:
        """The log directory is created and a rotating handler added."""
        log_dir = tmp_path / "state"

        with (
            patch("vcluster_ops.logging.config.LOG_DIR", log_dir),
            patch("vcluster_ops.logging.config.LOG_FILE", log_dir / "vcluster-ops.log"),
        ):
            _setup_file_logging()

        handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
        assert log_dir.is_dir()
        assert handlers[-1].baseFilename == str(log_dir / "vcluster-ops.log")
        handlers[-1].close()


@pytest.mark.unit
class TestConfigureLogging:
    """Tests for configure_logging level selection."""

    @pytest.mark.parametrize(
        ("kwargs", "level"),
        [
            ({}, logging.WARNING),
            ({"verbose": True}, logging.INFO),
            ({"debug": True}, logging.DEBUG),
            ({"verbose": True, "debug": True}, logging.DEBUG),
        ],
    )
    def test_console_level(self, kwargs: dict[str, bool], level: int) -> None:
        """The console handler level follows the flags."""
        with patch("vcluster_ops.logging.config._setup_file_logging"):
            configure_logging(**kwargs)

        console = logging.getLogger().handlers[-1]
        assert console.level == level

    def test_json_output(self) -> None:
        """json_output switches the console renderer."""
        with patch("vcluster_ops.logging.config._setup_file_logging"):
            configure_logging(json_output=True)

        formatter = logging.getLogger().handlers[-1].formatter
        assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
        assert isinstance(formatter.processors[-1], structlog.processors.JSONRenderer)

    def test_repeated_calls_replace_console_handler(self) -> None:
        """Configuring twice leaves a single console handler."""
        with patch("vcluster_ops.logging.config._setup_file_logging"):
            configure_logging()
            configure_logging(verbose=True)

        named = [h for h in logging.getLogger().handlers if h.get_name() == CONSOLE_HANDLER_NAME]
        assert len(named) == 1
        assert named[0].level == logging.INFO

    @pytest.mark.parametrize(("debug", "level"), [(False, logging.WARNING), (True, logging.DEBUG)])
    def test_httpx_quieted_unless_debug(self, debug: bool, level: int) -> None:
        """httpx request logs only pass in debug mode."""
        with patch("vcluster_ops.logging.config._setup_file_logging"):
            configure_logging(debug=debug)

        assert logging.getLogger("httpx").level == level


@pytest.mark.unit
class TestRedactSensitive:
    """Tests for the redaction processor."""

    def test_masks_credentials(self) -> None:
        """Credential and payload keys are masked, others pass through."""
        event = {
            "event": "login",
            "password": "hunter2",
            "Authorization": "Bearer abc",
            "data": {"user": "admin"},
            "kubeconfig": "apiVersion: v1",
            "cluster": "prod",
        }

        result = redact_sensitive(None, "info", event)

        assert result == {
            "event": "login",
            "password": REDACTED,
            "Authorization": REDACTED,
            "data": REDACTED,
            "kubeconfig": REDACTED,
            "cluster": "prod",
        }

    def test_none_left_alone(self) -> None:
        """An absent value is not reported as redacted."""
        assert redact_sensitive(None, "info", {"event": "read", "token": None})["token"] is None


@pytest.mark.unit
class TestGetLogger:
    """Tests for get_logger."""

    def test_binds_initial_context(self) -> None:
        """Initial context is bound to the returned logger."""
        with structlog.testing.capture_logs() as logs:
            get_logger("test", reconciler="cluster").info("reading")

        assert logs == [{"reconciler": "cluster", "event": "reading", "log_level": "info"}]

"""Logging configuration for vcluster_ops."""

from vcluster_ops.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]

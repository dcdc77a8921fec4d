"""Utility helpers."""

from .logging import configure_from_settings, configure_logging, get_logger, LogContext, log_operation

__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "LogContext",
    "log_operation",
]

"""Structured logging for the browser recorder.

Recorder components log through structlog and bind a ``component`` key.
Pipeline stages (process, group, generate) are wrapped in ``log_operation``
so each run logs its outcome and duration in one event.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Optional

import structlog

from ..config import LogFormat, Settings


def _build_processors(json_format: bool, include_timestamp: bool) -> list:
    chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]
    if include_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    chain.append(renderer)
    return chain


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    include_timestamp: bool = True,
) -> None:
    """Route structlog through the stdlib logging module.

    Args:
        level: Level name, case-insensitive. Unknown names raise AttributeError.
        json_format: Render one JSON object per line instead of console output
        include_timestamp: Stamp each event with an ISO timestamp
    """
    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    structlog.configure(
        processors=_build_processors(json_format, include_timestamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings: Settings) -> None:
    """Configure logging from recorder settings."""
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == LogFormat.JSON,
    )


def get_logger(name: Optional[str] = None, **context) -> structlog.BoundLogger:
    """Return a logger, bound to ``context`` when any is given."""
    bound = structlog.get_logger(name)
    return bound.bind(**context) if context else bound


class LogContext:
    """Bind context variables for the duration of a ``with`` block.

    Usage:
        with LogContext(session_id="rec-123", framework="cypress"):
            generator.generate(events)
    """

    def __init__(self, **context):
        self.context = context
        self._tokens: dict = {}

    def __enter__(self) -> "LogContext":
        if self.context:
            self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._tokens:
            structlog.contextvars.reset_contextvars(**self._tokens)
            self._tokens = {}


@contextmanager
def log_operation(
    operation: str,
    logger: Optional[structlog.BoundLogger] = None,
    **context,
):
    """Log the outcome of one pipeline stage.

    Yields a dict the caller may add result fields to. ``success``,
    ``error`` and ``duration_ms`` are filled in on exit, and any exception
    is logged and re-raised.

    Example:
        with log_operation("process_events", event_count=12) as op:
            result = processor.process(events)
            op["processed_count"] = result.processed_count
    """
    log = (logger or get_logger()).bind(operation=operation, **context)
    outcome: dict[str, Any] = {"success": False, "error": None}
    started = time.perf_counter()
    log.debug("operation_started")

    try:
        yield outcome
    except Exception as e:
        outcome["error"] = str(e)
        outcome["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        log.error("operation_failed", **outcome)
        raise

    outcome["success"] = True
    outcome["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
    log.info("operation_completed", **outcome)

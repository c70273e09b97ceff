"""Bridge from the standard `logging` module to a batching sink.

The handler is never installed implicitly; the host attaches it to the logger
it wants shipped (see `attach_handler`).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from .models import LogLevel, LogRecord

# Records emitted by this package (sink/store diagnostics) are never shipped.
_OWN_LOGGER_PREFIX = "logsink"


class RecordSink(Protocol):
    def append(self, record: LogRecord) -> None: ...


def level_name(levelno: int) -> LogLevel:
    """Map a stdlib numeric level onto the stored level names."""
    if levelno >= logging.CRITICAL:
        return "fatal"
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warning"
    if levelno >= logging.INFO:
        return "info"
    if levelno >= logging.DEBUG:
        return "debug"
    return "trace"


def to_log_record(record: logging.LogRecord) -> LogRecord:
    """Convert a stdlib record, keeping its creation time rather than the handling time."""
    return LogRecord(
        event_time=datetime.fromtimestamp(record.created, tz=timezone.utc),
        level=level_name(record.levelno),
        message=record.getMessage(),
    )


class BatchingLogHandler(logging.Handler):
    """Logging handler that forwards every record to a sink's `append`."""

    def __init__(self, sink: RecordSink, level: int = logging.NOTSET) -> None:
        super().__init__(level=level)
        self._sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        if record.name == _OWN_LOGGER_PREFIX or record.name.startswith(_OWN_LOGGER_PREFIX + "."):
            return
        try:
            self._sink.append(to_log_record(record))
        except Exception:
            # Never break application logging; logging.raiseExceptions decides what is shown.
            self.handleError(record)


def attach_handler(
    sink: RecordSink,
    logger: logging.Logger | None = None,
    *,
    level: int = logging.NOTSET,
) -> BatchingLogHandler:
    """Attach a batching handler to `logger` (root by default) and return it.

    Attaching twice to the same logger returns the existing handler.
    """
    target_logger = logger or logging.getLogger()

    for existing in target_logger.handlers:
        if isinstance(existing, BatchingLogHandler) and existing._sink is sink:
            return existing

    handler = BatchingLogHandler(sink, level=level)
    target_logger.addHandler(handler)
    return handler

"""Batched log shipping into a columnar analytics store.

This package provides:
- `LogRecord`: the immutable event shape persisted as (event_time, level, message).
- `BatchingLogSink`: buffers records and writes them in one transaction per batch.
- Stores: DuckDB for persistence, in-memory for tests.
- `BatchingLogHandler`: an opt-in bridge from the standard `logging` module.

Tiering (moving aged rows to a cold volume) is configured on the store side and
is invisible here.
"""

from .errors import LogSinkError, SinkConnectionError, TransactionError
from .handler import BatchingLogHandler, attach_handler
from .models import LogRecord
from .sink import BatchingLogSink, LockedLogSink
from .stores import DuckDBLogStore, InMemoryLogStore, LogStore, StoreTarget, open_store

__all__ = [
    "BatchingLogHandler",
    "BatchingLogSink",
    "DuckDBLogStore",
    "InMemoryLogStore",
    "LockedLogSink",
    "LogRecord",
    "LogSinkError",
    "LogStore",
    "SinkConnectionError",
    "StoreTarget",
    "TransactionError",
    "attach_handler",
    "open_store",
]

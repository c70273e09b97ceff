"""Batching log sink.

The sink buffers `LogRecord`s in memory and writes them to a `LogStore` as one
transaction per batch:

- `append()` is the only place the batch threshold is evaluated; crossing it
  flushes synchronously before `append()` returns.
- `flush()` is all-or-nothing. A failed batch is rolled back and stays
  buffered, so the next flush retries it together with anything appended since.
- There is no background timer and no internal locking. Call `close()` (or use
  the sink as a context manager) before exit so a partial batch is not lost.

Use `LockedLogSink` when more than one thread produces records.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from types import TracebackType
from typing import Any

from .errors import FlushStage, LogSinkError, SinkConnectionError, TransactionError
from .models import LogRecord, SinkState, utc_now
from .stores import LogStore, StoreTarget, open_store

logger = logging.getLogger(__name__)


class BatchingLogSink:
    """Buffers log records and persists them in transactional batches."""

    def __init__(self, target: StoreTarget | LogStore, *, batch_size: int) -> None:
        """Open the store and verify it is reachable.

        Args:
            target: Where to connect, or an already-opened store (tests, custom backends).
            batch_size: Number of buffered records that triggers a flush (>= 1).

        Raises:
            ValueError: `batch_size` is not a positive integer.
            SinkConnectionError: the store could not be opened or did not answer a ping.
        """
        if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
            raise ValueError(f"batch_size must be a positive integer. Got: {batch_size!r}")

        if isinstance(target, StoreTarget):
            name = target.describe()
            store = open_store(target)
        else:
            name = type(target).__name__
            store = target

        try:
            store.ping()
        except Exception as exc:  # noqa: BLE001 - any ping failure is a failed handshake
            store.close()
            raise SinkConnectionError(target=name, reason=str(exc)) from exc

        self._name = name
        self._store = store
        self._batch_size = batch_size
        self._buffer: list[LogRecord] = []
        self._state: SinkState = "idle"
        self._closed = False

        self._batches_flushed = 0
        self._records_flushed = 0
        self._flush_failures = 0
        self._last_failure_at: datetime | None = None

        logger.info("Log sink connected to %s (batch_size=%d)", name, batch_size)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def pending(self) -> int:
        """Number of records buffered and not yet committed."""
        return len(self._buffer)

    @property
    def state(self) -> SinkState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise LogSinkError(f"Log sink for {self._name} is closed")

    def append(self, record: LogRecord) -> None:
        """Buffer a record, flushing synchronously once the batch threshold is reached.

        Raises:
            TransactionError: the triggered flush failed (the record stays buffered).
        """
        self._ensure_open()
        self._buffer.append(record)
        # A re-entrant append (e.g. from a log handler while a flush is running) only buffers.
        if len(self._buffer) >= self._batch_size and self._state == "idle":
            self.flush()

    def flush(self) -> None:
        """Write every buffered record in one transaction.

        An empty buffer is a no-op that never touches the store. A re-entrant
        call made while a flush is already running returns immediately without
        writing; its records go out with the next flush.

        Raises:
            TransactionError: begin, an insert, or commit failed. The transaction
                is rolled back and the buffer is left intact.
        """
        self._ensure_open()
        if not self._buffer or self._state == "flushing":
            return

        batch = list(self._buffer)
        self._state = "flushing"
        stage: FlushStage = "begin"
        began = False
        try:
            self._store.begin()
            began = True
            stage = "insert"
            for record in batch:
                self._store.insert(*record.as_row())
            stage = "commit"
            self._store.commit()
        except Exception as exc:  # noqa: BLE001 - surfaced to the caller as TransactionError
            self._flush_failures += 1
            self._last_failure_at = utc_now()
            if began:
                self._rollback()
            logger.warning(
                "Log batch of %d record(s) to %s failed at %s: %s", len(batch), self._name, stage, exc
            )
            raise TransactionError(stage=stage, batch_size=len(batch), reason=str(exc)) from exc
        finally:
            self._state = "idle"

        # Records appended re-entrantly during the flush stay buffered.
        del self._buffer[: len(batch)]
        self._batches_flushed += 1
        self._records_flushed += len(batch)
        logger.debug("Flushed %d log record(s) to %s", len(batch), self._name)

    def _rollback(self) -> None:
        """Abort the open transaction; a rollback failure must not mask the original error."""
        try:
            self._store.rollback()
        except Exception as exc:  # noqa: BLE001 - the flush error is what the caller needs
            logger.warning("Rollback on %s failed: %s", self._name, exc)

    def close(self) -> None:
        """Flush any remaining records and release the store.

        The store is released even when the final flush fails. Safe to call
        multiple times.
        """
        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._closed = True
            self._store.close()
            logger.info("Log sink for %s closed (%d record(s) unflushed)", self._name, len(self._buffer))

    def stats(self) -> dict[str, Any]:
        """Return a snapshot of flush counters."""
        return {
            "batches_flushed": self._batches_flushed,
            "records_flushed": self._records_flushed,
            "flush_failures": self._flush_failures,
            "last_failure_at": self._last_failure_at,
            "pending": len(self._buffer),
        }

    def __enter__(self) -> BatchingLogSink:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class LockedLogSink:
    """Serializes access to a `BatchingLogSink` for multiple producer threads.

    Uses a re-entrant lock so a handler that logs from inside a flush on the
    same thread buffers instead of deadlocking.
    """

    def __init__(self, sink: BatchingLogSink) -> None:
        """Wrap an existing sink; the wrapper becomes its only caller."""
        self._sink = sink
        self._lock = threading.RLock()

    @property
    def sink(self) -> BatchingLogSink:
        return self._sink

    @property
    def pending(self) -> int:
        with self._lock:
            return self._sink.pending

    def append(self, record: LogRecord) -> None:
        with self._lock:
            self._sink.append(record)

    def flush(self) -> None:
        with self._lock:
            self._sink.flush()

    def close(self) -> None:
        with self._lock:
            self._sink.close()

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return self._sink.stats()

    def __enter__(self) -> LockedLogSink:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

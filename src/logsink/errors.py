"""Errors raised by the log sink and its stores."""

from __future__ import annotations

from typing import Literal

FlushStage = Literal["begin", "insert", "commit"]


class LogSinkError(RuntimeError):
    """Base class for log sink failures."""


class SinkConnectionError(LogSinkError, ConnectionError):
    """The store was unreachable or rejected the handshake at construction time."""

    def __init__(self, *, target: str, reason: str):
        """Create an error naming the store target and the underlying reason."""
        self.target = target
        self.reason = reason
        super().__init__(f"Failed to connect to log store {target!r}: {reason}")


class TransactionError(LogSinkError):
    """A batch could not be written; nothing from the batch was committed."""

    def __init__(self, *, stage: FlushStage, batch_size: int, reason: str):
        """Create an error capturing the failing stage and the size of the aborted batch."""
        self.stage = stage
        self.batch_size = batch_size
        self.reason = reason
        super().__init__(f"Log batch of {batch_size} record(s) failed at {stage}: {reason}")

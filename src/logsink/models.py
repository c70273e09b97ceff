"""Log record models.

Records are designed to be:
- Immutable once captured (the sink only buffers and forwards them).
- Shaped exactly like the target relation: event time, level, message.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


# logrus level names: "warning" rather than "warn", plus "panic".
LogLevel = Literal["trace", "debug", "info", "warning", "error", "fatal", "panic"]

SinkState = Literal["idle", "flushing"]


class LogRecord(BaseModel):
    """One observed event, as persisted into the log table."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    # Capture time; the store never assigns it.
    event_time: datetime = Field(default_factory=utc_now)

    level: LogLevel = "info"

    message: str

    def as_row(self) -> tuple[datetime, str, str]:
        """Return the `(event_time, level, message)` triple in insert column order."""
        return self.event_time, self.level, self.message

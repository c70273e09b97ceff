from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from logsink import InMemoryLogStore, LogRecord

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _make_records(count: int, *, start: int = 0) -> list[LogRecord]:
    """Records with sequential timestamps and messages `entry-<i>`."""
    return [
        LogRecord(event_time=BASE_TIME + timedelta(seconds=i), level="info", message=f"entry-{i}")
        for i in range(start, start + count)
    ]


@pytest.fixture
def make_records():
    return _make_records


@pytest.fixture
def store() -> InMemoryLogStore:
    return InMemoryLogStore()


@pytest.fixture(autouse=True)
def _isolated_logsink_env(monkeypatch: pytest.MonkeyPatch):
    """Keep a developer's `.env` / shell settings out of unit tests."""
    monkeypatch.setattr("config.dotenv.load_dotenv", lambda *args, **kwargs: False)
    for name in [
        "LOGSINK_DATABASE",
        "LOGSINK_TABLE",
        "LOGSINK_READ_ONLY",
        "LOGSINK_CREATE_TABLE",
        "LOGSINK_MOTHERDUCK_TOKEN",
        "LOGSINK_BATCH_SIZE",
        "DEMO_ENTRY_COUNT",
        "DEMO_INTERVAL_S",
    ]:
        monkeypatch.delenv(name, raising=False)
    yield

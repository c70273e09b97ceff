"""Log stores (transactional row-insert targets)."""

from __future__ import annotations

import logging
import threading
from collections.abc import Collection, Sequence
from datetime import datetime, timezone
from typing import Literal, Protocol

import duckdb
from pydantic import BaseModel, ConfigDict, Field

from .errors import SinkConnectionError

logger = logging.getLogger(__name__)

TARGET_TABLE = "tiered_logs"

Row = tuple[datetime, str, str]
StoreStage = Literal["ping", "begin", "insert", "commit", "rollback"]


class StoreTarget(BaseModel):
    """Where the sink writes: an embedded file, `:memory:`, or a DSN-style URI."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    database: str = Field(..., min_length=1, description="Database path, ':memory:' or URI (e.g. 'md:logs')")
    read_only: bool = Field(default=False, description="Open without write access (inserts will fail)")
    settings: dict[str, str] = Field(default_factory=dict, description="Engine settings, including credentials")
    table: str = Field(default=TARGET_TABLE, pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    create_table: bool = Field(default=False, description="Create the log table if it does not exist")

    def describe(self) -> str:
        """Return a printable target name that never includes settings (may hold secrets)."""
        return f"{self.database}/{self.table}"


class LogStore(Protocol):
    """A synchronous, transactional sink for log rows.

    One store instance is owned by exactly one sink; implementations need not be
    thread-safe.
    """

    def ping(self) -> None:
        """Round-trip to the store; raise if it is unusable."""

    def begin(self) -> None:
        """Start a transaction."""

    def insert(self, event_time: datetime, level: str, message: str) -> None:
        """Insert one row inside the current transaction."""

    def commit(self) -> None:
        """Commit the current transaction."""

    def rollback(self) -> None:
        """Abort the current transaction."""

    def close(self) -> None:
        """Release the underlying connection."""


def _to_utc_naive(value: datetime) -> datetime:
    """Normalize to naive UTC so the TIMESTAMP column holds UTC wall time."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class DuckDBLogStore:
    """DuckDB-backed columnar store.

    The insert names all three columns explicitly and never relies on
    server-side defaults.
    """

    def __init__(self, target: StoreTarget) -> None:
        """Open a connection to the target; raises `SinkConnectionError` if it cannot be opened."""
        self._target = target
        try:
            self._conn = duckdb.connect(target.database, read_only=target.read_only, config=dict(target.settings))
        except duckdb.Error as exc:
            raise SinkConnectionError(target=target.describe(), reason=str(exc)) from exc
        self._insert_sql = f"insert into {target.table} (event_time, level, message) values (?, ?, ?)"
        logger.debug("Opened DuckDB log store %s", target.describe())
        if target.create_table:
            try:
                self._ensure_table()
            except duckdb.Error as exc:
                self._conn.close()
                raise SinkConnectionError(target=target.describe(), reason=str(exc)) from exc

    def _ensure_table(self) -> None:
        """Create the log table if it does not exist yet."""
        self._conn.execute(
            f"""
            create table if not exists {self._target.table} (
              event_time timestamp not null,
              level varchar not null,
              message varchar not null
            )
            """
        )

    def ping(self) -> None:
        self._conn.execute("select 1").fetchone()

    def begin(self) -> None:
        self._conn.begin()

    def insert(self, event_time: datetime, level: str, message: str) -> None:
        self._conn.execute(self._insert_sql, [_to_utc_naive(event_time), level, message])

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self._conn.close()


class InMemoryLogStore:
    """In-memory store for tests and local debugging.

    Rows are staged per transaction and only become visible on commit. Failures
    can be simulated per stage via `fail_at` (mutable between calls).
    """

    def __init__(self, *, fail_at: Collection[StoreStage] = ()) -> None:
        """Create an empty store that fails at the given stages."""
        self.fail_at: set[StoreStage] = set(fail_at)
        self._lock = threading.Lock()
        self._staged: list[Row] | None = None
        self._batches: list[list[Row]] = []
        self.calls: list[StoreStage] = []
        self.closed = False

    def _step(self, stage: StoreStage) -> None:
        self.calls.append(stage)
        if self.closed:
            raise RuntimeError("store is closed")
        if stage in self.fail_at:
            raise RuntimeError(f"simulated {stage} failure")

    def ping(self) -> None:
        self._step("ping")

    def begin(self) -> None:
        self._step("begin")
        if self._staged is not None:
            raise RuntimeError("transaction already open")
        self._staged = []

    def insert(self, event_time: datetime, level: str, message: str) -> None:
        self._step("insert")
        if self._staged is None:
            raise RuntimeError("insert outside of a transaction")
        self._staged.append((event_time, level, message))

    def commit(self) -> None:
        self._step("commit")
        if self._staged is None:
            raise RuntimeError("commit outside of a transaction")
        with self._lock:
            self._batches.append(self._staged)
        self._staged = None

    def rollback(self) -> None:
        self._staged = None
        self._step("rollback")

    def close(self) -> None:  # noqa: D401 - keep interface consistent
        """Mark the store closed."""
        self.closed = True

    def batches(self) -> Sequence[list[Row]]:
        """Return a point-in-time copy of every committed batch."""
        with self._lock:
            return [list(batch) for batch in self._batches]

    def rows(self) -> Sequence[Row]:
        """Return every committed row in commit order."""
        with self._lock:
            return [row for batch in self._batches for row in batch]


def open_store(target: StoreTarget) -> LogStore:
    """Open the store backend for a target."""
    return DuckDBLogStore(target)

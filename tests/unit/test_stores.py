from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import duckdb
import pydantic
import pytest

from logsink import BatchingLogSink, DuckDBLogStore, LogRecord, SinkConnectionError, StoreTarget, TransactionError


def _read_rows(path: Path, table: str = "tiered_logs") -> list[tuple[datetime, str, str]]:
    conn = duckdb.connect(str(path))
    try:
        return conn.execute(f"select event_time, level, message from {table} order by event_time").fetchall()
    finally:
        conn.close()


def test_duckdb_sink_writes_batches_in_order(tmp_path: Path, make_records) -> None:
    db_path = tmp_path / "logs.duckdb"
    target = StoreTarget(database=str(db_path), create_table=True)
    records = make_records(7)

    with BatchingLogSink(target, batch_size=5) as sink:
        for record in records:
            sink.append(record)
        assert sink.pending == 2

    rows = _read_rows(db_path)
    assert [message for _t, _l, message in rows] == [f"entry-{i}" for i in range(7)]
    assert rows[0] == (datetime(2024, 1, 1), "info", "entry-0")


def test_duckdb_stores_event_time_as_utc(tmp_path: Path) -> None:
    db_path = tmp_path / "logs.duckdb"
    target = StoreTarget(database=str(db_path), create_table=True)
    plus_two = timezone(timedelta(hours=2))

    with BatchingLogSink(target, batch_size=1) as sink:
        sink.append(LogRecord(event_time=datetime(2024, 6, 1, 12, 0, tzinfo=plus_two), level="error", message="boom"))

    assert _read_rows(db_path) == [(datetime(2024, 6, 1, 10, 0), "error", "boom")]


def test_duckdb_failed_insert_commits_nothing(tmp_path: Path, make_records) -> None:
    db_path = tmp_path / "logs.duckdb"
    setup = duckdb.connect(str(db_path))
    setup.execute(
        """
        create table tiered_logs (
          event_time timestamp not null,
          level varchar not null,
          message varchar not null check (message <> 'reject-me')
        )
        """
    )
    setup.close()

    sink = BatchingLogSink(StoreTarget(database=str(db_path)), batch_size=3)
    sink.append(make_records(1)[0])
    sink.append(LogRecord(message="reject-me"))
    with pytest.raises(TransactionError) as excinfo:
        sink.append(make_records(1, start=1)[0])
    assert excinfo.value.stage == "insert"
    assert sink.pending == 3

    # The retained batch still holds the bad row, so the final flush fails too.
    with pytest.raises(TransactionError):
        sink.close()

    assert _read_rows(db_path) == []


def test_duckdb_missing_table_surfaces_as_transaction_error(tmp_path: Path, make_records) -> None:
    sink = BatchingLogSink(StoreTarget(database=str(tmp_path / "empty.duckdb")), batch_size=1)

    with pytest.raises(TransactionError) as excinfo:
        sink.append(make_records(1)[0])

    assert excinfo.value.stage == "insert"
    assert isinstance(excinfo.value.__cause__, duckdb.Error)

    with pytest.raises(TransactionError):
        sink.close()
    assert sink.closed


def test_duckdb_unreachable_target_fails_fast(tmp_path: Path) -> None:
    target = StoreTarget(database=str(tmp_path / "missing-dir" / "logs.duckdb"))

    with pytest.raises(SinkConnectionError) as excinfo:
        BatchingLogSink(target, batch_size=5)

    assert isinstance(excinfo.value, ConnectionError)
    assert "missing-dir" in excinfo.value.target


def test_duckdb_in_memory_target_with_custom_table() -> None:
    target = StoreTarget(database=":memory:", table="app_logs", create_table=True)
    store = DuckDBLogStore(target)
    try:
        store.ping()
        store.begin()
        store.insert(datetime(2024, 1, 1, tzinfo=timezone.utc), "info", "hello")
        store.commit()
    finally:
        store.close()


@pytest.mark.parametrize("table", ["", "logs; drop table x", "1logs", "tiered-logs"])
def test_store_target_rejects_unsafe_table_names(table: str) -> None:
    with pytest.raises(pydantic.ValidationError):
        StoreTarget(database=":memory:", table=table)


def test_store_target_description_hides_settings() -> None:
    target = StoreTarget(database="md:logs", settings={"motherduck_token": "secret-token"})

    assert target.describe() == "md:logs/tiered_logs"
    assert "secret-token" not in target.describe()

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from wundradb.schema import Column, DataKind, Row, SqlDataType, TableSchema
from wundradb.wal import CreateTable, Insert, WalEntry, WriteAheadLog


def _insert_entry(table, key, values, timestamp=None):
    return WalEntry(
        id=uuid.uuid4(),
        timestamp=timestamp or datetime.now(timezone.utc),
        operation=Insert(table=table, key=key, row=Row(values)),
    )


@pytest.fixture
def wal_path(tmp_path):
    return tmp_path / "test.wal"


def test_new_creates_file(wal_path):
    WriteAheadLog(wal_path)
    assert wal_path.exists()
    assert wal_path.stat().st_size == 0


def test_wal_append_and_replay(wal_path):
    wal = WriteAheadLog(wal_path)
    entry = _insert_entry("users", "users:1", {"id": 1, "name": "Alice"})
    wal.append(entry)

    new_wal = WriteAheadLog(wal_path)
    entries = new_wal.replay()

    assert len(entries) == 1
    assert entries[0].id == entry.id
    operation = entries[0].operation
    assert isinstance(operation, Insert)
    assert operation.table == "users"
    assert operation.key == "users:1"
    assert operation.row.values == {"id": 1, "name": "Alice"}
    assert new_wal.entry_count() == 1


def test_wal_create_table(wal_path):
    wal = WriteAheadLog(wal_path)
    schema = TableSchema(
        name="users",
        columns=[
            Column("id", SqlDataType(DataKind.INTEGER), nullable=False, primary_key=True),
            Column("name", SqlDataType(DataKind.VARCHAR, length=100), nullable=False),
        ],
    )
    wal.append(WalEntry.create(CreateTable(schema)))

    entries = WriteAheadLog(wal_path).replay()

    assert len(entries) == 1
    operation = entries[0].operation
    assert isinstance(operation, CreateTable)
    assert operation.schema.name == "users"
    assert len(operation.schema.columns) == 2
    assert operation.schema == schema


def test_wal_multiple_entries(wal_path):
    wal = WriteAheadLog(wal_path)
    for i in range(1, 6):
        wal.append(_insert_entry("users", f"users:{i}", {"id": i, "name": f"User{i}"}))

    entries = WriteAheadLog(wal_path).replay()

    assert len(entries) == 5
    for i, entry in enumerate(entries, start=1):
        assert isinstance(entry.operation, Insert)
        assert entry.operation.table == "users"
        assert entry.operation.key == f"users:{i}"


def test_wal_sync_and_checkpoint(wal_path):
    wal = WriteAheadLog(wal_path)
    wal.append(_insert_entry("users", "users:1", {"id": 1}))

    wal.sync()
    wal.checkpoint()

    assert wal.entry_count() == 1
    assert len(WriteAheadLog(wal_path).replay()) == 1


def test_sync_missing_file_raises(wal_path):
    wal = WriteAheadLog(wal_path)
    wal_path.unlink()
    with pytest.raises(FileNotFoundError):
        wal.sync()


def test_wal_truncate(wal_path):
    wal = WriteAheadLog(wal_path)
    wal.append(_insert_entry("users", "users:1", {"id": 1}))
    assert wal.entry_count() == 1

    wal.truncate()

    assert wal.entry_count() == 0
    assert wal_path.stat().st_size == 0
    assert WriteAheadLog(wal_path).replay() == []


def test_wal_filter_methods(wal_path):
    wal = WriteAheadLog(wal_path)
    now = datetime.now(timezone.utc)
    for table, i in [("users", 1), ("products", 2), ("users", 3)]:
        wal.append(
            _insert_entry(table, f"{table}:{i}", {"id": i}, now + timedelta(seconds=i))
        )

    assert len(wal.entries_for_table("users")) == 2
    assert len(wal.entries_for_table("products")) == 1
    assert len(wal.entries_since(now + timedelta(seconds=2))) == 1


def test_entries_for_table_includes_create_table(wal_path):
    wal = WriteAheadLog(wal_path)
    wal.append(WalEntry.create(CreateTable(TableSchema(name="orders"))))
    wal.append(_insert_entry("orders", "orders:1", {"id": 1}))
    wal.append(_insert_entry("users", "users:1", {"id": 1}))

    matched = wal.entries_for_table("orders")
    assert [type(e.operation) for e in matched] == [CreateTable, Insert]


def test_entries_property_is_snapshot(wal_path):
    wal = WriteAheadLog(wal_path)
    first = _insert_entry("users", "users:1", {"id": 1})
    wal.append(first)
    snapshot = wal.entries
    wal.append(_insert_entry("users", "users:2", {"id": 2}))
    assert snapshot == (first,)
    assert len(wal.entries) == 2


def test_entry_bytes_round_trip():
    entry = _insert_entry("users", "users:7", {"id": 7, "score": 1.25, "ok": None})
    assert WalEntry.from_bytes(entry.to_bytes()) == entry


def test_entry_from_bytes_rejects_unknown_operation():
    bad = (
        b'{"id":"' + str(uuid.uuid4()).encode() + b'",'
        b'"timestamp":"2024-01-01T00:00:00+00:00","operation":{"Delete":{}}}'
    )
    with pytest.raises(ValueError):
        WalEntry.from_bytes(bad)


def test_replay_ignores_partial_length_prefix(wal_path):
    wal = WriteAheadLog(wal_path)
    wal.append(_insert_entry("users", "users:1", {"id": 1}))
    with wal_path.open("ab") as handle:
        handle.write(b"\x01\x00")
    assert len(WriteAheadLog(wal_path).replay()) == 1


def test_replay_rejects_truncated_record(wal_path):
    wal = WriteAheadLog(wal_path)
    wal.append(_insert_entry("users", "users:1", {"id": 1}))
    with wal_path.open("ab") as handle:
        handle.write(b"\x10\x00\x00\x00ab")
    with pytest.raises(ValueError):
        WriteAheadLog(wal_path).replay()


def test_replay_missing_file_returns_empty(wal_path):
    wal = WriteAheadLog(wal_path)
    wal_path.unlink()
    assert wal.replay() == []
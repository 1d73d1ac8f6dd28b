"""Write-ahead log of table creations and row inserts."""

from __future__ import annotations

import json
import logging
import os
import struct
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple, Union

from wundradb.schema import Row, TableSchema

logger = logging.getLogger(__name__)

_SIZE = struct.Struct("<I")


@dataclass(frozen=True)
class CreateTable:
    """A table was created with this schema."""

    schema: TableSchema


@dataclass(frozen=True)
class Insert:
    """A row was stored under a key in a table."""

    table: str
    key: str
    row: Row


WalOperation = Union[CreateTable, Insert]


def _encode_operation(operation: WalOperation) -> Dict[str, Any]:
    match operation:
        case CreateTable(schema=schema):
            return {"CreateTable": schema.to_dict()}
        case Insert(table=table, key=key, row=row):
            return {"Insert": {"table": table, "key": key, "row": row.to_dict()}}
    raise TypeError(f"unsupported WAL operation: {operation!r}")


def _decode_operation(data: Any) -> WalOperation:
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"invalid WAL operation: {data!r}")
    ((tag, payload),) = data.items()
    try:
        if tag == "CreateTable":
            return CreateTable(TableSchema.from_dict(payload))
        if tag == "Insert":
            return Insert(
                table=str(payload["table"]),
                key=str(payload["key"]),
                row=Row.from_dict(payload["row"]),
            )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"invalid WAL operation: {data!r}") from exc
    raise ValueError(f"unknown WAL operation: {tag!r}")


@dataclass(frozen=True)
class WalEntry:
    """One logged operation with its id and time."""

    id: uuid.UUID
    timestamp: datetime
    operation: WalOperation

    @classmethod
    def create(cls, operation: WalOperation) -> "WalEntry":
        """Make an entry with a fresh id, stamped now."""
        return cls(uuid.uuid4(), datetime.now(timezone.utc), operation)

    def to_bytes(self) -> bytes:
        record = {
            "id": str(self.id),
            "timestamp": self.timestamp.isoformat(),
            "operation": _encode_operation(self.operation),
        }
        return json.dumps(record, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "WalEntry":
        record = json.loads(data.decode("utf-8"))
        try:
            return cls(
                id=uuid.UUID(record["id"]),
                timestamp=datetime.fromisoformat(record["timestamp"]),
                operation=_decode_operation(record["operation"]),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid WAL entry: {record!r}") from exc


def _decode_records(data: bytes) -> Iterator[WalEntry]:
    offset = 0
    while len(data) - offset >= _SIZE.size:
        (size,) = _SIZE.unpack_from(data, offset)
        offset += _SIZE.size
        end = offset + size
        if end > len(data):
            raise ValueError(
                f"truncated WAL record at byte {offset - _SIZE.size}: "
                f"expected {size} bytes, found {len(data) - offset}"
            )
        yield WalEntry.from_bytes(data[offset:end])
        offset = end


class WriteAheadLog:
    """An append-only file of length-prefixed entries, with an in-memory copy."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path)
        self._entries: List[WalEntry] = []
        if not self.path.exists():
            self.path.open("ab").close()

    def append(self, entry: WalEntry) -> None:
        """Write the entry durably, then remember it."""
        payload = entry.to_bytes()
        with self.path.open("ab") as handle:
            handle.write(_SIZE.pack(len(payload)))
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        self._entries.append(entry)

    def replay(self) -> List[WalEntry]:
        """Read every entry from the file; a partial length prefix at the end is ignored."""
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return []
        if not data:
            return []
        entries = list(_decode_records(data))
        self._entries = list(entries)
        return entries

    def sync(self) -> None:
        """Force the log file to disk."""
        with self.path.open("r+b") as handle:
            os.fsync(handle.fileno())

    def truncate(self) -> None:
        """Empty the log file and forget all entries."""
        with self.path.open("r+b") as handle:
            handle.truncate(0)
            handle.flush()
            os.fsync(handle.fileno())
        self._entries.clear()

    @property
    def entries(self) -> Tuple[WalEntry, ...]:
        return tuple(self._entries)

    def entry_count(self) -> int:
        return len(self._entries)

    def checkpoint(self) -> None:
        """Sync the log and record that a checkpoint happened."""
        self.sync()
        logger.info("WAL checkpoint completed with %d entries", self.entry_count())

    def entries_since(self, timestamp: datetime) -> List[WalEntry]:
        """Entries stamped strictly after the given time."""
        return [entry for entry in self._entries if entry.timestamp > timestamp]

    def entries_for_table(self, table_name: str) -> List[WalEntry]:
        """Entries that create or insert into the named table."""
        result = []
        for entry in self._entries:
            match entry.operation:
                case CreateTable(schema=schema) if schema.name == table_name:
                    result.append(entry)
                case Insert(table=table) if table == table_name:
                    result.append(entry)
        return result
"""Table schemas, column types, rows and the SQL values they hold."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

SqlValue = Union[int, str, float, bool, datetime, None]

_U8_MAX = 0xFF
_U32_MAX = 0xFFFFFFFF


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class DataKind(Enum):
    """The families of column type a table may declare."""

    INTEGER = "Integer"
    VARCHAR = "Varchar"
    BOOLEAN = "Boolean"
    DECIMAL = "Decimal"
    TIMESTAMP = "Timestamp"


@dataclass(frozen=True)
class SqlDataType:
    """A column type; VARCHAR carries a length, DECIMAL a precision and scale."""

    kind: DataKind
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, DataKind):
            raise TypeError(f"kind must be a DataKind, not {type(self.kind).__name__}")
        if self.kind is DataKind.VARCHAR:
            if not _is_int(self.length) or not 0 <= self.length <= _U32_MAX:
                raise ValueError(f"invalid VARCHAR length: {self.length!r}")
            if self.precision is not None or self.scale is not None:
                raise ValueError("VARCHAR takes no precision or scale")
        elif self.kind is DataKind.DECIMAL:
            for name, number in (("precision", self.precision), ("scale", self.scale)):
                if not _is_int(number) or not 0 <= number <= _U8_MAX:
                    raise ValueError(f"invalid DECIMAL {name}: {number!r}")
            if self.length is not None:
                raise ValueError("DECIMAL takes no length")
        elif (self.length, self.precision, self.scale) != (None, None, None):
            raise ValueError(f"{self.kind.value} takes no parameters")

    def __str__(self) -> str:
        if self.kind is DataKind.VARCHAR:
            return f"Varchar({self.length})"
        if self.kind is DataKind.DECIMAL:
            return f"Decimal({self.precision}, {self.scale})"
        return self.kind.value

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value}
        if self.kind is DataKind.VARCHAR:
            data["length"] = self.length
        elif self.kind is DataKind.DECIMAL:
            data["precision"] = self.precision
            data["scale"] = self.scale
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SqlDataType":
        try:
            kind = DataKind(data["kind"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"invalid data type: {data!r}") from exc
        return cls(
            kind,
            length=data.get("length"),
            precision=data.get("precision"),
            scale=data.get("scale"),
        )


@dataclass
class Column:
    """One column of a table."""

    name: str
    data_type: SqlDataType
    nullable: bool = False
    primary_key: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "data_type": self.data_type.to_dict(),
            "nullable": self.nullable,
            "primary_key": self.primary_key,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        try:
            return cls(
                name=str(data["name"]),
                data_type=SqlDataType.from_dict(data["data_type"]),
                nullable=bool(data["nullable"]),
                primary_key=bool(data["primary_key"]),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid column: {data!r}") from exc


@dataclass
class TableSchema:
    """A table's name and its columns in declaration order."""

    name: str
    columns: List[Column] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "columns": [c.to_dict() for c in self.columns]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableSchema":
        try:
            return cls(
                name=str(data["name"]),
                columns=[Column.from_dict(c) for c in data["columns"]],
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid table schema: {data!r}") from exc


@dataclass
class Row:
    """A stored row: column name to value."""

    values: Dict[str, SqlValue] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"values": {name: encode_value(v) for name, v in self.values.items()}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Row":
        try:
            values = data["values"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid row: {data!r}") from exc
        if not isinstance(values, dict):
            raise ValueError(f"invalid row values: {values!r}")
        return cls({str(name): decode_value(v) for name, v in values.items()})

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Row":
        return cls.from_dict(json.loads(data.decode("utf-8")))


def _format_float(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    text = format(Decimal(repr(number)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _format_timestamp(moment: datetime) -> str:
    moment = _as_utc(moment)
    base = moment.strftime("%Y-%m-%dT%H:%M:%S")
    micros = moment.microsecond
    if micros == 0:
        fraction = ""
    elif micros % 1000 == 0:
        fraction = f".{micros // 1000:03d}"
    else:
        fraction = f".{micros:06d}"
    return f"{base}{fraction}+00:00"


def value_to_string(value: SqlValue) -> str:
    """Render a value the way query results and row keys show it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return _format_timestamp(value)
    raise TypeError(f"unsupported SQL value: {value!r}")


def encode_value(value: SqlValue) -> Dict[str, Any]:
    """Turn a value into a JSON-ready dict tagged with its SQL type."""
    if value is None:
        return {"Null": None}
    if isinstance(value, bool):
        return {"Boolean": value}
    if isinstance(value, int):
        return {"Integer": value}
    if isinstance(value, float):
        return {"Decimal": value}
    if isinstance(value, str):
        return {"Varchar": value}
    if isinstance(value, datetime):
        return {"Timestamp": _as_utc(value).isoformat()}
    raise TypeError(f"unsupported SQL value: {value!r}")


def decode_value(data: Dict[str, Any]) -> SqlValue:
    """Inverse of encode_value."""
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"invalid encoded value: {data!r}")
    ((tag, payload),) = data.items()
    if tag == "Null" and payload is None:
        return None
    if tag == "Boolean" and isinstance(payload, bool):
        return payload
    if tag == "Integer" and _is_int(payload):
        return payload
    if tag == "Decimal" and (_is_int(payload) or isinstance(payload, float)):
        return float(payload)
    if tag == "Varchar" and isinstance(payload, str):
        return payload
    if tag == "Timestamp" and isinstance(payload, str):
        return _as_utc(datetime.fromisoformat(payload))
    raise ValueError(f"invalid encoded value: {data!r}")
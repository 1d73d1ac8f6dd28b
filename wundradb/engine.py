"""Executes parsed SQL against the B+ tree storage and the write-ahead log."""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Dict, List, Sequence, Union

from wundradb.bptree import BPlusTree
from wundradb.schema import (
    Column,
    DataKind,
    Row,
    SqlDataType,
    SqlValue,
    TableSchema,
    value_to_string,
)
from wundradb.sqlparse import (
    WILDCARD,
    CreateTableStatement,
    Expression,
    Identifier,
    InsertStatement,
    Literal,
    ParseError,
    SelectStatement,
    TypeName,
    parse_sql,
)
from wundradb.wal import CreateTable, Insert, WalEntry, WriteAheadLog

logger = logging.getLogger(__name__)

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


class SqlError(Exception):
    """A statement could not be executed."""


def _convert_type(type_name: TypeName) -> SqlDataType:
    name, args = type_name.name, type_name.args
    if name in ("INT", "INTEGER") and len(args) <= 1:
        return SqlDataType(DataKind.INTEGER)
    if name in ("VARCHAR", "CHAR") and len(args) <= 1:
        return SqlDataType(DataKind.VARCHAR, length=args[0] if args else 255)
    if name == "BOOLEAN" and not args:
        return SqlDataType(DataKind.BOOLEAN)
    if name == "DECIMAL":
        if not args:
            return SqlDataType(DataKind.DECIMAL, precision=10, scale=2)
        if len(args) == 1:
            return SqlDataType(DataKind.DECIMAL, precision=args[0] & 0xFF, scale=0)
        if len(args) == 2:
            return SqlDataType(DataKind.DECIMAL, precision=args[0] & 0xFF, scale=args[1] & 0xFF)
    if name == "TIMESTAMP" and len(args) <= 1:
        return SqlDataType(DataKind.TIMESTAMP)
    raise SqlError(f"Unsupported data type: {type_name}")


def _convert_value(literal: Literal) -> SqlValue:
    if literal.kind == "number":
        text = str(literal.value)
        if "." in text:
            try:
                return float(text)
            except ValueError as exc:
                raise SqlError(f"invalid number: {text}") from exc
        number = int(text)
        if not _I64_MIN <= number <= _I64_MAX:
            raise SqlError(f"number too large to fit in target type: {text}")
        return number
    if literal.kind == "string":
        return str(literal.value)
    if literal.kind == "boolean":
        return bool(literal.value)
    if literal.kind == "null":
        return None
    raise SqlError(f"Unsupported value type: {literal!r}")


class SqlEngine:
    """Runs CREATE TABLE, INSERT and SELECT statements."""

    def __init__(self, storage: BPlusTree, wal: WriteAheadLog) -> None:
        self.storage = storage
        self.wal = wal
        self.schemas: Dict[str, TableSchema] = {}

    def execute(self, sql: str) -> str:
        """Execute the first statement in sql and return its textual result."""
        try:
            statements = parse_sql(sql)
        except ParseError as exc:
            raise SqlError(f"Parse error: {exc}") from exc
        if not statements:
            return "No statement to execute"
        statement = statements[0]
        if isinstance(statement, CreateTableStatement):
            return self.execute_create_table(statement)
        if isinstance(statement, InsertStatement):
            return self._execute_insert(statement)
        if isinstance(statement, SelectStatement):
            return self._execute_select(statement)
        raise SqlError("Unsupported statement type")

    def execute_create_table(self, statement: CreateTableStatement) -> str:
        """Record a new table's schema in the log and in memory."""
        name = statement.name
        logger.info("Creating table '%s'", name)
        columns = []
        for definition in statement.columns:
            column = Column(
                name=str(definition.name),
                data_type=_convert_type(definition.type_name),
                nullable=definition.null,
                primary_key=definition.primary_key,
            )
            logger.info(
                " - Column: %s, Type: %s, PK: %s, Nullable: %s",
                column.name, column.data_type, column.primary_key, column.nullable,
            )
            columns.append(column)
        schema = TableSchema(name, columns)
        self.wal.append(WalEntry.create(CreateTable(schema)))
        self.schemas[name] = schema
        return f"Table '{name}' created successfully\n"

    def _schema(self, table: str) -> TableSchema:
        try:
            return self.schemas[table]
        except KeyError:
            raise SqlError(f"Table '{table}' does not exist") from None

    def _execute_insert(self, statement: InsertStatement) -> str:
        table = statement.table
        schema = self._schema(table)
        value_rows = []
        for exprs in statement.rows:
            if not all(isinstance(e, Literal) for e in exprs):
                raise SqlError("Unsupported expression in VALUES")
            value_rows.append(exprs)
        column_names = [str(c) for c in statement.columns]

        inserted = 0
        for exprs in value_rows:
            if len(exprs) > len(column_names):
                raise SqlError("Too many values provided")
            row = Row({name: _convert_value(e) for name, e in zip(column_names, exprs)})
            key = self._row_key(table, row, schema)
            self.wal.append(WalEntry.create(Insert(table=table, key=key, row=row)))
            self.storage.insert(key, row.to_bytes())
            inserted += 1
        return f"{inserted} row(s) inserted"

    @staticmethod
    def _row_key(table: str, row: Row, schema: TableSchema) -> str:
        for column in schema.columns:
            if column.primary_key and column.name in row.values:
                return f"{table}:{value_to_string(row.values[column.name])}"
        return f"{table}:{uuid.uuid4()}"

    def _execute_select(self, statement: SelectStatement) -> str:
        projection = statement.projection
        if statement.table is None and len(projection) == 1 and isinstance(projection[0], Literal):
            value = value_to_string(_convert_value(projection[0]))
            return f"?column?\n{value}\n(1 row)\n"
        if statement.table is None:
            raise SqlError("No table specified")

        schema = self._schema(statement.table)
        rows: List[Row] = []
        for key in self.storage.scan_prefix(f"{statement.table}:"):
            data = self.storage.get(key)
            if data is not None:
                rows.append(Row.from_bytes(data))

        # WHERE and ORDER BY are accepted but not yet evaluated.
        limit = statement.limit
        if isinstance(limit, Literal) and limit.kind == "number":
            text = str(limit.value)
            count = int(text) if text.isdigit() else sys.maxsize
            rows = rows[:count]
        return self._format(rows, projection, schema)

    @staticmethod
    def _format(
        rows: Sequence[Row],
        projection: Sequence[Union[Expression, str]],
        schema: TableSchema,
    ) -> str:
        if projection and projection[0] == WILDCARD:
            columns = [c.name for c in schema.columns]
        else:
            columns = [str(item) if isinstance(item, Identifier) else "*" for item in projection]
        lines = ["\t".join(columns), "-" * (len(columns) * 10)]
        for row in rows:
            lines.append(
                "\t".join(
                    value_to_string(row.values[c]) if c in row.values else "NULL"
                    for c in columns
                )
            )
        lines.append(f"({len(rows)} rows)")
        return "\n".join(lines) + "\n"
"""A small SQL parser for CREATE TABLE, INSERT and SELECT statements."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

WILDCARD = "*"


class ParseError(ValueError):
    """The SQL text could not be parsed."""


@dataclass(frozen=True)
class Identifier:
    """A possibly qualified, possibly quoted name."""

    name: str
    quote: Optional[str] = None

    def __str__(self) -> str:
        if self.quote is None:
            return self.name
        closing = "]" if self.quote == "[" else self.quote
        return f"{self.quote}{self.name}{closing}"


@dataclass(frozen=True)
class Literal:
    """A constant: kind is 'number', 'string', 'boolean' or 'null'."""

    kind: str
    value: Union[str, bool, None]


@dataclass(frozen=True)
class BinaryOp:
    """Two expressions joined by an operator such as '=' or 'AND'."""

    left: "Expression"
    op: str
    right: "Expression"


Expression = Union[Identifier, Literal, BinaryOp]


@dataclass(frozen=True)
class TypeName:
    """A declared column type: upper-case name and numeric arguments."""

    name: str
    args: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ColumnDefinition:
    name: Identifier
    type_name: TypeName
    null: bool = False
    not_null: bool = False
    primary_key: bool = False
    unique: bool = False


@dataclass(frozen=True)
class CreateTableStatement:
    name: str
    columns: List[ColumnDefinition] = field(default_factory=list)


@dataclass(frozen=True)
class InsertStatement:
    table: str
    columns: List[Identifier] = field(default_factory=list)
    rows: List[List[Expression]] = field(default_factory=list)


@dataclass(frozen=True)
class SelectStatement:
    projection: List[Union[Expression, str]]
    table: Optional[str] = None
    where: Optional[Expression] = None
    order_by: List[Tuple[Expression, bool]] = field(default_factory=list)
    limit: Optional[Expression] = None


Statement = Union[CreateTableStatement, InsertStatement, SelectStatement]

_LEXEME_RE = re.compile(
    r"""
    (?P<ws>\s+|--[^\n]*)
    |(?P<string>'(?:[^']|'')*')
    |(?P<quoted>"(?:[^"]|"")*"|`[^`]*`|\[[^\]]*\])
    |(?P<number>\d+(?:\.\d*)?|\.\d+)
    |(?P<word>[A-Za-z_][A-Za-z0-9_$]*)
    |(?P<op><>|!=|<=|>=|[=<>(),;*.+\-/])
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class _Lexeme:
    kind: str
    text: str
    pos: int

    def is_kw(self, *words: str) -> bool:
        return self.kind == "word" and self.text.upper() in words


def _tokenize(sql: str) -> List[_Lexeme]:
    lexemes = []
    pos = 0
    while pos < len(sql):
        match = _LEXEME_RE.match(sql, pos)
        if match is None:
            raise ParseError(f"unexpected character {sql[pos]!r} at position {pos}")
        kind = match.lastgroup
        if kind != "ws":
            lexemes.append(_Lexeme(kind, match.group(), pos))
        pos = match.end()
    return lexemes


_RESERVED = {"FROM", "WHERE", "ORDER", "LIMIT", "AND", "OR", "VALUES", "BY"}


class _Parser:
    def __init__(self, sql: str) -> None:
        self.lexemes = _tokenize(sql)
        self.pos = 0

    def peek(self) -> Optional[_Lexeme]:
        return self.lexemes[self.pos] if self.pos < len(self.lexemes) else None

    def next(self) -> _Lexeme:
        item = self.peek()
        if item is None:
            raise ParseError("unexpected end of input")
        self.pos += 1
        return item

    def accept_kw(self, *words: str) -> bool:
        item = self.peek()
        if item is not None and item.is_kw(*words):
            self.pos += 1
            return True
        return False

    def expect_kw(self, word: str) -> None:
        item = self.next()
        if not item.is_kw(word):
            raise ParseError(f"expected {word}, found {item.text!r}")

    def accept_op(self, op: str) -> bool:
        item = self.peek()
        if item is not None and item.kind == "op" and item.text == op:
            self.pos += 1
            return True
        return False

    def expect_op(self, op: str) -> None:
        item = self.next()
        if item.kind != "op" or item.text != op:
            raise ParseError(f"expected {op!r}, found {item.text!r}")

    def statements(self) -> List[Statement]:
        result: List[Statement] = []
        while self.peek() is not None:
            if self.accept_op(";"):
                continue
            result.append(self.statement())
            if self.peek() is not None:
                self.expect_op(";")
        return result

    def statement(self) -> Statement:
        item = self.next()
        if item.is_kw("CREATE"):
            return self.create_table()
        if item.is_kw("INSERT"):
            return self.insert()
        if item.is_kw("SELECT"):
            return self.select()
        raise ParseError(f"expected a statement, found {item.text!r}")

    def identifier(self) -> Identifier:
        item = self.next()
        if item.kind == "word":
            return Identifier(item.text)
        if item.kind == "quoted":
            quote = item.text[0]
            inner = item.text[1:-1]
            if quote == '"':
                inner = inner.replace('""', '"')
            return Identifier(inner, quote)
        raise ParseError(f"expected an identifier, found {item.text!r}")

    def object_name(self) -> str:
        parts = [str(self.identifier())]
        while self.accept_op("."):
            parts.append(str(self.identifier()))
        return ".".join(parts)

    def integer(self) -> int:
        item = self.next()
        if item.kind != "number" or not item.text.isdigit():
            raise ParseError(f"expected an integer, found {item.text!r}")
        return int(item.text)

    def create_table(self) -> CreateTableStatement:
        self.expect_kw("TABLE")
        if self.accept_kw("IF"):
            self.expect_kw("NOT")
            self.expect_kw("EXISTS")
        name = self.object_name()
        self.expect_op("(")
        columns = [self.column_definition()]
        while self.accept_op(","):
            columns.append(self.column_definition())
        self.expect_op(")")
        return CreateTableStatement(name, columns)

    def column_definition(self) -> ColumnDefinition:
        name = self.identifier()
        type_item = self.next()
        if type_item.kind != "word":
            raise ParseError(f"expected a type, found {type_item.text!r}")
        args: List[int] = []
        if self.accept_op("("):
            args.append(self.integer())
            while self.accept_op(","):
                args.append(self.integer())
            self.expect_op(")")
        type_name = TypeName(type_item.text.upper(), tuple(args))
        flags = dict(null=False, not_null=False, primary_key=False, unique=False)
        while True:
            if self.accept_kw("PRIMARY"):
                self.expect_kw("KEY")
                flags["primary_key"] = True
            elif self.accept_kw("NOT"):
                self.expect_kw("NULL")
                flags["not_null"] = True
            elif self.accept_kw("NULL"):
                flags["null"] = True
            elif self.accept_kw("UNIQUE"):
                flags["unique"] = True
            elif self.accept_kw("DEFAULT"):
                self.primary()
            else:
                break
        return ColumnDefinition(name, type_name, **flags)

    def insert(self) -> InsertStatement:
        self.expect_kw("INTO")
        table = self.object_name()
        columns: List[Identifier] = []
        if self.accept_op("("):
            columns.append(self.identifier())
            while self.accept_op(","):
                columns.append(self.identifier())
            self.expect_op(")")
        self.expect_kw("VALUES")
        rows = [self.value_row()]
        while self.accept_op(","):
            rows.append(self.value_row())
        return InsertStatement(table, columns, rows)

    def value_row(self) -> List[Expression]:
        self.expect_op("(")
        row = [self.expression()]
        while self.accept_op(","):
            row.append(self.expression())
        self.expect_op(")")
        return row

    def select(self) -> SelectStatement:
        projection = [self.select_item()]
        while self.accept_op(","):
            projection.append(self.select_item())
        table = None
        where = None
        order_by: List[Tuple[Expression, bool]] = []
        limit = None
        if self.accept_kw("FROM"):
            table = self.object_name()
            item = self.peek()
            if item is not None and (item.kind == "quoted" or (
                item.kind == "word" and item.text.upper() not in _RESERVED
            )):
                self.accept_kw("AS")
                self.identifier()
        if self.accept_kw("WHERE"):
            where = self.expression()
        if self.accept_kw("ORDER"):
            self.expect_kw("BY")
            order_by.append(self.order_item())
            while self.accept_op(","):
                order_by.append(self.order_item())
        if self.accept_kw("LIMIT"):
            limit = self.expression()
        return SelectStatement(projection, table, where, order_by, limit)

    def select_item(self) -> Union[Expression, str]:
        if self.accept_op("*"):
            return WILDCARD
        expr = self.expression()
        if self.accept_kw("AS"):
            self.identifier()
        return expr

    def order_item(self) -> Tuple[Expression, bool]:
        expr = self.expression()
        if self.accept_kw("DESC"):
            return expr, False
        self.accept_kw("ASC")
        return expr, True

    def expression(self) -> Expression:
        left = self.conjunction()
        while self.accept_kw("OR"):
            left = BinaryOp(left, "OR", self.conjunction())
        return left

    def conjunction(self) -> Expression:
        left = self.comparison()
        while self.accept_kw("AND"):
            left = BinaryOp(left, "AND", self.comparison())
        return left

    def comparison(self) -> Expression:
        left = self.primary()
        item = self.peek()
        if item is not None and item.kind == "op" and item.text in (
            "=", "<>", "!=", "<", ">", "<=", ">=", "+", "-", "/",
        ):
            self.pos += 1
            return BinaryOp(left, item.text, self.primary())
        return left

    def primary(self) -> Expression:
        item = self.peek()
        if item is None:
            raise ParseError("unexpected end of input")
        if item.kind == "number":
            self.pos += 1
            return Literal("number", item.text)
        if item.kind == "op" and item.text == "-":
            self.pos += 1
            number = self.next()
            if number.kind != "number":
                raise ParseError(f"expected a number after '-', found {number.text!r}")
            return Literal("number", "-" + number.text)
        if item.kind == "string":
            self.pos += 1
            return Literal("string", item.text[1:-1].replace("''", "'"))
        if item.is_kw("TRUE", "FALSE"):
            self.pos += 1
            return Literal("boolean", item.text.upper() == "TRUE")
        if item.is_kw("NULL"):
            self.pos += 1
            return Literal("null", None)
        if self.accept_op("("):
            expr = self.expression()
            self.expect_op(")")
            return expr
        if item.kind in ("word", "quoted"):
            if item.kind == "word" and item.text.upper() in _RESERVED:
                raise ParseError(f"unexpected keyword {item.text!r}")
            return Identifier(self.object_name()) if self._is_qualified() else self.identifier()
        raise ParseError(f"unexpected token {item.text!r}")

    def _is_qualified(self) -> bool:
        after = self.pos + 1
        return (
            after < len(self.lexemes)
            and self.lexemes[after].kind == "op"
            and self.lexemes[after].text == "."
        )


def parse_sql(sql: str) -> List[Statement]:
    """Parse SQL text into a list of statements; raises ParseError."""
    return _Parser(sql).statements()
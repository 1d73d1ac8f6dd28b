import pytest

from wundradb.sqlparse import (
    WILDCARD,
    BinaryOp,
    CreateTableStatement,
    Identifier,
    InsertStatement,
    Literal,
    ParseError,
    SelectStatement,
    TypeName,
    parse_sql,
)


def test_empty_input_gives_no_statements():
    assert parse_sql("") == []
    assert parse_sql("  ;  ") == []


def test_create_table():
    (stmt,) = parse_sql("CREATE TABLE users (id INTEGER PRIMARY KEY, name VARCHAR(100))")
    assert isinstance(stmt, CreateTableStatement)
    assert stmt.name == "users"
    assert [str(c.name) for c in stmt.columns] == ["id", "name"]
    assert stmt.columns[0].primary_key is True
    assert stmt.columns[1].type_name == TypeName("VARCHAR", (100,))


def test_column_null_options():
    (stmt,) = parse_sql("create table t (a int null, b int not null)")
    assert stmt.columns[0].null is True
    assert stmt.columns[1].null is False
    assert stmt.columns[1].not_null is True


def test_insert_values():
    (stmt,) = parse_sql("INSERT INTO users (id, name) VALUES (1, 'Alice'), (2, 'O''Brien')")
    assert isinstance(stmt, InsertStatement)
    assert stmt.table == "users"
    assert [str(c) for c in stmt.columns] == ["id", "name"]
    assert stmt.rows[0] == [Literal("number", "1"), Literal("string", "Alice")]
    assert stmt.rows[1][1] == Literal("string", "O'Brien")


def test_literals_of_every_kind():
    (stmt,) = parse_sql("INSERT INTO t (a, b, c, d) VALUES (TRUE, NULL, 1.5, -3)")
    assert stmt.rows[0] == [
        Literal("boolean", True),
        Literal("null", None),
        Literal("number", "1.5"),
        Literal("number", "-3"),
    ]


def test_select_with_clauses():
    (stmt,) = parse_sql("SELECT * FROM users WHERE id = 1 AND name = 'x' ORDER BY id DESC LIMIT 10")
    assert isinstance(stmt, SelectStatement)
    assert stmt.projection == [WILDCARD]
    assert stmt.table == "users"
    assert isinstance(stmt.where, BinaryOp) and stmt.where.op == "AND"
    assert stmt.order_by == [(Identifier("id"), False)]
    assert stmt.limit == Literal("number", "10")


def test_select_constant_without_table():
    (stmt,) = parse_sql("SELECT 'hello';")
    assert stmt.table is None
    assert stmt.projection == [Literal("string", "hello")]


def test_multiple_statements():
    stmts = parse_sql("SELECT 1; SELECT 2")
    assert [s.projection[0].value for s in stmts] == ["1", "2"]


@pytest.mark.parametrize(
    "sql",
    ["DROP TABLE users", "SELECT FROM", "CREATE TABLE t (", "INSERT INTO t VALUES 1", "SELECT 1 SELECT 2", "SELECT #"],
)
def test_errors(sql):
    with pytest.raises(ParseError):
        parse_sql(sql)
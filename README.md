# wundradb

A small SQL database engine. Rows live in an in-memory B+ tree, every
table creation and insert is recorded in a length-prefixed write-ahead
log, and an asyncio TCP server runs one SQL statement per line. A Raft
node state machine (elections, vote and append-entries handling) is
included as a building block.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Supported SQL

- `CREATE TABLE name (col TYPE [PRIMARY KEY] [NULL] [NOT NULL] [UNIQUE] [DEFAULT value], ...)`
  with the types `INT`/`INTEGER`, `VARCHAR(n)`, `CHAR(n)` (both stored as
  VARCHAR, length 255 when omitted), `BOOLEAN`, `DECIMAL`, `DECIMAL(p)`,
  `DECIMAL(p, s)` (10, 2 when omitted) and `TIMESTAMP`.
- `INSERT INTO name (col, ...) VALUES (...), (...)` with number, string,
  boolean and `NULL` literals. Each value is stored under the column named
  at the same position; more values than named columns is an error.
- `SELECT * FROM name` or `SELECT col, ... FROM name`, with an optional
  `LIMIT n`. `WHERE` and `ORDER BY` are parsed but do not filter or
  reorder rows; rows come back in key order.
- `SELECT <literal>` without a table, answered as a single `?column?` row.

Only the first statement of the text is executed. Rows are keyed as
`table:<primary key value>`, so inserting the same key again replaces the
earlier row; tables without a primary key get a random key per row.

## Running the server

```
wundradb-server [--host 127.0.0.1] [--port 3306] [--data-dir data]
```

The data directory holds `wal.log` (the write-ahead log) and `storage.db`
(a storage snapshot, read when present). Each line a client sends is one
SQL statement. A successful reply is the result followed by a line
starting with `Query OK` and the time taken; a failure is a single line
starting with `Error`. Sending `exit` or `quit` ends the session with
`Goodbye!`. Statements from all clients are run one at a time.

## Interactive client

```
wundradb-cli -H 127.0.0.1 -p 3306
```

Type SQL at the `wundradb> ` prompt. `exit`, `quit`, end-of-input or
Ctrl-C leaves the client.

## Using the engine from Python

```python
from wundradb.database import Database

db = Database("data")
db.execute_sql("CREATE TABLE users (id INTEGER PRIMARY KEY, name VARCHAR(100))")
db.execute_sql("INSERT INTO users (id, name) VALUES (1, 'Alice')")
print(db.execute_sql("SELECT * FROM users"))
db.shutdown()  # syncs the log and writes storage.db
```

Errors raise `wundradb.engine.SqlError`. The parts can be used on their own:

- `wundradb.bptree.BPlusTree`: an ordered string-keyed byte store with
  `insert`, `get`, `scan_prefix`, `save_to_disk`, `load_from_disk` and
  `apply_wal_entry`.
- `wundradb.wal.WriteAheadLog`: appends `WalEntry` records holding
  `CreateTable` or `Insert` operations, replays them, truncates the file,
  and filters entries with `entries_for_table` and `entries_since`.
- `wundradb.schema`: `TableSchema`, `Column`, `SqlDataType` and `Row`,
  with dict and byte encodings.
- `wundradb.sqlparse.parse_sql`: turns SQL text into statement objects and
  raises `ParseError` on input it does not accept.
- `wundradb.raft.RaftNode`: one node's Raft state, answering
  `VoteRequest` and `AppendEntriesRequest` messages.

## What it does not do

- There are no `UPDATE`, `DELETE`, `DROP` or other statements, and column
  types are not checked against inserted values.
- Table schemas are kept in memory only. When a database directory is
  reopened, the stored rows come back but each table must be created again
  before it can be queried.
- The server never writes `storage.db`; only `Database.shutdown` does.
- `RaftNode` has no networking, timers or log replication; it only updates
  its own state in answer to the messages it is given.
"""A small SQL database engine with a B+ tree store, write-ahead log, TCP server and client."""

__version__ = "0.1.0"
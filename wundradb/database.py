"""A database directory: write-ahead log, B+ tree storage and SQL engine together."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union

from wundradb.bptree import BPlusTree
from wundradb.engine import SqlEngine
from wundradb.wal import WriteAheadLog

logger = logging.getLogger(__name__)

WAL_FILE = "wal.log"
STORAGE_FILE = "storage.db"


class Database:
    """Opens (or creates) a data directory and executes SQL against it."""

    def __init__(self, data_dir: Union[str, os.PathLike]) -> None:
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.wal_path = self.data_dir / WAL_FILE
        self.storage_path = self.data_dir / STORAGE_FILE

        self.wal = WriteAheadLog(self.wal_path)
        self.storage = BPlusTree()

        for entry in self.wal.replay():
            try:
                self.storage.apply_wal_entry(entry)
            except (TypeError, ValueError) as exc:
                logger.warning("Failed to apply WAL entry: %s", exc)

        try:
            self.storage.load_from_disk(self.storage_path)
        except (OSError, ValueError) as exc:
            logger.info("No existing storage found, starting fresh: %s", exc)

        self.engine = SqlEngine(self.storage, self.wal)

    def execute_sql(self, sql: str) -> str:
        """Run one SQL statement and return its textual result."""
        return self.engine.execute(sql)

    def shutdown(self) -> None:
        """Flush the log and write a storage snapshot."""
        self.wal.sync()
        self.storage.save_to_disk(self.storage_path)
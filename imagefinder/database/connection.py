"""
Database connection management with thread safety.

Provides ConnectionManager for thread-safe SQLite operations with WAL mode.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from ..errors import StoreError

# Seconds SQLite waits on a locked database before raising
BUSY_TIMEOUT = 30.0


class ConnectionManager:
    """
    Manages SQLite connections for concurrent scan workers.

    Each operation gets its own connection, so worker threads never share
    one. Writes taken with exclusive=True are serialized by a lock; reads
    run concurrently thanks to WAL mode.
    """

    def __init__(self, db_path: str):
        """
        Initialize connection manager.

        Args:
            db_path: Path to SQLite database file

        Raises:
            StoreError: If the database directory cannot be created
        """
        self.db_path = db_path
        self._write_lock = threading.Lock()
        self._ensure_directory()

    def _ensure_directory(self):
        db_path = Path(self.db_path).resolve()
        db_dir = db_path.parent
        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create database directory {db_dir}: {e}") from e

    @contextmanager
    def connection(self, exclusive: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager wrapping one transaction.

        Args:
            exclusive: If True, hold the write lock for the whole transaction

        Yields:
            sqlite3.Connection with row factory and WAL mode enabled

        Raises:
            StoreError: If the database cannot be opened

        Example:
            with conn_mgr.connection(exclusive=True) as conn:
                conn.execute("INSERT INTO ...")
        """
        if exclusive:
            self._write_lock.acquire()

        try:
            try:
                conn = sqlite3.connect(
                    self.db_path,
                    timeout=BUSY_TIMEOUT,
                    # Transactions are managed explicitly below
                    isolation_level=None,
                    check_same_thread=False,
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
            except sqlite3.Error as e:
                raise StoreError(f"Cannot open database {self.db_path}: {e}") from e

            conn.execute("BEGIN")

            try:
                yield conn
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
            finally:
                conn.close()
        finally:
            if exclusive:
                self._write_lock.release()


__all__ = ['ConnectionManager', 'BUSY_TIMEOUT']

"""
FingerprintStore facade class for coordinating database operations.

Provides a unified interface to all store operations using the facade pattern.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Iterator, Optional

from ..config import DEFAULT_DB_FILE
from ..errors import StoreError
from ..models import FingerprintRecord
from .connection import ConnectionManager
from .schema import initialize_schema, SCHEMA_VERSION
from .operations import FingerprintOperations
from .maintenance import MaintenanceOperations

logger = logging.getLogger(__name__)


class FingerprintStore:
    """
    SQLite-backed store of image fingerprints.

    Thread-safe for concurrent reads and upserts from scan workers.
    Uses facade pattern to delegate to specialized components.

    Usage:
        store = FingerprintStore('/tmp/images.db')

        found, modified_at = store.exists(path, 'drive-a')
        if not found or current_mtime > modified_at:
            store.upsert(record)
    """

    SCHEMA_VERSION = SCHEMA_VERSION

    def __init__(self, db_path: Optional[str] = None):
        """
        Open (and if necessary create) the store.

        Args:
            db_path: Path to SQLite database file. Uses default if None.

        Raises:
            StoreError: If the database cannot be opened or initialized
        """
        self.db_path = db_path or DEFAULT_DB_FILE

        self._conn_mgr = ConnectionManager(self.db_path)
        self._operations = FingerprintOperations(self._conn_mgr)
        self._maintenance = MaintenanceOperations(self._conn_mgr)

        try:
            with self._conn_mgr.connection(exclusive=True) as conn:
                initialize_schema(conn)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot initialize database {self.db_path}: {e}") from e
        logger.debug(f"Opened fingerprint store {self.db_path}")

    # Delegate to FingerprintOperations
    def exists(self, path: str, source_prefix: str = "") -> tuple[bool, float]:
        """Return (found, stored modified_at) for a key."""
        return self._operations.exists(path, source_prefix)

    def upsert(self, record: FingerprintRecord, force: bool = False) -> bool:
        """Write a record; without force only strictly newer data replaces a stored row."""
        return self._operations.upsert(record, force)

    def get(self, path: str, source_prefix: str = "") -> Optional[FingerprintRecord]:
        """Fetch one record."""
        return self._operations.get(path, source_prefix)

    def query_by_prefix(self, source_prefix: str = "") -> Iterator[FingerprintRecord]:
        """Iterate over records for a source label ('' for all)."""
        return self._operations.query_by_prefix(source_prefix)

    def count(self, source_prefix: str = "") -> int:
        """Number of stored records."""
        return self._operations.count(source_prefix)

    def delete(self, path: str, source_prefix: str = "") -> bool:
        """Remove one record."""
        return self._operations.delete(path, source_prefix)

    # Delegate to MaintenanceOperations
    def cleanup_missing(self) -> int:
        """Remove records for files that no longer exist."""
        return self._maintenance.cleanup_missing()

    def get_stats(self, source_prefix: str = "") -> dict:
        """Get store statistics."""
        return self._maintenance.get_stats(source_prefix)

    def clear(self):
        """Remove all records."""
        self._maintenance.clear()

    def vacuum(self):
        """Compact the database file."""
        self._maintenance.vacuum()


__all__ = ['FingerprintStore']

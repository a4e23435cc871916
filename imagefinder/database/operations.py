"""
Core read/write operations for the fingerprint store.

Provides FingerprintOperations: existence checks for the scan skip logic,
atomic per-key upserts, and prefix-filtered iteration for the search
prefilter. Failures are raised as StoreError so the scan pipeline can
count them per file.
"""

from __future__ import annotations

import sqlite3
import time
import logging
from typing import Iterator, Optional

from ..errors import StoreError
from ..models import FingerprintRecord
from .connection import ConnectionManager
from .utils import CHUNK_SIZE, RECORD_COLUMNS, record_to_params, row_to_record


logger = logging.getLogger(__name__)

_COLUMN_LIST = ', '.join(RECORD_COLUMNS)
_PLACEHOLDERS = ', '.join('?' * len(RECORD_COLUMNS))

# Unconditional overwrite
_REPLACE_SQL = f"INSERT OR REPLACE INTO images ({_COLUMN_LIST}) VALUES ({_PLACEHOLDERS})"

# Insert if absent; otherwise update only with strictly newer file data
_UPSERT_SQL = f"""
    INSERT INTO images ({_COLUMN_LIST}) VALUES ({_PLACEHOLDERS})
    ON CONFLICT(path, source_prefix) DO UPDATE SET
        format = excluded.format,
        width = excluded.width,
        height = excluded.height,
        created_at = excluded.created_at,
        modified_at = excluded.modified_at,
        size = excluded.size,
        average_hash = excluded.average_hash,
        perceptual_hash = excluded.perceptual_hash,
        is_raw_format = excluded.is_raw_format
    WHERE excluded.modified_at > images.modified_at
"""


class FingerprintOperations:
    """
    Handles record-level operations for the fingerprint store.

    Every write is a single statement in its own transaction, so each
    (path, source_prefix) key is updated atomically.
    """

    def __init__(self, connection_manager: ConnectionManager):
        """
        Initialize fingerprint operations.

        Args:
            connection_manager: ConnectionManager instance for database access
        """
        self.conn_mgr = connection_manager

    def exists(self, path: str, source_prefix: str = "") -> tuple[bool, float]:
        """
        Look up the stored modification time for a key.

        Args:
            path: Image path
            source_prefix: Source label ('' for none)

        Returns:
            (found, modified_at); modified_at is 0.0 when not found

        Raises:
            StoreError: On database failure
        """
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                row = conn.execute(
                    "SELECT modified_at FROM images WHERE path = ? AND source_prefix = ?",
                    (path, source_prefix or ''),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Lookup failed for {path}: {e}") from e

        if row is None:
            return False, 0.0
        return True, float(row['modified_at'])

    def upsert(self, record: FingerprintRecord, force: bool = False) -> bool:
        """
        Write a fingerprint record.

        Args:
            record: Record to store; created_at is set to the write time
            force: Overwrite unconditionally instead of only with newer data

        Returns:
            True if a row was inserted or updated

        Raises:
            StoreError: On database failure
        """
        created_at = time.time()
        params = record_to_params(record, created_at)
        sql = _REPLACE_SQL if force else _UPSERT_SQL

        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                cursor = conn.execute(sql, params)
                written = cursor.rowcount > 0
        except sqlite3.Error as e:
            raise StoreError(f"Failed to store fingerprint for {record.path}: {e}") from e

        if written:
            record.created_at = created_at
        else:
            logger.debug(f"Kept newer stored record for {record.path}")
        return written

    def get(self, path: str, source_prefix: str = "") -> Optional[FingerprintRecord]:
        """
        Fetch one record.

        Raises:
            StoreError: On database failure
        """
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                row = conn.execute(
                    "SELECT * FROM images WHERE path = ? AND source_prefix = ?",
                    (path, source_prefix or ''),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Lookup failed for {path}: {e}") from e
        return row_to_record(row) if row else None

    def query_by_prefix(self, source_prefix: str = "") -> Iterator[FingerprintRecord]:
        """
        Iterate over stored records.

        Args:
            source_prefix: Only records with this source label; '' for all

        Yields:
            FingerprintRecord objects, fetched CHUNK_SIZE rows at a time

        Raises:
            StoreError: On database failure
        """
        if source_prefix:
            sql = "SELECT * FROM images WHERE source_prefix = ?"
            params: tuple = (source_prefix,)
        else:
            sql = "SELECT * FROM images"
            params = ()

        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                cursor = conn.execute(sql, params)
                while True:
                    rows = cursor.fetchmany(CHUNK_SIZE)
                    if not rows:
                        break
                    for row in rows:
                        yield row_to_record(row)
        except sqlite3.Error as e:
            raise StoreError(f"Query failed for prefix {source_prefix!r}: {e}") from e

    def count(self, source_prefix: str = "") -> int:
        """Number of records, optionally for one source label."""
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                if source_prefix:
                    row = conn.execute(
                        "SELECT COUNT(*) AS cnt FROM images WHERE source_prefix = ?",
                        (source_prefix,),
                    ).fetchone()
                else:
                    row = conn.execute("SELECT COUNT(*) AS cnt FROM images").fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Count failed: {e}") from e
        return row['cnt']

    def delete(self, path: str, source_prefix: str = "") -> bool:
        """
        Remove one record.

        Returns:
            True if a record was removed
        """
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                cursor = conn.execute(
                    "DELETE FROM images WHERE path = ? AND source_prefix = ?",
                    (path, source_prefix or ''),
                )
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete record for {path}: {e}") from e


__all__ = ['FingerprintOperations']

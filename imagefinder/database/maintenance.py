"""
Maintenance operations for the fingerprint store.

Provides statistics, cleanup of records for deleted files, and vacuum.
"""

from __future__ import annotations

import os
import sqlite3
import logging

from .connection import ConnectionManager, BUSY_TIMEOUT
from .utils import CHUNK_SIZE


logger = logging.getLogger(__name__)


class MaintenanceOperations:
    """
    Handles maintenance operations for the fingerprint store.

    Maintenance is best effort: failures are logged and reported as
    empty results rather than raised.
    """

    def __init__(self, connection_manager: ConnectionManager):
        """
        Initialize maintenance operations.

        Args:
            connection_manager: ConnectionManager instance for database access
        """
        self.conn_mgr = connection_manager

    def cleanup_missing(self) -> int:
        """
        Remove records for files that no longer exist.

        Returns:
            Number of records removed
        """
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                rows = conn.execute("SELECT id, path FROM images").fetchall()
                missing = [row['id'] for row in rows if not os.path.exists(row['path'])]

                # Delete in chunks to avoid SQLite variable limit
                for i in range(0, len(missing), CHUNK_SIZE):
                    chunk = missing[i:i + CHUNK_SIZE]
                    placeholders = ','.join('?' * len(chunk))
                    conn.execute(
                        f"DELETE FROM images WHERE id IN ({placeholders})",
                        chunk
                    )

                if missing:
                    logger.info(f"Removed {len(missing)} records for missing files")
                return len(missing)
        except sqlite3.Error as e:
            logger.warning(f"Failed to cleanup missing records: {e}")
            return 0

    def get_stats(self, source_prefix: str = "") -> dict:
        """
        Get store statistics.

        Args:
            source_prefix: Restrict counts to one source label ('' for all)

        Returns:
            Dictionary with:
                - total_records: Number of fingerprint records
                - unique_average_hashes: Distinct average hash values
                - raw_count: Records for RAW originals
                - db_size_bytes / db_size_mb: Database file size
                - db_path: Path to database file
        """
        where = "WHERE source_prefix = ?" if source_prefix else ""
        params: tuple = (source_prefix,) if source_prefix else ()
        db_path = self.conn_mgr.db_path
        db_size = os.path.getsize(db_path) if os.path.exists(db_path) else 0

        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                row = conn.execute(f"""
                    SELECT COUNT(*) AS total,
                           COUNT(DISTINCT average_hash) AS unique_hashes,
                           COALESCE(SUM(is_raw_format), 0) AS raw_count
                    FROM images {where}
                """, params).fetchone()
        except sqlite3.Error as e:
            logger.warning(f"Failed to get store stats: {e}")
            row = {'total': 0, 'unique_hashes': 0, 'raw_count': 0}

        return {
            'total_records': row['total'],
            'unique_average_hashes': row['unique_hashes'],
            'raw_count': row['raw_count'],
            'db_size_bytes': db_size,
            'db_size_mb': round(db_size / (1024 * 1024), 2),
            'db_path': db_path,
        }

    def clear(self):
        """Remove all records."""
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                conn.execute("DELETE FROM images")
            self.vacuum()
        except sqlite3.Error as e:
            logger.warning(f"Failed to clear store: {e}")

    def vacuum(self):
        """Compact the database file."""
        try:
            # VACUUM must run outside a transaction
            conn = sqlite3.connect(self.conn_mgr.db_path, timeout=BUSY_TIMEOUT)
            try:
                conn.execute("VACUUM")
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.debug(f"Failed to vacuum database: {e}")


__all__ = ['MaintenanceOperations']

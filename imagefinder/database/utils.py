"""
Shared utilities for database operations.
"""

from __future__ import annotations

import sqlite3

from ..models import FingerprintRecord


# SQLite has a limit of 999 variables, we use 500 for safety
CHUNK_SIZE = 500

# Column order shared by every INSERT
RECORD_COLUMNS = (
    'path', 'source_prefix', 'format', 'width', 'height',
    'created_at', 'modified_at', 'size',
    'average_hash', 'perceptual_hash', 'is_raw_format',
)


def record_to_params(record: FingerprintRecord, created_at: float) -> tuple:
    """
    Build INSERT parameters for a record, in RECORD_COLUMNS order.

    Args:
        record: Record to persist
        created_at: Write timestamp (epoch seconds)
    """
    return (
        record.path,
        record.source_prefix or '',
        record.format,
        record.width,
        record.height,
        created_at,
        record.modified_at,
        record.size,
        record.average_hash,
        record.perceptual_hash,
        1 if record.is_raw_format else 0,
    )


def row_to_record(row: sqlite3.Row) -> FingerprintRecord:
    """
    Convert database row to FingerprintRecord object.

    Args:
        row: sqlite3.Row from database query

    Returns:
        FingerprintRecord object
    """
    return FingerprintRecord(
        path=row['path'],
        source_prefix=row['source_prefix'] or '',
        format=row['format'] or '',
        width=row['width'] or 0,
        height=row['height'] or 0,
        size=row['size'] or 0,
        modified_at=row['modified_at'] or 0.0,
        created_at=row['created_at'] or 0.0,
        average_hash=row['average_hash'] or '',
        perceptual_hash=row['perceptual_hash'] or '',
        is_raw_format=bool(row['is_raw_format']),
    )


__all__ = [
    'CHUNK_SIZE',
    'RECORD_COLUMNS',
    'record_to_params',
    'row_to_record',
]

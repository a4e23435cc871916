"""
Database schema initialization and migrations.

Provides schema versioning and table creation for the fingerprint database.
"""

from __future__ import annotations

import sqlite3


# Schema version - increment when changing table structure
SCHEMA_VERSION = 1


def initialize_schema(conn: sqlite3.Connection) -> None:
    """
    Initialize database schema with versioning support.

    Creates tables and indexes if they don't exist. The fingerprint table
    is rebuilt when the stored schema version is older than SCHEMA_VERSION;
    records are cheap to recompute with a forced scan.

    Args:
        conn: Active database connection

    Tables created:
        - meta: Schema version tracking
        - images: One fingerprint record per (path, source_prefix)
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    """)

    result = conn.execute(
        "SELECT value FROM meta WHERE key = 'schema_version'"
    ).fetchone()

    current_version = int(result['value']) if result else 0

    if current_version < SCHEMA_VERSION:
        conn.execute("DROP TABLE IF EXISTS images")

    # Empty source prefix is stored as '' so the unique constraint applies
    conn.execute("""
        CREATE TABLE IF NOT EXISTS images (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            path TEXT NOT NULL,
            source_prefix TEXT NOT NULL DEFAULT '',
            format TEXT,
            width INTEGER NOT NULL DEFAULT 0,
            height INTEGER NOT NULL DEFAULT 0,
            created_at REAL NOT NULL,
            modified_at REAL NOT NULL,
            size INTEGER NOT NULL DEFAULT 0,
            average_hash TEXT NOT NULL,
            perceptual_hash TEXT NOT NULL,
            is_raw_format INTEGER NOT NULL DEFAULT 0,
            UNIQUE(path, source_prefix)
        )
    """)

    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_images_path
        ON images(path)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_images_source_prefix
        ON images(source_prefix)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_images_average_hash
        ON images(average_hash)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_images_perceptual_hash
        ON images(perceptual_hash)
    """)

    conn.execute("""
        INSERT OR REPLACE INTO meta (key, value)
        VALUES ('schema_version', ?)
    """, (str(SCHEMA_VERSION),))


__all__ = ['SCHEMA_VERSION', 'initialize_schema']

"""
SQLite persistent store for Image Finder.

Holds one fingerprint record per (path, source_prefix) and supports:
- Skip checks for incremental re-scans (stored modification time)
- Atomic per-key upserts from concurrent scan workers
- Prefix-filtered iteration for the search prefilter

Public API:
- FingerprintStore: Main store class
- SCHEMA_VERSION: Current schema version
"""

from __future__ import annotations

from .core import FingerprintStore
from .schema import SCHEMA_VERSION


__all__ = [
    'FingerprintStore',
    'SCHEMA_VERSION',
]

"""
Per-file scan processing.

Runs one ScanTask through skip check, decode, hashing and store. Expected
per-file failures (decode, empty image, store) come back as failed
ScanResults; anything else propagates to the pipeline's task boundary.
"""

from __future__ import annotations

import os
import logging

from ..database import FingerprintStore
from ..decoders import DecoderRegistry
from ..errors import DecodeError, EmptyImageError, StoreError
from ..formats import get_file_format
from ..models import (
    FingerprintRecord,
    FormatCategory,
    ScanResult,
    ScanStatus,
    ScanTask,
)
from .hashing import compute_average_hash, compute_perceptual_hash

logger = logging.getLogger(__name__)


def _result(task: ScanTask, status: ScanStatus, decoded: bool) -> ScanResult:
    return ScanResult(
        path=task.path,
        status=status,
        is_raw=task.category == FormatCategory.RAW,
        is_tif=task.category == FormatCategory.TIFF,
        decoded=decoded,
    )


def process_scan_task(
    task: ScanTask,
    store: FingerprintStore,
    decoders: DecoderRegistry,
) -> ScanResult:
    """
    Fingerprint one file and persist it.

    Args:
        task: File path, source prefix, force flag and category
        store: Persistent store
        decoders: Decoder configuration

    Returns:
        ScanResult with status stored, skipped or failed
    """
    try:
        stat = os.stat(task.path)
    except OSError as e:
        return ScanResult.failure(task, DecodeError(f"Cannot stat file: {e}", path=task.path))
    modified_at = stat.st_mtime

    # Skip check: an equal modification time is not newer
    if not task.force_rewrite:
        try:
            found, stored_modified_at = store.exists(task.path, task.source_prefix)
        except StoreError as e:
            return ScanResult.failure(task, e)
        if found and modified_at <= stored_modified_at:
            return _result(task, ScanStatus.SKIPPED, decoded=False)

    try:
        image = decoders.decode(task.path, task.category)
    except DecodeError as e:
        return ScanResult.failure(task, e)

    try:
        average_hash = compute_average_hash(image)
        perceptual_hash = compute_perceptual_hash(image)
    except EmptyImageError as e:
        return ScanResult.failure(task, e, decoded=True)

    record = FingerprintRecord(
        path=task.path,
        source_prefix=task.source_prefix,
        format=get_file_format(task.path),
        width=image.width,
        height=image.height,
        size=stat.st_size,
        modified_at=modified_at,
        average_hash=average_hash,
        perceptual_hash=perceptual_hash,
        is_raw_format=task.category == FormatCategory.RAW,
    )

    try:
        written = store.upsert(record, force=task.force_rewrite)
    except StoreError as e:
        return ScanResult.failure(task, e, decoded=True)

    status = ScanStatus.STORED if written else ScanStatus.SKIPPED
    return _result(task, status, decoded=True)


__all__ = ['process_scan_task']

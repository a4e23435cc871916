"""
Scan progress aggregation.

ProgressTracker consumes every ScanResult exactly once, keeps the running
counts that end up in the ScanSummary, and reports progress through a tqdm
bar (when installed), periodic log lines, and an optional callback.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Callable, Any

from ..config import PROGRESS_INTERVAL, STORE_ERROR_WARNING_THRESHOLD
from ..models import ScanResult, ScanStatus, ScanSummary
from .dependencies import HAS_TQDM, _tqdm_class

logger = logging.getLogger(__name__)


class ProgressTracker:
    """
    Thread-safe aggregator of scan results.

    record() is normally called from the single consumer thread; workers
    call it directly (with overflow=True) when the result queue stays full.
    """

    def __init__(
        self,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        show_progress: bool = True,
        interval: float = PROGRESS_INTERVAL,
        store_error_threshold: int = STORE_ERROR_WARNING_THRESHOLD,
    ):
        self.summary = ScanSummary()
        self._lock = threading.Lock()
        self._callback = progress_callback
        self._show_progress = show_progress
        self._interval = interval
        self._store_error_threshold = store_error_threshold
        self._started = 0.0
        self._last_report = 0.0
        self._pbar: Optional[Any] = None

    def start(self, total_files: int, raw_files: int = 0, tif_files: int = 0) -> None:
        """Reset counters for a scan over total_files files."""
        with self._lock:
            self.summary = ScanSummary(
                total_files=total_files,
                raw_files=raw_files,
                tif_files=tif_files,
            )
            self._started = time.time()
            self._last_report = self._started

        logger.info(
            f"Found {total_files:,} images to process "
            f"({raw_files:,} RAW, {tif_files:,} TIFF)"
        )

        if HAS_TQDM and self._show_progress and _tqdm_class is not None and total_files:
            self._pbar = _tqdm_class(
                total=total_files,
                desc="Scanning images",
                unit="img",
                ncols=80,
            )

    def record(self, result: ScanResult, overflow: bool = False) -> None:
        """
        Count one result.

        Args:
            result: Outcome of one scan task
            overflow: The result bypassed the full result queue
        """
        with self._lock:
            s = self.summary
            s.total_processed += 1
            if overflow:
                s.queue_overflows += 1
            if result.decoded:
                s.decoded += 1

            if result.status == ScanStatus.STORED:
                s.stored += 1
            elif result.status == ScanStatus.SKIPPED:
                s.skipped += 1
            else:
                s.errors += 1
                if result.error_kind == 'StoreError':
                    s.store_errors += 1

            if result.is_raw:
                s.raw_count += 1
                if not result.success:
                    s.raw_errors += 1
            if result.is_tif:
                s.tif_count += 1
                if not result.success:
                    s.tif_errors += 1

            current, total = s.total_processed, s.total_files
            now = time.time()
            due = now - self._last_report >= self._interval or current == total
            if due:
                self._last_report = now

        if result.success:
            logger.debug(f"PROCESSED: {result.path} ({result.status.value})")
        else:
            logger.debug(f"FAILED: {result.path} - Error: {result.error}")

        if self._pbar is not None:
            self._pbar.update(1)
        elif due:
            self._log_progress(current, total, now)

        if self._callback and due:
            self._callback(current, total)

    def record_abandoned(self, result: ScanResult) -> None:
        """Count a task that never got a worker slot."""
        with self._lock:
            self.summary.abandoned += 1
        self.record(result)

    def mark_cancelled(self) -> None:
        with self._lock:
            self.summary.cancelled = True

    def _log_progress(self, current: int, total: int, now: float) -> None:
        elapsed = now - self._started
        rate = current / elapsed if elapsed > 0 else 0.0
        percent = (current / total * 100) if total else 100.0
        logger.info(
            f"Progress: {current:,}/{total:,} ({percent:.1f}%) - "
            f"{rate:.1f} files/sec - errors: {self.summary.errors:,}"
        )

    def finish(self) -> ScanSummary:
        """Close progress output, log the completion report and return the summary."""
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None

        with self._lock:
            s = self.summary
            s.elapsed = time.time() - self._started

        logger.info(
            f"Scan {'cancelled' if s.cancelled else 'complete'}: "
            f"{s.total_processed:,}/{s.total_files:,} processed in {s.elapsed:.1f}s - "
            f"{s.stored:,} stored, {s.skipped:,} skipped, {s.errors:,} errors"
        )
        if s.raw_count:
            logger.info(f"RAW files: {s.raw_succeeded:,} processed, {s.raw_errors:,} errors")
        if s.tif_count:
            logger.info(f"TIFF files: {s.tif_succeeded:,} processed, {s.tif_errors:,} errors")
        if s.abandoned:
            logger.warning(f"{s.abandoned:,} files abandoned waiting for a worker slot")
        if s.queue_overflows:
            logger.warning(f"{s.queue_overflows:,} results bypassed the full result queue")
        if s.store_errors >= self._store_error_threshold:
            logger.warning(
                f"{s.store_errors:,} database write failures - "
                f"check the database file and disk space"
            )
        return s


__all__ = ['ProgressTracker']

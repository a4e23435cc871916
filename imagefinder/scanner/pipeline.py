"""
Scan pipeline for the scanner package.

Walks a folder and fingerprints every supported image with a bounded pool
of workers:

    traversal (producer) -> worker slot -> process_scan_task -> result queue
    -> consumer thread -> ProgressTracker

The producer must acquire a worker slot before submitting each task, and
a worker keeps its slot until its result has been handed off, so a slow
consumer throttles the traversal. A result that cannot be queued before
the queue timeout is recorded directly and counted as an overflow; no
result is ever dropped.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Callable

from ..config import (
    DEFAULT_WORKERS,
    RESULT_QUEUE_SIZE,
    RESULT_QUEUE_TIMEOUT,
    SLOT_ACQUIRE_TIMEOUT,
    SLOT_ACQUIRE_ATTEMPTS,
    STORE_ERROR_WARNING_THRESHOLD,
)
from ..database import FingerprintStore
from ..decoders import DecoderRegistry
from ..errors import RuntimeFault
from ..models import FormatCategory, ScanResult, ScanSummary, ScanTask
from .file_discovery import find_image_files, count_by_category
from .processing import process_scan_task
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

# Marks the end of the result stream for the consumer thread
_END = object()


class ScanPipeline:
    """
    Bounded-concurrency producer/consumer scanner.

    Usage:
        pipeline = ScanPipeline(store, max_workers=8)
        summary = pipeline.scan('/photos', source_prefix='drive-a')
    """

    def __init__(
        self,
        store: FingerprintStore,
        decoders: Optional[DecoderRegistry] = None,
        max_workers: int = DEFAULT_WORKERS,
        slot_timeout: float = SLOT_ACQUIRE_TIMEOUT,
        slot_attempts: int = SLOT_ACQUIRE_ATTEMPTS,
        result_timeout: float = RESULT_QUEUE_TIMEOUT,
        queue_size: int = RESULT_QUEUE_SIZE,
        store_error_threshold: int = STORE_ERROR_WARNING_THRESHOLD,
        show_progress: bool = True,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            store: Persistent store receiving fingerprint records
            decoders: Format category -> decoder mapping (default decoders if None)
            max_workers: Maximum number of files processed concurrently
            slot_timeout: Seconds to wait for a free worker slot per attempt
            slot_attempts: Attempts before a task is abandoned
            result_timeout: Seconds a worker waits to queue its result
            queue_size: Capacity of the result queue
            store_error_threshold: Store failures that trigger a warning
            show_progress: Show a tqdm bar when tqdm is installed
            progress_callback: Optional callback(current, total)
            cancel_event: When set, no further tasks are launched
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.store = store
        self.decoders = decoders or DecoderRegistry.default()
        self.max_workers = max_workers
        self.slot_timeout = slot_timeout
        self.slot_attempts = max(1, slot_attempts)
        self.result_timeout = result_timeout
        self.queue_size = queue_size
        self.store_error_threshold = store_error_threshold
        self.show_progress = show_progress
        self.progress_callback = progress_callback
        self.cancel_event = cancel_event or threading.Event()

    def scan(
        self,
        root_folder: str,
        source_prefix: str = "",
        force_rewrite: bool = False,
    ) -> ScanSummary:
        """
        Fingerprint every supported image under root_folder.

        Args:
            root_folder: Folder to walk recursively
            source_prefix: Source label stored with every record
            force_rewrite: Reprocess and overwrite records even if unchanged

        Returns:
            ScanSummary with counts for the whole scan

        Raises:
            PathAccessError: If root_folder is missing or unreadable
        """
        files = find_image_files(root_folder)
        counts = count_by_category(files)
        tasks = [
            ScanTask(
                path=path,
                source_prefix=source_prefix or "",
                force_rewrite=force_rewrite,
                category=category,
            )
            for path, category in files
        ]

        tracker = ProgressTracker(
            progress_callback=self.progress_callback,
            show_progress=self.show_progress,
            store_error_threshold=self.store_error_threshold,
        )
        tracker.start(
            len(tasks),
            raw_files=counts[FormatCategory.RAW],
            tif_files=counts[FormatCategory.TIFF],
        )
        if force_rewrite:
            logger.info("Force rewrite enabled - all files will be reprocessed")

        results: queue.Queue = queue.Queue(maxsize=self.queue_size)
        consumer = threading.Thread(
            target=self._consume,
            args=(results, tracker),
            name="scan-aggregator",
            daemon=True,
        )
        consumer.start()

        slots = threading.BoundedSemaphore(self.max_workers)
        try:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                for task in tasks:
                    if self.cancel_event.is_set():
                        tracker.mark_cancelled()
                        logger.warning("Scan cancelled - no further files will be started")
                        break
                    if not self._acquire_slot(slots, task):
                        tracker.record_abandoned(ScanResult.failure(
                            task,
                            RuntimeFault("No worker slot became available"),
                        ))
                        continue
                    executor.submit(self._run_task, task, slots, results, tracker)
        finally:
            results.put(_END)
            consumer.join()

        return tracker.finish()

    def _acquire_slot(self, slots: threading.BoundedSemaphore, task: ScanTask) -> bool:
        for attempt in range(1, self.slot_attempts + 1):
            if slots.acquire(timeout=self.slot_timeout):
                return True
            logger.warning(
                f"Waiting for a worker slot for {task.path} "
                f"(attempt {attempt}/{self.slot_attempts})"
            )
            if self.cancel_event.is_set():
                break
        return False

    def _run_task(
        self,
        task: ScanTask,
        slots: threading.BoundedSemaphore,
        results: queue.Queue,
        tracker: ProgressTracker,
    ) -> None:
        try:
            try:
                result = process_scan_task(task, self.store, self.decoders)
            except Exception as e:
                logger.error(f"Unexpected error processing {task.path}: {e}", exc_info=True)
                result = ScanResult.failure(task, RuntimeFault(f"Unexpected error: {e}", original=e))
            self._deliver(result, results, tracker)
        finally:
            slots.release()

    def _deliver(self, result: ScanResult, results: queue.Queue, tracker: ProgressTracker) -> None:
        try:
            results.put(result, timeout=self.result_timeout)
        except queue.Full:
            logger.warning(f"Result queue full for {self.result_timeout}s - recording {result.path} directly")
            tracker.record(result, overflow=True)

    @staticmethod
    def _consume(results: queue.Queue, tracker: ProgressTracker) -> None:
        while True:
            item = results.get()
            if item is _END:
                break
            try:
                tracker.record(item)
            except Exception as e:
                logger.warning(f"Progress reporting failed: {e}")


def scan_folder(
    root_folder: str,
    source_prefix: str = "",
    force_rewrite: bool = False,
    max_workers: int = DEFAULT_WORKERS,
    store: Optional[FingerprintStore] = None,
    decoders: Optional[DecoderRegistry] = None,
    **options,
) -> ScanSummary:
    """
    Scan a folder into the fingerprint store.

    Args:
        root_folder: Folder to walk recursively
        source_prefix: Source label stored with every record
        force_rewrite: Reprocess and overwrite records even if unchanged
        max_workers: Maximum number of files processed concurrently
        store: Store to write to (default database if None)
        decoders: Decoder configuration (default decoders if None)
        **options: Further ScanPipeline keyword arguments

    Returns:
        ScanSummary for the scan
    """
    pipeline = ScanPipeline(
        store if store is not None else FingerprintStore(),
        decoders=decoders,
        max_workers=max_workers,
        **options,
    )
    return pipeline.scan(root_folder, source_prefix, force_rewrite)


__all__ = ['ScanPipeline', 'scan_folder']

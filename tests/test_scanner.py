"""
Unit tests for the scanner package: discovery, per-file processing,
progress aggregation and the scan pipeline.
"""

import logging
import os
import queue
import threading

import pytest
from PIL import Image

from imagefinder.database import FingerprintStore
from imagefinder.decoders import DecoderRegistry
from imagefinder.errors import PathAccessError, StoreError
from imagefinder.formats import classify
from imagefinder.models import FormatCategory, ScanResult, ScanStatus, ScanTask
from imagefinder.scanner import (
    ProgressTracker,
    ScanPipeline,
    compute_average_hash,
    compute_perceptual_hash,
    find_image_files,
    process_scan_task,
    scan_folder,
)
from imagefinder.scanner.file_discovery import check_root_folder, count_by_category


class FailingStore:
    """Store stand-in whose writes always fail."""

    def exists(self, path, source_prefix=""):
        return False, 0.0

    def upsert(self, record, force=False):
        raise StoreError(f"disk full writing {record.path}")


def _task(path, prefix="", force=False):
    return ScanTask(path=path, source_prefix=prefix, force_rewrite=force, category=classify(path))


def _pipeline(store, decoder, **kwargs):
    kwargs.setdefault('show_progress', False)
    return ScanPipeline(store, decoders=DecoderRegistry.uniform(decoder), **kwargs)


class TestFindImageFiles:
    """Test find_image_files function."""

    def test_finds_supported_files(self, sample_images):
        """Test discovery returns supported images with their category."""
        found = dict(find_image_files(sample_images['root']))
        assert set(found) == {
            sample_images['a'], sample_images['a_copy'], sample_images['b'],
            sample_images['c'], sample_images['broken'],
        }
        assert all(category == FormatCategory.STANDARD for category in found.values())

    def test_non_recursive(self, sample_images):
        found = [path for path, _ in find_image_files(sample_images['root'], recursive=False)]
        assert sample_images['c'] not in found
        assert sample_images['a'] in found

    def test_categories(self, make_files):
        root, _ = make_files(["a.CR2", "b.tif", "c.jpg", "d.txt", "sub/e.nef"])
        counts = count_by_category(find_image_files(root))
        assert counts[FormatCategory.RAW] == 2
        assert counts[FormatCategory.TIFF] == 1
        assert counts[FormatCategory.STANDARD] == 1
        assert counts[FormatCategory.UNSUPPORTED] == 0

    @pytest.mark.skipif(not hasattr(os, 'symlink'), reason="symlinks unavailable")
    def test_symlinked_duplicates_visited_once(self, make_files):
        root, paths = make_files(["a.jpg"])
        try:
            os.symlink(paths[0], os.path.join(root, "z_link.jpg"))
        except OSError:
            pytest.skip("cannot create symlinks here")
        assert len(find_image_files(root)) == 1

    def test_empty_directory(self, temp_dir):
        assert find_image_files(temp_dir) == []

    def test_missing_root_raises(self, temp_dir):
        with pytest.raises(PathAccessError):
            find_image_files(temp_dir / "missing")

    def test_file_root_raises(self, sample_images):
        with pytest.raises(PathAccessError):
            check_root_folder(sample_images['a'])


class TestProcessScanTask:
    """Test process_scan_task function."""

    def test_stores_new_file(self, store, make_files, fake_decoder_cls, pattern_image):
        """Test a new file is decoded, hashed and stored."""
        _, (path,) = make_files(["IMG_0001.jpg"])
        image = pattern_image(21)
        decoder = fake_decoder_cls(images={path: image})

        result = process_scan_task(_task(path, "drive-a"), store, DecoderRegistry.uniform(decoder))

        assert result.status == ScanStatus.STORED
        assert result.decoded is True
        record = store.get(path, "drive-a")
        assert record.average_hash == compute_average_hash(image)
        assert record.perceptual_hash == compute_perceptual_hash(image)
        assert record.format == "jpg"
        assert record.width == 64 and record.height == 64
        assert record.size == os.path.getsize(path)
        assert record.modified_at == os.stat(path).st_mtime
        assert record.is_raw_format is False

    def test_unchanged_file_skipped_without_decoding(self, store, make_files, fake_decoder_cls):
        _, (path,) = make_files(["a.jpg"])
        decoder = fake_decoder_cls()
        decoders = DecoderRegistry.uniform(decoder)

        process_scan_task(_task(path), store, decoders)
        result = process_scan_task(_task(path), store, decoders)

        assert result.status == ScanStatus.SKIPPED
        assert result.decoded is False
        assert decoder.calls == 1

    def test_modified_file_reprocessed(self, store, make_files, fake_decoder_cls):
        """Test a strictly newer modification time is rewritten; equal or older is skipped."""
        _, (path,) = make_files(["a.jpg"])
        decoders = DecoderRegistry.uniform(fake_decoder_cls())
        process_scan_task(_task(path), store, decoders)
        mtime = os.stat(path).st_mtime

        os.utime(path, (mtime + 10, mtime + 10))
        assert process_scan_task(_task(path), store, decoders).status == ScanStatus.STORED
        assert store.get(path).modified_at == mtime + 10

        os.utime(path, (mtime + 5, mtime + 5))
        assert process_scan_task(_task(path), store, decoders).status == ScanStatus.SKIPPED
        assert store.get(path).modified_at == mtime + 10

    def test_force_rewrite(self, store, make_files, fake_decoder_cls):
        _, (path,) = make_files(["a.jpg"])
        decoder = fake_decoder_cls()
        decoders = DecoderRegistry.uniform(decoder)
        process_scan_task(_task(path), store, decoders)

        result = process_scan_task(_task(path, force=True), store, decoders)
        assert result.status == ScanStatus.STORED
        assert decoder.calls == 2

    def test_prefixes_are_independent(self, store, make_files, fake_decoder_cls):
        _, (path,) = make_files(["a.jpg"])
        decoders = DecoderRegistry.uniform(fake_decoder_cls())
        process_scan_task(_task(path, "drive-a"), store, decoders)
        assert process_scan_task(_task(path, "drive-b"), store, decoders).status == ScanStatus.STORED
        assert store.count() == 2

    def test_decode_failure(self, store, make_files, fake_decoder_cls):
        _, (path,) = make_files(["bad.cr2"])
        decoders = DecoderRegistry.uniform(fake_decoder_cls(fail={"bad.cr2"}))

        result = process_scan_task(_task(path), store, decoders)

        assert result.status == ScanStatus.FAILED
        assert result.error_kind == "DecodeError"
        assert result.is_raw is True
        assert store.get(path) is None

    def test_empty_image(self, store, make_files, fake_decoder_cls):
        _, (path,) = make_files(["empty.png"])
        decoders = DecoderRegistry.uniform(fake_decoder_cls(default=Image.new('L', (0, 0))))

        result = process_scan_task(_task(path), store, decoders)

        assert result.status == ScanStatus.FAILED
        assert result.error_kind == "EmptyImageError"
        assert result.decoded is True

    def test_store_failure(self, make_files, fake_decoder_cls):
        _, (path,) = make_files(["a.tif"])
        result = process_scan_task(
            _task(path), FailingStore(), DecoderRegistry.uniform(fake_decoder_cls())
        )
        assert result.status == ScanStatus.FAILED
        assert result.error_kind == "StoreError"
        assert result.is_tif is True

    def test_missing_file(self, store, fake_decoder_cls, temp_dir):
        result = process_scan_task(
            _task(str(temp_dir / "gone.jpg")), store, DecoderRegistry.uniform(fake_decoder_cls())
        )
        assert result.status == ScanStatus.FAILED

    def test_unexpected_error_propagates(self, store, make_files, fake_decoder_cls):
        _, (path,) = make_files(["boom.jpg"])
        with pytest.raises(RuntimeError):
            process_scan_task(_task(path), store, DecoderRegistry.uniform(fake_decoder_cls(crash={"boom.jpg"})))


class TestProgressTracker:
    """Test ProgressTracker aggregation."""

    def test_counts(self):
        tracker = ProgressTracker(show_progress=False)
        tracker.start(4, raw_files=2, tif_files=1)
        tracker.record(ScanResult("a.cr2", ScanStatus.STORED, is_raw=True, decoded=True))
        tracker.record(ScanResult("b.cr2", ScanStatus.FAILED, error="x", error_kind="DecodeError", is_raw=True))
        tracker.record(ScanResult("c.tif", ScanStatus.SKIPPED, is_tif=True))
        tracker.record(ScanResult("d.jpg", ScanStatus.FAILED, error="x", error_kind="StoreError", decoded=True))

        summary = tracker.finish()
        assert summary.total_processed == 4
        assert summary.stored == 1
        assert summary.skipped == 1
        assert summary.errors == 2
        assert summary.decoded == 2
        assert summary.raw_count == 2 and summary.raw_errors == 1 and summary.raw_succeeded == 1
        assert summary.tif_count == 1 and summary.tif_errors == 0
        assert summary.store_errors == 1
        assert summary.stored + summary.skipped + summary.errors == summary.total_processed

    def test_callback_receives_final_count(self):
        calls = []
        tracker = ProgressTracker(progress_callback=lambda c, t: calls.append((c, t)),
                                  show_progress=False, interval=3600)
        tracker.start(3)
        for name in ("a", "b", "c"):
            tracker.record(ScanResult(name, ScanStatus.STORED))
        assert calls == [(3, 3)]

    def test_store_error_warning(self, caplog):
        tracker = ProgressTracker(show_progress=False, store_error_threshold=2)
        tracker.start(2)
        for name in ("a", "b"):
            tracker.record(ScanResult(name, ScanStatus.FAILED, error="x", error_kind="StoreError"))
        with caplog.at_level(logging.WARNING):
            tracker.finish()
        assert "database write failures" in caplog.text


class TestScanPipeline:
    """Test ScanPipeline end to end."""

    @pytest.mark.parametrize("workers", [1, 8])
    def test_every_file_reported(self, store, make_files, fake_decoder_cls, workers):
        """Test no result is lost or duplicated regardless of worker count."""
        root, paths = make_files([f"IMG_{i:04d}.jpg" for i in range(40)])
        summary = _pipeline(store, fake_decoder_cls(), max_workers=workers).scan(str(root), "drive-a")

        assert summary.total_files == 40
        assert summary.total_processed == 40
        assert summary.stored == 40
        assert summary.errors == 0
        assert store.count("drive-a") == 40

    def test_rescan_is_idempotent(self, store, make_files, fake_decoder_cls):
        root, paths = make_files([f"{i}.png" for i in range(10)])
        decoder = fake_decoder_cls()
        pipeline = _pipeline(store, decoder, max_workers=4)
        pipeline.scan(str(root))
        before = {p: store.get(p) for p in paths}

        summary = pipeline.scan(str(root))

        assert summary.skipped == 10
        assert summary.stored == 0
        assert summary.decoded == 0
        assert decoder.calls == 10
        assert {p: store.get(p) for p in paths} == before

    def test_force_rewrite(self, store, make_files, fake_decoder_cls):
        root, _ = make_files([f"{i}.png" for i in range(5)])
        pipeline = _pipeline(store, fake_decoder_cls(), max_workers=2)
        pipeline.scan(str(root))
        summary = pipeline.scan(str(root), force_rewrite=True)
        assert summary.stored == 5
        assert summary.skipped == 0

    def test_bounded_concurrency(self, store, make_files, fake_decoder_cls):
        """Test no more than max_workers files are decoded at once."""
        root, _ = make_files([f"{i}.jpg" for i in range(20)])
        decoder = fake_decoder_cls(delay=0.02)
        summary = _pipeline(store, decoder, max_workers=3).scan(str(root))

        assert summary.total_processed == 20
        assert 1 <= decoder.max_active <= 3

    def test_unexpected_error_becomes_runtime_fault(self, store, make_files, fake_decoder_cls):
        root, _ = make_files(["a.jpg", "boom.jpg", "c.jpg"])
        summary = _pipeline(store, fake_decoder_cls(crash={"boom.jpg"}), max_workers=2).scan(str(root))

        assert summary.total_processed == 3
        assert summary.errors == 1
        assert summary.stored == 2

    def test_format_counts(self, store, make_files, fake_decoder_cls):
        root, _ = make_files(["a.cr2", "b.nef", "c.tif", "d.jpg"])
        summary = _pipeline(store, fake_decoder_cls(fail={"b.nef"})).scan(str(root))

        assert summary.raw_files == 2
        assert summary.raw_count == 2
        assert summary.raw_errors == 1
        assert summary.tif_files == 1
        assert summary.tif_count == 1
        assert summary.errors == 1
        assert store.get(os.path.join(str(root), "a.cr2")).is_raw_format is True

    def test_store_errors_counted(self, make_files, fake_decoder_cls, caplog):
        root, _ = make_files([f"{i}.jpg" for i in range(4)])
        pipeline = ScanPipeline(
            FailingStore(),
            decoders=DecoderRegistry.uniform(fake_decoder_cls()),
            show_progress=False,
            store_error_threshold=3,
        )
        with caplog.at_level(logging.WARNING):
            summary = pipeline.scan(str(root))

        assert summary.store_errors == 4
        assert summary.errors == 4
        assert "database write failures" in caplog.text

    def test_progress_callback_final(self, store, make_files, fake_decoder_cls):
        root, _ = make_files([f"{i}.jpg" for i in range(7)])
        calls = []
        _pipeline(store, fake_decoder_cls(), progress_callback=lambda c, t: calls.append((c, t))).scan(str(root))
        assert calls[-1] == (7, 7)

    def test_cancel_before_start(self, store, make_files, fake_decoder_cls):
        root, _ = make_files([f"{i}.jpg" for i in range(5)])
        cancel = threading.Event()
        cancel.set()
        decoder = fake_decoder_cls()

        summary = _pipeline(store, decoder, cancel_event=cancel).scan(str(root))

        assert summary.cancelled is True
        assert summary.total_processed == 0
        assert decoder.calls == 0

    def test_cancel_mid_scan_reports_in_flight(self, store, make_files, fake_decoder_cls):
        """Test files already started are finished and reported after cancellation."""
        cancel = threading.Event()

        class CancellingDecoder(fake_decoder_cls):
            def decode(self, path):
                image = super().decode(path)
                if self.calls >= 3:
                    cancel.set()
                return image

        root, _ = make_files([f"{i:02d}.jpg" for i in range(30)])
        decoder = CancellingDecoder(delay=0.01)
        summary = _pipeline(store, decoder, max_workers=2, cancel_event=cancel).scan(str(root))

        assert summary.cancelled is True
        assert summary.total_processed < 30
        assert summary.total_processed == decoder.calls
        assert summary.stored == store.count()

    def test_abandoned_tasks_counted(self, store, make_files, fake_decoder_cls, monkeypatch):
        root, _ = make_files([f"{i}.jpg" for i in range(3)])
        pipeline = _pipeline(store, fake_decoder_cls())
        monkeypatch.setattr(pipeline, "_acquire_slot", lambda slots, task: False)

        summary = pipeline.scan(str(root))

        assert summary.abandoned == 3
        assert summary.errors == 3
        assert summary.total_processed == 3
        assert store.count() == 0

    def test_acquire_slot_gives_up(self, store, fake_decoder_cls):
        pipeline = _pipeline(store, fake_decoder_cls(), slot_timeout=0.01, slot_attempts=2)
        slots = threading.BoundedSemaphore(1)
        slots.acquire()
        assert pipeline._acquire_slot(slots, _task("/x/a.jpg")) is False
        slots.release()
        assert pipeline._acquire_slot(slots, _task("/x/a.jpg")) is True

    def test_full_queue_records_directly(self, store, fake_decoder_cls):
        """Test a result that cannot be queued is still counted, as an overflow."""
        pipeline = _pipeline(store, fake_decoder_cls(), result_timeout=0.01)
        results = queue.Queue(maxsize=1)
        results.put("occupied")
        tracker = ProgressTracker(show_progress=False)
        tracker.start(1)

        pipeline._deliver(ScanResult("/x/a.jpg", ScanStatus.STORED), results, tracker)

        assert tracker.summary.total_processed == 1
        assert tracker.summary.queue_overflows == 1
        assert results.qsize() == 1

    def test_missing_root_raises(self, store, fake_decoder_cls, temp_dir):
        with pytest.raises(PathAccessError):
            _pipeline(store, fake_decoder_cls()).scan(str(temp_dir / "missing"))

    def test_invalid_worker_count(self, store):
        with pytest.raises(ValueError):
            ScanPipeline(store, max_workers=0)


class TestScanFolder:
    """Test scan_folder with the real decoders."""

    def test_real_images(self, sample_images, temp_db):
        store = FingerprintStore(temp_db)
        summary = scan_folder(sample_images['root'], "photos", store=store, max_workers=2,
                              show_progress=False)

        assert summary.total_files == 5
        assert summary.stored == 4
        assert summary.errors == 1
        a = store.get(sample_images['a'], "photos")
        a_copy = store.get(sample_images['a_copy'], "photos")
        assert a.width == 100 and a.height == 80
        assert a.average_hash == a_copy.average_hash
        assert a.perceptual_hash == a_copy.perceptual_hash
        assert store.get(sample_images['broken'], "photos") is None

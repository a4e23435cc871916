"""
Unit tests for the fingerprint store.
"""

import os
import sqlite3
import threading

import pytest

from imagefinder.database import FingerprintStore, SCHEMA_VERSION
from imagefinder.errors import StoreError
from imagefinder.models import FingerprintRecord


def _record(path, prefix="", modified_at=100.0, average_hash="0f0f0f0f0f0f0f0f", **kwargs):
    return FingerprintRecord(
        path=str(path),
        source_prefix=prefix,
        format=os.path.splitext(str(path))[1].lstrip('.').lower(),
        width=kwargs.pop('width', 640),
        height=kwargs.pop('height', 480),
        size=kwargs.pop('size', 1234),
        modified_at=modified_at,
        average_hash=average_hash,
        perceptual_hash=kwargs.pop('perceptual_hash', "f0f0f0f0f0f0f0f0"),
        is_raw_format=kwargs.pop('is_raw_format', False),
    )


class TestFingerprintStore:
    """Test FingerprintStore basic operations."""

    def test_initialization(self, temp_db):
        """Test store initialization creates database."""
        FingerprintStore(temp_db)
        assert os.path.exists(temp_db)

    def test_creates_parent_directory(self, temp_dir):
        db_path = str(temp_dir / "nested" / "deeper" / "images.db")
        FingerprintStore(db_path)
        assert os.path.exists(db_path)

    def test_schema_version_recorded(self, store, temp_db):
        conn = sqlite3.connect(temp_db)
        try:
            row = conn.execute("SELECT value FROM meta WHERE key = 'schema_version'").fetchone()
        finally:
            conn.close()
        assert int(row[0]) == SCHEMA_VERSION

    def test_reopen_keeps_records(self, temp_db):
        FingerprintStore(temp_db).upsert(_record("/p/a.jpg"))
        assert FingerprintStore(temp_db).count() == 1

    def test_unopenable_path_raises(self, temp_dir):
        """Test a database path that is a directory is rejected."""
        with pytest.raises(StoreError):
            FingerprintStore(str(temp_dir))

    def test_upsert_and_get(self, store):
        """Test storing and retrieving a record."""
        record = _record("/p/IMG_0042.CR2", "drive-a", is_raw_format=True)
        assert store.upsert(record) is True

        stored = store.get("/p/IMG_0042.CR2", "drive-a")
        assert stored is not None
        assert stored.format == "cr2"
        assert stored.width == 640 and stored.height == 480
        assert stored.average_hash == record.average_hash
        assert stored.perceptual_hash == record.perceptual_hash
        assert stored.is_raw_format is True
        assert stored.modified_at == 100.0
        assert stored.created_at == pytest.approx(record.created_at)
        assert stored.created_at > 0

    def test_get_nonexistent(self, store):
        assert store.get("/nonexistent/file.jpg") is None

    def test_exists(self, store):
        """Test existence check returns the stored modification time."""
        assert store.exists("/p/a.jpg") == (False, 0.0)
        store.upsert(_record("/p/a.jpg", modified_at=123.5))
        assert store.exists("/p/a.jpg") == (True, 123.5)
        assert store.exists("/p/a.jpg", "other")[0] is False


class TestUpsertSemantics:
    """Test conditional and forced writes."""

    def test_older_data_does_not_replace(self, store):
        """Test non-force upsert keeps a record with a newer modification time."""
        store.upsert(_record("/p/a.jpg", modified_at=200.0, average_hash="1111111111111111"))
        written = store.upsert(_record("/p/a.jpg", modified_at=150.0, average_hash="2222222222222222"))

        assert written is False
        stored = store.get("/p/a.jpg")
        assert stored.modified_at == 200.0
        assert stored.average_hash == "1111111111111111"

    def test_equal_modification_time_does_not_replace(self, store):
        store.upsert(_record("/p/a.jpg", modified_at=200.0, average_hash="1111111111111111"))
        assert store.upsert(_record("/p/a.jpg", modified_at=200.0, average_hash="2222222222222222")) is False
        assert store.get("/p/a.jpg").average_hash == "1111111111111111"

    def test_newer_data_replaces(self, store):
        store.upsert(_record("/p/a.jpg", modified_at=200.0, average_hash="1111111111111111"))
        assert store.upsert(_record("/p/a.jpg", modified_at=300.0, average_hash="2222222222222222")) is True

        stored = store.get("/p/a.jpg")
        assert stored.modified_at == 300.0
        assert stored.average_hash == "2222222222222222"
        assert store.count() == 1

    def test_force_overwrites_and_updates_created_at(self, store):
        """Test forced write replaces even older data and restamps created_at."""
        first = _record("/p/a.jpg", modified_at=200.0, average_hash="1111111111111111")
        store.upsert(first)
        created_first = store.get("/p/a.jpg").created_at

        second = _record("/p/a.jpg", modified_at=100.0, average_hash="2222222222222222")
        assert store.upsert(second, force=True) is True

        stored = store.get("/p/a.jpg")
        assert stored.average_hash == "2222222222222222"
        assert stored.modified_at == 100.0
        assert stored.created_at >= created_first
        assert store.count() == 1

    def test_same_path_different_prefixes(self, store):
        """Test (path, source_prefix) is the identity of a record."""
        store.upsert(_record("/p/a.jpg", "drive-a"))
        store.upsert(_record("/p/a.jpg", "drive-b"))
        store.upsert(_record("/p/a.jpg", ""))
        store.upsert(_record("/p/a.jpg", "drive-a", modified_at=500.0))

        assert store.count() == 3
        assert store.count("drive-a") == 1
        assert store.get("/p/a.jpg", "drive-a").modified_at == 500.0
        assert store.get("/p/a.jpg", "drive-b").modified_at == 100.0

    def test_concurrent_upserts(self, store):
        """Test many threads writing distinct and shared keys."""
        errors = []

        def worker(n):
            try:
                for i in range(20):
                    store.upsert(_record(f"/p/{n}_{i}.jpg"))
                    store.upsert(_record("/p/shared.jpg", modified_at=float(n * 100 + i)))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert store.count() == 8 * 20 + 1
        assert store.get("/p/shared.jpg").modified_at == 7 * 100 + 19


class TestQueries:
    """Test iteration and deletion."""

    def test_query_by_prefix(self, store):
        for i in range(3):
            store.upsert(_record(f"/p/a{i}.jpg", "drive-a"))
        store.upsert(_record("/p/b.jpg", "drive-b"))

        paths = sorted(r.path for r in store.query_by_prefix("drive-a"))
        assert paths == ["/p/a0.jpg", "/p/a1.jpg", "/p/a2.jpg"]
        assert len(list(store.query_by_prefix(""))) == 4
        assert list(store.query_by_prefix("missing")) == []

    def test_query_spans_chunks(self, store):
        """Test iteration returns every row when results exceed one fetch."""
        for i in range(520):
            store.upsert(_record(f"/p/{i:05d}.jpg"))
        assert sum(1 for _ in store.query_by_prefix()) == 520

    def test_delete(self, store):
        store.upsert(_record("/p/a.jpg"))
        assert store.delete("/p/a.jpg") is True
        assert store.delete("/p/a.jpg") is False
        assert store.count() == 0


class TestMaintenance:
    """Test statistics and cleanup."""

    def test_cleanup_missing(self, store, sample_images):
        store.upsert(_record(sample_images['a']))
        store.upsert(_record("/nonexistent/gone.jpg"))

        assert store.cleanup_missing() == 1
        assert store.get(sample_images['a']) is not None
        assert store.get("/nonexistent/gone.jpg") is None

    def test_get_stats(self, store, temp_db):
        store.upsert(_record("/p/a.cr2", "drive-a", is_raw_format=True))
        store.upsert(_record("/p/a.jpg", "drive-a"))
        store.upsert(_record("/p/b.jpg", "drive-b", average_hash="1234123412341234"))

        stats = store.get_stats()
        assert stats['total_records'] == 3
        assert stats['unique_average_hashes'] == 2
        assert stats['raw_count'] == 1
        assert stats['db_path'] == temp_db
        assert stats['db_size_bytes'] > 0

        scoped = store.get_stats("drive-a")
        assert scoped['total_records'] == 2
        assert scoped['raw_count'] == 1

    def test_clear(self, store):
        store.upsert(_record("/p/a.jpg"))
        store.clear()
        assert store.count() == 0

"""
Pytest configuration and shared fixtures for test suite.
"""

import os
import shutil
import tempfile
import threading
import time
import zlib
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from imagefinder.database import FingerprintStore
from imagefinder.decoders import ImageDecoder
from imagefinder.errors import DecodeError


def make_pattern_image(seed: int, size=(64, 64)) -> Image.Image:
    """Blocky grayscale pattern: an 8x8 random grid scaled up, unique per seed."""
    rng = np.random.default_rng(seed)
    grid = rng.integers(0, 256, size=(8, 8), dtype=np.uint8)
    return Image.fromarray(grid).resize(size, Image.NEAREST)


class FakeDecoder(ImageDecoder):
    """
    Decoder that never touches the file contents.

    Returns images[path] if given, else `default`, else a pattern derived
    from the filename. Tracks call counts and peak concurrency.
    """

    name = "fake"

    def __init__(self, images=None, default=None, delay=0.0, fail=(), crash=()):
        self.images = {str(k): v for k, v in (images or {}).items()}
        self.default = default
        self.delay = delay
        self.fail = set(fail)
        self.crash = set(crash)
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def decode(self, path):
        path = str(path)
        name = os.path.basename(path)
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if name in self.fail:
                raise DecodeError("fake decode failure", path=path)
            if name in self.crash:
                raise RuntimeError("fake decoder crashed")
            if path in self.images:
                image = self.images[path].copy()
            elif self.default is not None:
                image = self.default.copy()
            else:
                image = make_pattern_image(zlib.crc32(name.encode()))
            image.info['path'] = path
            return image
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def fake_decoder_cls():
    """The FakeDecoder class, for tests that configure their own instance."""
    return FakeDecoder


@pytest.fixture
def pattern_image():
    """Factory for deterministic pattern images."""
    return make_pattern_image


@pytest.fixture
def sample_images(temp_dir):
    """
    Create a small photo folder.

    Returns:
        dict with paths to:
        - pattern_a.png, pattern_a_copy.png (identical content)
        - pattern_b.jpg (different content)
        - nested/pattern_c.png (in a subdirectory)
        - notes.txt (not an image)
        - broken.png (not decodable)
    """
    images = {}
    root = temp_dir / "photos"
    (root / "nested").mkdir(parents=True)

    img_a = make_pattern_image(1, (100, 80)).convert('RGB')
    images['a'] = str(root / "pattern_a.png")
    img_a.save(images['a'], 'PNG')
    images['a_copy'] = str(root / "pattern_a_copy.png")
    img_a.save(images['a_copy'], 'PNG')

    images['b'] = str(root / "pattern_b.jpg")
    make_pattern_image(2, (120, 90)).convert('RGB').save(images['b'], 'JPEG', quality=95)

    images['c'] = str(root / "nested" / "pattern_c.png")
    make_pattern_image(3).save(images['c'], 'PNG')

    images['notes'] = str(root / "notes.txt")
    Path(images['notes']).write_text("not an image")

    images['broken'] = str(root / "broken.png")
    Path(images['broken']).write_bytes(b"\x89PNG definitely not a png")

    images['root'] = str(root)
    return images


@pytest.fixture
def make_files(temp_dir):
    """Create empty placeholder files (contents are never read by FakeDecoder)."""
    def _make(names, folder="files"):
        root = temp_dir / folder
        root.mkdir(parents=True, exist_ok=True)
        paths = []
        for name in names:
            path = root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"placeholder")
            paths.append(str(path))
        return root, paths
    return _make


@pytest.fixture
def temp_db(temp_dir):
    """Path for a temporary database file."""
    return str(temp_dir / "test_images.db")


@pytest.fixture
def store(temp_db):
    """A fresh FingerprintStore."""
    return FingerprintStore(temp_db)

"""
Scanner package for Image Finder.

Provides the fingerprint engine and the bounded-concurrency scan pipeline
that walks a folder and stores fingerprints for every supported image.

Public API:
- find_image_files: Discover image files (with format category) in directories
- compute_average_hash: 8x8 average hash of a decoded image
- compute_perceptual_hash: DCT perceptual hash of a decoded image
- hamming_distance: Bit distance between two hex hashes
- pixel_similarity: Pixel-level similarity score used for verification
- process_scan_task: Fingerprint and store a single file
- ProgressTracker: Scan result aggregator
- ScanPipeline / scan_folder: Scan a folder into the store
- has_heif_support: Check if HEIC/HEIF support is available
"""

from __future__ import annotations

# Dependencies first: other modules in the package tree read its flags
from .dependencies import HAS_HEIF_SUPPORT, HAS_RAWPY
from .hashing import (
    compute_average_hash,
    compute_perceptual_hash,
    hamming_distance,
    pixel_similarity,
    to_grayscale,
)
from .file_discovery import find_image_files, iter_image_files
from .processing import process_scan_task
from .progress import ProgressTracker
from .pipeline import ScanPipeline, scan_folder


def has_heif_support() -> bool:
    """Check if HEIC/HEIF support is available."""
    return HAS_HEIF_SUPPORT


def has_rawpy_support() -> bool:
    """Check if rawpy RAW decoding is available."""
    return HAS_RAWPY


__all__ = [
    # File discovery
    'find_image_files',
    'iter_image_files',
    # Fingerprint engine
    'compute_average_hash',
    'compute_perceptual_hash',
    'hamming_distance',
    'pixel_similarity',
    'to_grayscale',
    # Pipeline
    'process_scan_task',
    'ProgressTracker',
    'ScanPipeline',
    'scan_folder',
    # Feature detection
    'has_heif_support',
    'has_rawpy_support',
]

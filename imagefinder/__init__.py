"""
Image Finder
============
Index large photo collections into perceptual fingerprints and find
visually similar images, including camera RAW originals and their exports.

Features:
- Average hash + DCT perceptual hash per image
- Incremental, bounded-concurrency folder scans into SQLite
- Two-stage search: hash prefilter + concurrent pixel verification
- RAW (rawpy, exiftool, dcraw), TIFF and HEIC support
- CLI for automation
"""

__version__ = "1.0.0"

# The scanner package initializes optional dependencies (pillow-heif,
# rawpy, tqdm) that the format classifier and decoders read, so it is
# imported first.
from .scanner import (
    compute_average_hash,
    compute_perceptual_hash,
    hamming_distance,
    pixel_similarity,
    find_image_files,
    ScanPipeline,
    scan_folder,
)
from .models import (
    FormatCategory,
    FingerprintRecord,
    ScanTask,
    ScanResult,
    ScanStatus,
    ScanSummary,
    SearchQuery,
    MatchCandidate,
    MatchResult,
    SearchStats,
)
from .errors import (
    ImageFinderError,
    DecodeError,
    EmptyImageError,
    StoreError,
    PathAccessError,
    RuntimeFault,
)
from .formats import classify, is_supported_image
from .decoders import DecoderRegistry, ImageDecoder
from .database import FingerprintStore
from .search import SimilaritySearchEngine, find_similar_images

__all__ = [
    "FormatCategory",
    "FingerprintRecord",
    "ScanTask",
    "ScanResult",
    "ScanStatus",
    "ScanSummary",
    "SearchQuery",
    "MatchCandidate",
    "MatchResult",
    "SearchStats",
    "ImageFinderError",
    "DecodeError",
    "EmptyImageError",
    "StoreError",
    "PathAccessError",
    "RuntimeFault",
    "classify",
    "is_supported_image",
    "compute_average_hash",
    "compute_perceptual_hash",
    "hamming_distance",
    "pixel_similarity",
    "find_image_files",
    "DecoderRegistry",
    "ImageDecoder",
    "FingerprintStore",
    "ScanPipeline",
    "scan_folder",
    "SimilaritySearchEngine",
    "find_similar_images",
]

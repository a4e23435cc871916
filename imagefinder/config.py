"""
Configuration constants for Image Finder.

This module contains all configurable settings including:
- Supported image extensions, grouped by format category
- Fingerprint grid sizes
- Candidate prefilter bounds and acceptance thresholds
- Worker pool and result queue defaults
"""

import os

# Standard formats decoded directly by Pillow
STANDARD_EXTENSIONS = {
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp',
}

# HEIC/HEIF are standard formats, but only readable with pillow-heif
HEIF_EXTENSIONS = {'.heic', '.heif'}

# TIFF originals (often 16-bit, sometimes multi-page)
TIFF_EXTENSIONS = {'.tif', '.tiff'}

# Camera RAW formats
RAW_EXTENSIONS = {
    '.dng', '.raf', '.arw', '.nef', '.cr2', '.cr3', '.nrw', '.srf', '.raw',
}

# Fingerprint grids
# Average hash: 8x8 samples -> 64 bits -> 16 hex characters
AVERAGE_HASH_SIZE = 8
# Perceptual hash: 32x32 grid, 8x8 low-frequency DCT block
PERCEPTUAL_GRID_SIZE = 32
PERCEPTUAL_HASH_SIZE = 8
HASH_BITS = AVERAGE_HASH_SIZE * AVERAGE_HASH_SIZE
HASH_HEX_LENGTH = HASH_BITS // 4

# DCT coefficients are rounded to this many decimals before the median
# comparison so both DCT backends agree bit-for-bit
DCT_ROUNDING_DECIMALS = 6

# Candidate prefilter bounds (max Hamming distance, out of 64 bits)
# Same general class: both RAW or both non-RAW
SAME_FORMAT_AVERAGE_BOUND = 10
SAME_FORMAT_PERCEPTUAL_BOUND = 12
# One RAW, one non-RAW: demosaicing/tone-mapping diverges from the export
CROSS_FORMAT_AVERAGE_BOUND = 15
CROSS_FORMAT_PERCEPTUAL_BOUND = 18
# Related filenames on a cross-format pair disable the bound entirely
DISABLED_BOUND = HASH_BITS

# Pixel similarity acceptance
DEFAULT_SEARCH_THRESHOLD = 0.8
# Cross-format pairs are accepted at threshold * factor
CROSS_FORMAT_THRESHOLD_FACTOR = 0.8

# Number of top matches printed by the CLI
DEFAULT_MATCH_DISPLAY_LIMIT = 5


def _optimal_workers() -> int:
    """Three quarters of the available CPUs, at least one."""
    return max(1, ((os.cpu_count() or 1) * 3) // 4)


# Default number of parallel workers for scan and search verification
DEFAULT_WORKERS = _optimal_workers()

# Bounded result queue between workers and the aggregator
RESULT_QUEUE_SIZE = 100

# Seconds a worker waits to hand a result to the queue before the
# result is recorded directly (and counted as a queue overflow)
RESULT_QUEUE_TIMEOUT = 30.0

# Seconds the traversal waits for a free worker slot, and how many times
SLOT_ACQUIRE_TIMEOUT = 60.0
SLOT_ACQUIRE_ATTEMPTS = 5

# Progress display interval in seconds
PROGRESS_INTERVAL = 0.5

# Warn once when a scan accumulates this many store failures
STORE_ERROR_WARNING_THRESHOLD = 10

# Timeout for external converter tools (exiftool, dcraw)
EXTERNAL_TOOL_TIMEOUT = 120

# Decompression bomb limit for large originals (500 megapixels)
MAX_IMAGE_PIXELS = 500_000_000

# SQLite fingerprint database location
DEFAULT_DB_FILE = os.path.join(os.path.expanduser('~'), '.imagefinder', 'images.db')

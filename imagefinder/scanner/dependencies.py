"""
Dependency initialization for Image Finder.

Handles PIL, imagehash, numpy, HEIC/HEIF support, rawpy, and tqdm imports with
proper error handling and configuration.
"""

from __future__ import annotations

import warnings
import logging
from typing import Optional, Any

from ..config import MAX_IMAGE_PIXELS

# Module-level logger
_logger = logging.getLogger(__name__)

# Check for required dependencies
try:
    from PIL import Image, ImageOps
    import imagehash
    import numpy as np
except ImportError:
    raise ImportError(
        "Required packages not found!\n"
        "Install with: pip install Pillow imagehash numpy"
    )

# Register HEIC/HEIF support via pillow-heif
# This must be done before opening any HEIC files
HAS_HEIF_SUPPORT = False
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
    HAS_HEIF_SUPPORT = True
    _logger.debug("HEIC/HEIF support enabled via pillow-heif")
except ImportError:
    _logger.warning(
        "pillow-heif not installed - HEIC/HEIF files will not be indexed. "
        "Install with: pip install pillow-heif"
    )

# Camera RAW decoding via rawpy (LibRaw); exiftool/dcraw are used without it
HAS_RAWPY = False
rawpy: Optional[Any] = None
try:
    import rawpy
    HAS_RAWPY = True
except ImportError:
    _logger.warning(
        "rawpy not installed - RAW files will be decoded with exiftool/dcraw only. "
        "Install with: pip install rawpy"
    )

# Camera originals and high-resolution scans exceed PIL's default ~89MP limit
Image.MAX_IMAGE_PIXELS = MAX_IMAGE_PIXELS

# DecompressionBombWarning: the limit was raised above deliberately
warnings.filterwarnings("ignore", category=Image.DecompressionBombWarning)

# Optional: tqdm for progress bars
HAS_TQDM = False
_tqdm_class: Optional[Any] = None

try:
    from tqdm import tqdm as _tqdm_import
    HAS_TQDM = True
    _tqdm_class = _tqdm_import
except ImportError:
    pass


__all__ = [
    'Image',
    'ImageOps',
    'imagehash',
    'np',
    'HAS_HEIF_SUPPORT',
    'HAS_RAWPY',
    'rawpy',
    'HAS_TQDM',
    '_tqdm_class',
    '_logger',
]

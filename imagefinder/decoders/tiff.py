"""
TIFF decoder.

Scanner and camera TIFFs are often 16-bit or floating point; those are
rescaled to 8-bit before conversion to grayscale. When Pillow cannot read
the file at all, the embedded preview or thumbnail is extracted with
exiftool.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import DecodeError
from ..scanner.dependencies import Image, np
from ..scanner.hashing import to_grayscale
from .base import ImageDecoder
from .external import extract_with_tool
from .standard import open_with_pillow

logger = logging.getLogger(__name__)

# Preview tags tried in order when the TIFF itself is unreadable
TIFF_PREVIEW_TAGS = ('PreviewImage', 'ThumbnailImage')

# Modes Pillow cannot convert to 'L' without clipping
_WIDE_MODES = ('I', 'I;16', 'I;16B', 'I;16L', 'I;16N', 'F')


def rescale_to_8bit(image: Image.Image) -> Image.Image:
    """
    Stretch a 16-bit/32-bit/float single-channel image into 0-255.

    Images in other modes are returned unchanged.
    """
    if image.mode not in _WIDE_MODES:
        return image
    data = np.asarray(image, dtype=np.float64)
    low = float(data.min()) if data.size else 0.0
    high = float(data.max()) if data.size else 0.0
    if high <= low:
        scaled = np.zeros(data.shape, dtype=np.uint8)
    else:
        scaled = ((data - low) * (255.0 / (high - low))).clip(0, 255).astype(np.uint8)
    return Image.fromarray(scaled)


class TiffDecoder(ImageDecoder):
    """Pillow first, exiftool preview extraction as fallback."""

    name = "tiff"

    def decode(self, path: str | Path) -> Image.Image:
        try:
            image = open_with_pillow(path)
            if image.width == 0 or image.height == 0:
                raise DecodeError("Decoded TIFF is empty", path=str(path))
            return to_grayscale(rescale_to_8bit(image))
        except DecodeError as e:
            logger.debug(f"Pillow could not read TIFF {path}: {e}; trying embedded preview")
            direct_error = e

        for tag in TIFF_PREVIEW_TAGS:
            try:
                image = extract_with_tool(['exiftool', '-b', f'-{tag}', str(path)])
                logger.debug(f"Using {tag} from {path}")
                return to_grayscale(image)
            except DecodeError as e:
                logger.debug(f"exiftool -{tag} failed for {path}: {e}")

        raise DecodeError(f"All TIFF strategies failed ({direct_error})", path=str(path))


__all__ = [
    'TIFF_PREVIEW_TAGS',
    'rescale_to_8bit',
    'TiffDecoder',
]

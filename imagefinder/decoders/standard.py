"""
Decoder for formats Pillow reads directly (JPEG, PNG, GIF, BMP, WebP, HEIC).
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import DecodeError
from ..scanner.dependencies import Image, ImageOps
from ..scanner.hashing import to_grayscale
from .base import ImageDecoder

logger = logging.getLogger(__name__)


def open_with_pillow(path: str | Path) -> Image.Image:
    """
    Open and fully load an image, applying its EXIF orientation.

    Raises:
        DecodeError: If the file is unreadable, truncated or not an image
    """
    try:
        with Image.open(path) as img:
            # Force load to detect truncated/corrupt images early
            img.load()
            oriented = ImageOps.exif_transpose(img)
            return oriented.copy() if oriented is img else oriented
    except Image.UnidentifiedImageError as e:
        raise DecodeError(f"Unidentified image format: {e}", path=str(path))
    except Image.DecompressionBombError as e:
        raise DecodeError(f"Image too large: {e}", path=str(path))
    except (OSError, ValueError, SyntaxError) as e:
        raise DecodeError(f"Cannot decode image: {e}", path=str(path))


class StandardDecoder(ImageDecoder):
    """Pillow decoder returning 8-bit grayscale."""

    name = "pillow"

    def decode(self, path: str | Path) -> Image.Image:
        image = open_with_pillow(path)
        if image.width == 0 or image.height == 0:
            raise DecodeError("Decoded image is empty", path=str(path))
        return to_grayscale(image)


__all__ = [
    'open_with_pillow',
    'StandardDecoder',
]

"""
Camera RAW decoder.

Strategies are tried in order until one yields an image:

1. rawpy embedded thumbnail (usually the camera's full-size JPEG preview)
2. rawpy demosaic with camera white balance
3. exiftool preview extraction (CR3: LargePreviewImage first)
4. dcraw conversion to TIFF on stdout
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Callable

from ..errors import DecodeError
from ..formats import get_extension
from ..scanner.dependencies import Image, ImageOps, HAS_RAWPY, rawpy
from ..scanner.hashing import to_grayscale
from .base import ImageDecoder
from .external import extract_with_tool, tool_available
from .tiff import rescale_to_8bit

logger = logging.getLogger(__name__)

# exiftool preview tags, most useful first
PREVIEW_TAGS = ('PreviewImage', 'JpgFromRaw', 'LargestImagePreview', 'ThumbnailImage')
CR3_PREVIEW_TAGS = ('LargePreviewImage',) + PREVIEW_TAGS

Strategy = Callable[[str], Image.Image]


def _rawpy_errors() -> tuple[type[BaseException], ...]:
    errors: tuple[type[BaseException], ...] = (
        OSError, ValueError, RuntimeError, Image.DecompressionBombError,
    )
    if HAS_RAWPY:
        errors += (rawpy.LibRawError,)
    return errors


def decode_rawpy_thumbnail(path: str) -> Image.Image:
    """Decode the thumbnail embedded by the camera."""
    try:
        with rawpy.imread(path) as raw:
            thumb = raw.extract_thumb()
            if thumb.format == rawpy.ThumbFormat.JPEG:
                image = Image.open(BytesIO(thumb.data))
                image.load()
                return ImageOps.exif_transpose(image)
            return Image.fromarray(thumb.data)
    except _rawpy_errors() as e:
        raise DecodeError(f"rawpy thumbnail: {e}", path=path)


def decode_rawpy_postprocess(path: str) -> Image.Image:
    """Demosaic the sensor data."""
    try:
        with rawpy.imread(path) as raw:
            rgb = raw.postprocess(use_camera_wb=True, output_bps=8)
        return Image.fromarray(rgb)
    except _rawpy_errors() as e:
        raise DecodeError(f"rawpy postprocess: {e}", path=path)


def decode_exiftool_preview(path: str) -> Image.Image:
    """Extract the first preview tag exiftool can find."""
    tags = CR3_PREVIEW_TAGS if get_extension(path) == '.cr3' else PREVIEW_TAGS
    last_error: DecodeError | None = None
    for tag in tags:
        try:
            return extract_with_tool(['exiftool', '-b', f'-{tag}', path])
        except DecodeError as e:
            logger.debug(f"exiftool -{tag} failed for {path}: {e}")
            last_error = e
    raise DecodeError(f"exiftool: no usable preview ({last_error})", path=path)


def decode_dcraw(path: str) -> Image.Image:
    """Convert with dcraw (camera white balance, 16-bit TIFF on stdout)."""
    image = extract_with_tool(['dcraw', '-c', '-w', '-T', path], suffix='.tiff')
    return rescale_to_8bit(image)


class RawDecoder(ImageDecoder):
    """Tries each available RAW strategy in turn."""

    name = "raw"

    def strategies(self) -> list[tuple[str, Strategy]]:
        found: list[tuple[str, Strategy]] = []
        if HAS_RAWPY:
            found.append(('rawpy-thumbnail', decode_rawpy_thumbnail))
            found.append(('rawpy-postprocess', decode_rawpy_postprocess))
        if tool_available('exiftool'):
            found.append(('exiftool', decode_exiftool_preview))
        if tool_available('dcraw'):
            found.append(('dcraw', decode_dcraw))
        return found

    def decode(self, path: str | Path) -> Image.Image:
        path = str(path)
        strategies = self.strategies()
        if not strategies:
            raise DecodeError("No RAW decoder available (install rawpy, exiftool or dcraw)", path=path)

        failures = []
        for name, strategy in strategies:
            try:
                image = strategy(path)
            except DecodeError as e:
                logger.debug(f"RAW strategy {name} failed for {path}: {e}")
                failures.append(name)
                continue
            if image.width == 0 or image.height == 0:
                logger.debug(f"RAW strategy {name} returned an empty image for {path}")
                failures.append(name)
                continue
            if failures:
                logger.debug(f"Decoded {path} with {name} after {', '.join(failures)} failed")
            return to_grayscale(image)

        raise DecodeError(f"All RAW strategies failed: {', '.join(failures)}", path=path)


__all__ = [
    'PREVIEW_TAGS',
    'CR3_PREVIEW_TAGS',
    'decode_rawpy_thumbnail',
    'decode_rawpy_postprocess',
    'decode_exiftool_preview',
    'decode_dcraw',
    'RawDecoder',
]

"""
Format classification for Image Finder.

Maps a file path to a format category (standard / RAW / TIFF / unsupported)
from its extension. Classification never decodes the file; support checks
only look at the extension and whether the file exists.
"""

from __future__ import annotations

import os
from pathlib import Path

from .config import (
    STANDARD_EXTENSIONS,
    HEIF_EXTENSIONS,
    TIFF_EXTENSIONS,
    RAW_EXTENSIONS,
)
from .models import FormatCategory
from .scanner.dependencies import HAS_HEIF_SUPPORT


def _standard_extensions() -> set[str]:
    """Standard extensions, with HEIC/HEIF only when pillow-heif is available."""
    if HAS_HEIF_SUPPORT:
        return STANDARD_EXTENSIONS | HEIF_EXTENSIONS
    return set(STANDARD_EXTENSIONS)


def get_extension(path: str | Path) -> str:
    """Lowercase extension including the dot ('' if none)."""
    return os.path.splitext(str(path))[1].lower()


def get_file_format(path: str | Path) -> str:
    """Lowercase extension without the dot, as stored in fingerprint records."""
    return get_extension(path).lstrip('.')


def classify(path: str | Path) -> FormatCategory:
    """
    Classify a path by extension.

    Args:
        path: File path (need not exist)

    Returns:
        FormatCategory for the extension

    Examples:
        >>> classify('/photos/IMG_0042.CR2')
        <FormatCategory.RAW: 'raw'>
        >>> classify('/photos/notes.txt')
        <FormatCategory.UNSUPPORTED: 'unsupported'>
    """
    ext = get_extension(path)
    if ext in RAW_EXTENSIONS:
        return FormatCategory.RAW
    if ext in TIFF_EXTENSIONS:
        return FormatCategory.TIFF
    if ext in _standard_extensions():
        return FormatCategory.STANDARD
    return FormatCategory.UNSUPPORTED


def is_supported_image(path: str | Path) -> bool:
    """True if the path has a supported extension and is an existing regular file."""
    if classify(path) == FormatCategory.UNSUPPORTED:
        return False
    return os.path.isfile(path)


def is_raw_format(path: str | Path) -> bool:
    return classify(path) == FormatCategory.RAW


def is_tiff_format(path: str | Path) -> bool:
    return classify(path) == FormatCategory.TIFF


def supported_extensions() -> set[str]:
    """All extensions the classifier accepts."""
    return _standard_extensions() | TIFF_EXTENSIONS | RAW_EXTENSIONS


__all__ = [
    'get_extension',
    'get_file_format',
    'classify',
    'is_supported_image',
    'is_raw_format',
    'is_tiff_format',
    'supported_extensions',
]

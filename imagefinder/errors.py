"""
Error taxonomy for Image Finder.

Per-file errors (DecodeError, EmptyImageError, StoreError, RuntimeFault) are
contained at the task boundary and reported as data in ScanResult objects.
PathAccessError, and StoreError raised while opening the store, abort the
whole operation and propagate to the caller.
"""

from __future__ import annotations


class ImageFinderError(Exception):
    """Base class for all Image Finder errors."""


class DecodeError(ImageFinderError):
    """An image could not be turned into a usable grayscale buffer."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class EmptyImageError(ImageFinderError):
    """A decoded image has zero width or height."""


class StoreError(ImageFinderError):
    """The persistent store failed to read or write a record."""


class PathAccessError(ImageFinderError):
    """A root folder or query file is missing or unreadable."""


class RuntimeFault(ImageFinderError):
    """An unexpected exception raised while processing a single file."""

    def __init__(self, message: str, original: BaseException | None = None):
        super().__init__(message)
        self.original = original


__all__ = [
    'ImageFinderError',
    'DecodeError',
    'EmptyImageError',
    'StoreError',
    'PathAccessError',
    'RuntimeFault',
]

"""
File discovery module for the scanner package.

Walks a root folder and enumerates supported image files together with
their format category. Unsupported files are skipped silently; errors on
individual directory entries are logged and the walk continues.
"""

from __future__ import annotations

import os
import logging
from pathlib import Path
from typing import Iterator

from ..errors import PathAccessError
from ..formats import classify
from ..models import FormatCategory

logger = logging.getLogger(__name__)


def check_root_folder(root_path: str | Path) -> str:
    """
    Validate a scan root.

    Args:
        root_path: Folder to scan

    Returns:
        Absolute path of the folder

    Raises:
        PathAccessError: If the folder is missing, not a directory, or unreadable
    """
    root = os.path.abspath(os.path.expanduser(str(root_path)))
    if not os.path.exists(root):
        raise PathAccessError(f"Folder does not exist: {root}")
    if not os.path.isdir(root):
        raise PathAccessError(f"Not a directory: {root}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise PathAccessError(f"Folder is not readable: {root}")
    return root


def _log_walk_error(error: OSError) -> None:
    logger.warning(f"Cannot read {error.filename}: {error.strerror or error}")


def iter_image_files(
    root_path: str | Path,
    recursive: bool = True,
) -> Iterator[tuple[str, FormatCategory]]:
    """
    Yield (path, category) for every supported image under a folder.

    Args:
        root_path: Directory path to search for images
        recursive: If True, search subdirectories recursively

    Yields:
        Absolute file path and its FormatCategory

    Raises:
        PathAccessError: If the root folder itself is inaccessible
    """
    root = check_root_folder(root_path)
    seen = set()  # Track resolved paths so symlinked duplicates are visited once

    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        if not recursive:
            dirnames[:] = []
        dirnames.sort()
        for name in sorted(filenames):
            filepath = os.path.join(dirpath, name)
            category = classify(filepath)
            if category == FormatCategory.UNSUPPORTED:
                continue
            if not os.path.isfile(filepath):
                continue
            resolved = os.path.realpath(filepath)
            if resolved in seen:
                continue
            seen.add(resolved)
            yield filepath, category


def find_image_files(
    root_path: str | Path,
    recursive: bool = True,
) -> list[tuple[str, FormatCategory]]:
    """
    Find all supported image files in the given directory.

    Returns:
        List of (absolute path, FormatCategory) in walk order

    Raises:
        PathAccessError: If the root folder itself is inaccessible
    """
    return list(iter_image_files(root_path, recursive))


def count_by_category(files: list[tuple[str, FormatCategory]]) -> dict[FormatCategory, int]:
    """Count discovered files per format category."""
    counts = {category: 0 for category in FormatCategory}
    for _, category in files:
        counts[category] += 1
    return counts


__all__ = [
    'check_root_folder',
    'iter_image_files',
    'find_image_files',
    'count_by_category',
]

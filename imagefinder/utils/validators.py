"""
Input validation for Image Finder.

Validators return (is_valid, error_message) tuples so callers can report
problems without exceptions.
"""

from __future__ import annotations

import os
from typing import Any


def validate_directory(directory: str) -> tuple[bool, str]:
    """
    Validate that a directory exists and is readable.

    Examples:
        >>> validate_directory('/nonexistent/directory')
        (False, 'Directory not found: /nonexistent/directory')
    """
    if not directory:
        return False, "Directory path is required"

    if not os.path.exists(directory):
        return False, f"Directory not found: {directory}"

    if not os.path.isdir(directory):
        return False, f"Path is not a directory: {directory}"

    if not os.access(directory, os.R_OK | os.X_OK):
        return False, f"Cannot read directory (permission denied): {directory}"

    return True, ""


def validate_image_file(filepath: str) -> tuple[bool, str]:
    """
    Validate that a query image exists and is readable.

    Examples:
        >>> validate_image_file('/nonexistent/file.jpg')
        (False, 'Image not found: /nonexistent/file.jpg')
    """
    if not filepath:
        return False, "Image path is required"

    if not os.path.exists(filepath):
        return False, f"Image not found: {filepath}"

    if not os.path.isfile(filepath):
        return False, f"Path is not a file: {filepath}"

    if not os.access(filepath, os.R_OK):
        return False, f"Image is not readable (permission denied): {filepath}"

    return True, ""


def validate_threshold(threshold: Any) -> tuple[bool, str]:
    """
    Validate a similarity threshold (0.0-1.0).

    Examples:
        >>> validate_threshold(0.8)
        (True, '')
        >>> validate_threshold(80)
        (False, 'Threshold must be between 0.0 and 1.0')
    """
    try:
        threshold = float(threshold)
    except (ValueError, TypeError):
        return False, "Threshold must be a number"
    if not 0.0 <= threshold <= 1.0:
        return False, "Threshold must be between 0.0 and 1.0"
    return True, ""


def validate_workers(workers: Any) -> tuple[bool, str]:
    """
    Validate a worker count.

    Examples:
        >>> validate_workers(0)
        (False, 'Workers must be between 1 and 256')
    """
    try:
        workers = int(workers)
    except (ValueError, TypeError):
        return False, "Workers must be an integer"
    if not 1 <= workers <= 256:
        return False, "Workers must be between 1 and 256"
    return True, ""


__all__ = [
    'validate_directory',
    'validate_image_file',
    'validate_threshold',
    'validate_workers',
]

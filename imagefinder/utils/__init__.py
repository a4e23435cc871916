"""
Utilities package for Image Finder.

Provides:
- formatters: Human-readable formatting for numbers, durations, sizes and scores
- validators: Input validation for CLI arguments
"""

from __future__ import annotations

from . import formatters
from . import validators

from .formatters import format_number, format_duration, format_score, format_size
from .validators import (
    validate_directory,
    validate_image_file,
    validate_threshold,
    validate_workers,
)

__all__ = [
    # Submodules
    'formatters',
    'validators',
    # Formatters
    'format_number',
    'format_duration',
    'format_score',
    'format_size',
    # Validators
    'validate_directory',
    'validate_image_file',
    'validate_threshold',
    'validate_workers',
]

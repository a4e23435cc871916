"""
Formatting utilities for Image Finder.

Provides human-readable formatting for counts, durations, file sizes and
similarity scores.
"""

from __future__ import annotations

# Re-export format_size from models for convenience
from ..models import format_size


def format_number(n: int) -> str:
    """
    Format large numbers with commas for readability.

    Examples:
        >>> format_number(1234567)
        '1,234,567'
    """
    return f"{n:,}"


def format_duration(seconds: float) -> str:
    """
    Format an elapsed time.

    Examples:
        >>> format_duration(0.4321)
        '0.43s'
        >>> format_duration(150)
        '2m 30s'
        >>> format_duration(3665)
        '1h 1m'
    """
    if seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        return f"{int(seconds / 60)}m {int(seconds % 60)}s"
    else:
        hours = int(seconds / 3600)
        minutes = int((seconds % 3600) / 60)
        return f"{hours}h {minutes}m"


def format_score(score: float) -> str:
    """
    Format a 0-1 similarity score as a percentage.

    Examples:
        >>> format_score(0.9876)
        '98.76%'
    """
    return f"{score * 100:.2f}%"


__all__ = ['format_number', 'format_duration', 'format_score', 'format_size']

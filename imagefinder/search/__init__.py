"""
Similarity search for Image Finder.

Public API:
- SimilaritySearchEngine: Hash prefilter + concurrent pixel verification
- find_similar_images: One-call search against the default store
- filenames_related: Filename relation heuristic (RAW original vs export)
- prefilter / select_bounds / is_raw_export_pair / effective_threshold: Prefilter building blocks
"""

from __future__ import annotations

from .filenames import filenames_related
from .candidates import (
    HashBounds,
    prefilter,
    select_bounds,
    is_raw_export_pair,
    effective_threshold,
)
from .engine import SimilaritySearchEngine, find_similar_images


__all__ = [
    'SimilaritySearchEngine',
    'find_similar_images',
    'filenames_related',
    'HashBounds',
    'prefilter',
    'select_bounds',
    'is_raw_export_pair',
    'effective_threshold',
]

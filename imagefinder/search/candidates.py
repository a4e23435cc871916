"""
Candidate prefilter for the search engine.

Compares stored hashes against the query's without decoding anything.
Bounds depend on the format relationship: RAW originals render differently
from everything else, so RAW/non-RAW pairs get wider bounds. A RAW original
and a standard export with related filenames always go on to pixel
verification, and are accepted at a reduced threshold.
"""

from __future__ import annotations

from typing import Iterable, Iterator, NamedTuple

from ..config import (
    SAME_FORMAT_AVERAGE_BOUND,
    SAME_FORMAT_PERCEPTUAL_BOUND,
    CROSS_FORMAT_AVERAGE_BOUND,
    CROSS_FORMAT_PERCEPTUAL_BOUND,
    CROSS_FORMAT_THRESHOLD_FACTOR,
    DISABLED_BOUND,
    HASH_BITS,
)
from ..formats import classify
from ..models import FingerprintRecord, FormatCategory, MatchCandidate
from ..scanner.hashing import hamming_distance
from .filenames import filenames_related


class HashBounds(NamedTuple):
    """Maximum Hamming distances for a record to become a candidate."""
    average: int
    perceptual: int


SAME_FORMAT_BOUNDS = HashBounds(SAME_FORMAT_AVERAGE_BOUND, SAME_FORMAT_PERCEPTUAL_BOUND)
CROSS_FORMAT_BOUNDS = HashBounds(CROSS_FORMAT_AVERAGE_BOUND, CROSS_FORMAT_PERCEPTUAL_BOUND)
RELATED_FILENAME_BOUNDS = HashBounds(DISABLED_BOUND, DISABLED_BOUND)

_RAW_EXPORT_PAIR = frozenset({FormatCategory.RAW, FormatCategory.STANDARD})


def is_cross_format(query_category: FormatCategory, candidate_category: FormatCategory) -> bool:
    """One side is a RAW original and the other is not."""
    return (query_category == FormatCategory.RAW) != (candidate_category == FormatCategory.RAW)


def is_raw_export_pair(query_category: FormatCategory, candidate_category: FormatCategory) -> bool:
    """One side is a RAW original and the other a standard image (JPEG, PNG, ...)."""
    return {query_category, candidate_category} == _RAW_EXPORT_PAIR


def select_bounds(cross_format: bool, related_names: bool = False) -> HashBounds:
    """
    Pick the prefilter bounds for a query/record pair.

    Args:
        cross_format: One side is RAW and the other is not
        related_names: RAW/standard pair with related base filenames
    """
    if not cross_format:
        return SAME_FORMAT_BOUNDS
    if related_names:
        return RELATED_FILENAME_BOUNDS
    return CROSS_FORMAT_BOUNDS


def effective_threshold(threshold: float, raw_export_pair: bool) -> float:
    """Acceptance threshold, relaxed for RAW/standard pairs."""
    if raw_export_pair:
        return threshold * CROSS_FORMAT_THRESHOLD_FACTOR
    return threshold


def _distance(query_hash: str, record_hash: str) -> int:
    # Records without a hash never count as close
    if not query_hash or not record_hash:
        return HASH_BITS
    return hamming_distance(query_hash, record_hash)


def _record_category(record: FingerprintRecord) -> FormatCategory:
    if record.is_raw_format:
        return FormatCategory.RAW
    return classify(record.path)


def prefilter(
    query_path: str,
    query_average_hash: str,
    query_perceptual_hash: str,
    query_category: FormatCategory,
    records: Iterable[FingerprintRecord],
) -> Iterator[MatchCandidate]:
    """
    Yield the records close enough to the query to be verified.

    A record is a candidate if either its average-hash or its
    perceptual-hash distance is within the bounds for the pair.

    Args:
        query_path: Path of the query image (for the filename heuristic)
        query_average_hash: Query's average hash
        query_perceptual_hash: Query's perceptual hash
        query_category: Format category of the query
        records: Stored records to examine

    Yields:
        MatchCandidate for each record passing the prefilter
    """
    for record in records:
        category = _record_category(record)
        cross = is_cross_format(query_category, category)
        raw_export = is_raw_export_pair(query_category, category)
        related = raw_export and filenames_related(query_path, record.path)
        bounds = select_bounds(cross, related)

        average_distance = _distance(query_average_hash, record.average_hash)
        perceptual_distance = _distance(query_perceptual_hash, record.perceptual_hash)

        if average_distance <= bounds.average or perceptual_distance <= bounds.perceptual:
            yield MatchCandidate(
                record=record,
                average_distance=average_distance,
                perceptual_distance=perceptual_distance,
                cross_format=cross,
                raw_export_pair=raw_export,
                filenames_related=related,
            )


__all__ = [
    'HashBounds',
    'SAME_FORMAT_BOUNDS',
    'CROSS_FORMAT_BOUNDS',
    'RELATED_FILENAME_BOUNDS',
    'is_cross_format',
    'is_raw_export_pair',
    'select_bounds',
    'effective_threshold',
    'prefilter',
]

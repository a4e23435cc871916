"""
Similarity search engine.

Two stages:

1. Prefilter: Hamming distances between the query's hashes and every
   stored record (optionally one source prefix), no decoding.
2. Verification: candidates are decoded concurrently and scored against
   the query with a pixel similarity function; a candidate is accepted if
   its score reaches the threshold (relaxed for RAW/non-RAW pairs).

Accepted matches are returned best first.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import DEFAULT_WORKERS, DEFAULT_SEARCH_THRESHOLD
from ..database import FingerprintStore
from ..decoders import DecoderRegistry
from ..errors import DecodeError, PathAccessError
from ..formats import classify
from ..models import (
    MatchCandidate,
    MatchResult,
    SearchQuery,
    SearchStats,
)
from ..scanner.dependencies import Image
from ..scanner.hashing import (
    compute_average_hash,
    compute_perceptual_hash,
    pixel_similarity,
)
from .candidates import prefilter, effective_threshold

logger = logging.getLogger(__name__)

SimilarityFunction = Callable[[Image.Image, Image.Image], float]

# Verification outcomes
VERIFIED = "verified"
MISSING = "missing"
DECODE_FAILED = "decode_failed"
FAULT = "fault"


@dataclass
class _Verification:
    candidate: MatchCandidate
    outcome: str
    score: float = 0.0


class SimilaritySearchEngine:
    """
    Finds indexed images similar to a query image.

    Usage:
        engine = SimilaritySearchEngine(store)
        for match in engine.search('/exports/IMG_0042.jpg', threshold=0.8):
            print(match.path, match.similarity_score)
    """

    def __init__(
        self,
        store: FingerprintStore,
        decoders: Optional[DecoderRegistry] = None,
        max_workers: int = DEFAULT_WORKERS,
        similarity_fn: SimilarityFunction = pixel_similarity,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            store: Store to search (read only)
            decoders: Format category -> decoder mapping (default decoders if None)
            max_workers: Maximum concurrent candidate verifications
            similarity_fn: Score function for (query image, candidate image)
            cancel_event: When set, no further verifications are started
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.store = store
        self.decoders = decoders or DecoderRegistry.default()
        self.max_workers = max_workers
        self.similarity_fn = similarity_fn
        self.cancel_event = cancel_event or threading.Event()

    def search(
        self,
        query_path: str,
        threshold: float = DEFAULT_SEARCH_THRESHOLD,
        source_prefix: str = "",
    ) -> list[MatchResult]:
        """
        Find stored images similar to the query.

        Args:
            query_path: Image to search for
            threshold: Minimum similarity (0.0-1.0)
            source_prefix: Only search records with this source label ('' for all)

        Returns:
            Matches sorted by descending similarity score

        Raises:
            ValueError: If threshold is outside 0.0-1.0
            PathAccessError: If the query file does not exist
            DecodeError: If the query image cannot be decoded
        """
        matches, _ = self.search_with_stats(query_path, threshold, source_prefix)
        return matches

    def run(self, query: SearchQuery) -> list[MatchResult]:
        """Search with a SearchQuery object."""
        return self.search(query.path, query.threshold, query.source_prefix)

    def search_with_stats(
        self,
        query_path: str,
        threshold: float = DEFAULT_SEARCH_THRESHOLD,
        source_prefix: str = "",
    ) -> tuple[list[MatchResult], SearchStats]:
        """Like search(), also returning SearchStats for the run."""
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be between 0.0 and 1.0, got {threshold}")
        if not os.path.isfile(query_path):
            raise PathAccessError(f"Query image does not exist: {query_path}")

        started = time.time()
        query_category = classify(query_path)
        query_image = self.decoders.decode(query_path, query_category)
        query_average = compute_average_hash(query_image)
        query_perceptual = compute_perceptual_hash(query_image)
        logger.debug(
            f"Query {query_path}: average={query_average} perceptual={query_perceptual}"
        )

        stats = SearchStats()

        def _examined(records):
            for record in records:
                stats.records_examined += 1
                yield record

        candidates = list(prefilter(
            query_path,
            query_average,
            query_perceptual,
            query_category,
            _examined(self.store.query_by_prefix(source_prefix or "")),
        ))
        stats.candidates = len(candidates)
        stats.raw_candidates = sum(1 for c in candidates if c.record.is_raw_format)
        logger.info(
            f"Prefilter: {stats.candidates:,} of {stats.records_examined:,} records "
            f"are candidates ({stats.raw_candidates:,} RAW)"
        )

        matches: list[MatchResult] = []
        for verification in self._verify_all(query_image, candidates):
            candidate = verification.candidate
            if verification.outcome == MISSING:
                stats.missing += 1
                continue
            if verification.outcome == DECODE_FAILED:
                stats.decode_failures += 1
                continue
            if verification.outcome == FAULT:
                stats.faults += 1
                continue

            stats.verified += 1
            required = effective_threshold(threshold, candidate.raw_export_pair)
            if verification.score >= required:
                stats.accepted += 1
                matches.append(MatchResult(
                    path=candidate.record.path,
                    source_prefix=candidate.record.source_prefix,
                    similarity_score=verification.score,
                    is_raw_format=candidate.record.is_raw_format,
                ))
            else:
                logger.debug(
                    f"Rejected {candidate.record.path}: similarity "
                    f"{verification.score:.4f} < {required:.4f}"
                )

        matches.sort(key=lambda m: m.similarity_score, reverse=True)
        logger.info(
            f"Search complete: {stats.accepted:,} matches from {stats.verified:,} verified "
            f"candidates in {time.time() - started:.2f}s"
        )
        return matches, stats

    def _verify_all(
        self,
        query_image: Image.Image,
        candidates: list[MatchCandidate],
    ) -> list[_Verification]:
        if not candidates:
            return []

        verifications: list[_Verification] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {}
            for candidate in candidates:
                if self.cancel_event.is_set():
                    logger.warning("Search cancelled - remaining candidates not verified")
                    break
                futures[executor.submit(self._verify, query_image, candidate)] = candidate

            for future in as_completed(futures):
                try:
                    verifications.append(future.result())
                except Exception as e:
                    candidate = futures[future]
                    logger.error(f"Unexpected error verifying {candidate.record.path}: {e}")
                    verifications.append(_Verification(candidate, FAULT))
        return verifications

    def _verify(self, query_image: Image.Image, candidate: MatchCandidate) -> _Verification:
        path = candidate.record.path
        if not os.path.exists(path):
            logger.debug(f"Candidate no longer on disk: {path}")
            return _Verification(candidate, MISSING)

        try:
            image = self.decoders.decode(path)
        except DecodeError as e:
            logger.warning(f"Cannot decode candidate {path}: {e}")
            return _Verification(candidate, DECODE_FAILED)

        return _Verification(candidate, VERIFIED, self.similarity_fn(query_image, image))


def find_similar_images(
    query_path: str,
    threshold: float = DEFAULT_SEARCH_THRESHOLD,
    source_prefix: str = "",
    store: Optional[FingerprintStore] = None,
    decoders: Optional[DecoderRegistry] = None,
    max_workers: int = DEFAULT_WORKERS,
) -> list[MatchResult]:
    """
    Search the store for images similar to query_path.

    Args:
        query_path: Image to search for
        threshold: Minimum similarity (0.0-1.0)
        source_prefix: Only search records with this source label ('' for all)
        store: Store to search (default database if None)
        decoders: Decoder configuration (default decoders if None)
        max_workers: Maximum concurrent candidate verifications

    Returns:
        Matches sorted by descending similarity score
    """
    engine = SimilaritySearchEngine(
        store if store is not None else FingerprintStore(),
        decoders=decoders,
        max_workers=max_workers,
    )
    return engine.search(query_path, threshold, source_prefix)


__all__ = ['SimilaritySearchEngine', 'find_similar_images']

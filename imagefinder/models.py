"""
Data models for Image Finder.

Contains dataclasses for fingerprint records, scan tasks and results,
and search queries, candidates and matches.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import os

from .config import DEFAULT_SEARCH_THRESHOLD


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


def format_timestamp(timestamp: float) -> str:
    """Format an epoch timestamp as an RFC 3339 string (UTC)."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class FormatCategory(str, Enum):
    """Format category of an image file, decided from its extension."""
    STANDARD = "standard"
    RAW = "raw"
    TIFF = "tiff"
    UNSUPPORTED = "unsupported"


class ScanStatus(str, Enum):
    """Terminal state of one scan task."""
    STORED = "stored"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FingerprintRecord:
    """
    The durable unit of the index: one record per (path, source_prefix).

    Attributes:
        path: Full path to the image file
        source_prefix: Caller-supplied label partitioning the index
        format: Lowercase file extension without the dot (e.g. 'cr2')
        width: Decoded image width in pixels
        height: Decoded image height in pixels
        size: File size in bytes
        modified_at: Source file modification time (epoch seconds)
        created_at: Time the record was written (epoch seconds)
        average_hash: 16 hex character average hash
        perceptual_hash: 16 hex character DCT perceptual hash
        is_raw_format: True for camera RAW originals
    """
    path: str
    source_prefix: str = ""
    format: str = ""
    width: int = 0
    height: int = 0
    size: int = 0
    modified_at: float = 0.0
    created_at: float = 0.0
    average_hash: str = ""
    perceptual_hash: str = ""
    is_raw_format: bool = False

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the record in the store."""
        return (self.path, self.source_prefix)

    @property
    def filename(self) -> str:
        """Return just the filename portion of the path."""
        return os.path.basename(self.path)

    @property
    def resolution(self) -> str:
        """Return resolution as 'WxH' string."""
        return f"{self.width}x{self.height}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'path': self.path,
            'source_prefix': self.source_prefix,
            'filename': self.filename,
            'format': self.format,
            'width': self.width,
            'height': self.height,
            'resolution': self.resolution,
            'size': self.size,
            'size_formatted': format_size(self.size),
            'modified_at': format_timestamp(self.modified_at),
            'created_at': format_timestamp(self.created_at),
            'average_hash': self.average_hash,
            'perceptual_hash': self.perceptual_hash,
            'is_raw_format': self.is_raw_format,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'FingerprintRecord':
        """Create FingerprintRecord from dictionary."""
        def _timestamp(value) -> float:
            if isinstance(value, str):
                return datetime.fromisoformat(value).timestamp()
            return float(value or 0.0)

        return cls(
            path=data['path'],
            source_prefix=data.get('source_prefix') or "",
            format=data.get('format', ''),
            width=data.get('width', 0),
            height=data.get('height', 0),
            size=data.get('size', 0),
            modified_at=_timestamp(data.get('modified_at')),
            created_at=_timestamp(data.get('created_at')),
            average_hash=data.get('average_hash', ''),
            perceptual_hash=data.get('perceptual_hash', ''),
            is_raw_format=bool(data.get('is_raw_format', False)),
        )


@dataclass
class ScanTask:
    """A file path plus the options governing its processing."""
    path: str
    source_prefix: str = ""
    force_rewrite: bool = False
    category: FormatCategory = FormatCategory.STANDARD


@dataclass
class ScanResult:
    """
    Outcome of one ScanTask, consumed exactly once by the aggregator.

    Attributes:
        path: Path of the processed file
        status: stored, skipped or failed
        error: Error message if processing failed
        error_kind: Name of the error class (DecodeError, StoreError, ...)
        is_raw: File is a camera RAW original
        is_tif: File is a TIFF
        decoded: The file was decoded (False for skipped files)
    """
    path: str
    status: ScanStatus = ScanStatus.FAILED
    error: Optional[str] = None
    error_kind: Optional[str] = None
    is_raw: bool = False
    is_tif: bool = False
    decoded: bool = False

    @property
    def success(self) -> bool:
        """Skipped files count as successes."""
        return self.status != ScanStatus.FAILED

    @classmethod
    def failure(cls, task: ScanTask, exc: BaseException, decoded: bool = False) -> 'ScanResult':
        """Build a failed result from the exception that ended the task."""
        return cls(
            path=task.path,
            status=ScanStatus.FAILED,
            error=str(exc) or exc.__class__.__name__,
            error_kind=exc.__class__.__name__,
            is_raw=task.category == FormatCategory.RAW,
            is_tif=task.category == FormatCategory.TIFF,
            decoded=decoded,
        )


@dataclass
class ScanSummary:
    """
    Aggregate outcome of a scan.

    total_processed counts every result that reached the aggregator:
    stored + skipped + errors == total_processed.
    """
    total_files: int = 0
    total_processed: int = 0
    stored: int = 0
    skipped: int = 0
    errors: int = 0
    decoded: int = 0
    raw_files: int = 0
    raw_count: int = 0
    raw_errors: int = 0
    tif_files: int = 0
    tif_count: int = 0
    tif_errors: int = 0
    store_errors: int = 0
    abandoned: int = 0
    queue_overflows: int = 0
    cancelled: bool = False
    elapsed: float = 0.0

    @property
    def raw_succeeded(self) -> int:
        return self.raw_count - self.raw_errors

    @property
    def tif_succeeded(self) -> int:
        return self.tif_count - self.tif_errors

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'total_files': self.total_files,
            'total_processed': self.total_processed,
            'stored': self.stored,
            'skipped': self.skipped,
            'errors': self.errors,
            'decoded': self.decoded,
            'raw_count': self.raw_count,
            'raw_errors': self.raw_errors,
            'tif_count': self.tif_count,
            'tif_errors': self.tif_errors,
            'store_errors': self.store_errors,
            'abandoned': self.abandoned,
            'queue_overflows': self.queue_overflows,
            'cancelled': self.cancelled,
            'elapsed': round(self.elapsed, 3),
        }


@dataclass
class SearchQuery:
    """Input to the search engine."""
    path: str
    threshold: float = DEFAULT_SEARCH_THRESHOLD
    source_prefix: str = ""


@dataclass
class MatchCandidate:
    """A store record that passed the hash prefilter."""
    record: FingerprintRecord
    average_distance: int
    perceptual_distance: int
    cross_format: bool = False
    raw_export_pair: bool = False
    filenames_related: bool = False


@dataclass
class MatchResult:
    """A verified match, ranked by similarity_score (higher = more similar)."""
    path: str
    source_prefix: str
    similarity_score: float
    is_raw_format: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'path': self.path,
            'source_prefix': self.source_prefix,
            'similarity_score': round(self.similarity_score, 4),
            'is_raw_format': self.is_raw_format,
        }


@dataclass
class SearchStats:
    """Statistics about one search."""
    records_examined: int = 0
    candidates: int = 0
    raw_candidates: int = 0
    verified: int = 0
    missing: int = 0
    decode_failures: int = 0
    faults: int = 0
    accepted: int = 0

    @property
    def prefilter_ratio(self) -> float:
        """Fraction of examined records that reached verification."""
        if self.records_examined == 0:
            return 0.0
        return self.candidates / self.records_examined

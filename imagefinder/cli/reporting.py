"""
Report formatting and display for the CLI interface.

Prints scan summaries, ranked search matches and store statistics to stdout.
"""

from __future__ import annotations

from ..models import MatchResult, ScanSummary
from ..utils.formatters import format_duration, format_number, format_score


def _print_section_header(title: str) -> None:
    """Print a section header with divider lines."""
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)


def print_scan_summary(summary: ScanSummary) -> None:
    """
    Print the outcome of a scan.

    Notes:
        - RAW/TIFF lines only appear when such files were found
        - Abandoned tasks and queue overflows only appear when non-zero
    """
    _print_section_header("SCAN " + ("CANCELLED" if summary.cancelled else "COMPLETE"))
    print(f"Files found:      {format_number(summary.total_files)}")
    print(f"Processed:        {format_number(summary.total_processed)}")
    print(f"  Stored:         {format_number(summary.stored)}")
    print(f"  Skipped:        {format_number(summary.skipped)} (unchanged)")
    print(f"  Errors:         {format_number(summary.errors)}")
    if summary.raw_count:
        print(f"RAW files:        {format_number(summary.raw_succeeded)} processed, "
              f"{format_number(summary.raw_errors)} errors")
    if summary.tif_count:
        print(f"TIFF files:       {format_number(summary.tif_succeeded)} processed, "
              f"{format_number(summary.tif_errors)} errors")
    if summary.abandoned:
        print(f"Abandoned:        {format_number(summary.abandoned)} (no worker slot)")
    if summary.queue_overflows:
        print(f"Queue overflows:  {format_number(summary.queue_overflows)}")
    print(f"Execution time:   {format_duration(summary.elapsed)}")


def print_matches(matches: list[MatchResult], limit: int, elapsed: float) -> None:
    """
    Print the best matches of a search.

    Args:
        matches: Matches sorted best first
        limit: Maximum number of matches to print
        elapsed: Search duration in seconds
    """
    _print_section_header("SIMILAR IMAGES")
    if not matches:
        print("No similar images found.")
    else:
        shown = matches[:max(0, limit)]
        print(f"Found {format_number(len(matches))} similar images"
              + (f" (showing top {len(shown)})" if len(shown) < len(matches) else ""))
        for i, match in enumerate(shown, 1):
            raw_marker = " [RAW]" if match.is_raw_format else ""
            prefix = f" ({match.source_prefix})" if match.source_prefix else ""
            print(f"{i:>3}. {format_score(match.similarity_score)}  {match.path}{prefix}{raw_marker}")
    print(f"\nExecution time: {format_duration(elapsed)}")


def print_store_stats(stats: dict, source_prefix: str = "") -> None:
    """Print FingerprintStore.get_stats() output."""
    title = "DATABASE STATISTICS" + (f" ({source_prefix})" if source_prefix else "")
    _print_section_header(title)
    print(f"Database:               {stats['db_path']}")
    print(f"Size:                   {stats['db_size_mb']} MB")
    print(f"Records:                {format_number(stats['total_records'])}")
    print(f"Unique average hashes:  {format_number(stats['unique_average_hashes'])}")
    print(f"RAW records:            {format_number(stats['raw_count'])}")


__all__ = ['print_scan_summary', 'print_matches', 'print_store_stats']

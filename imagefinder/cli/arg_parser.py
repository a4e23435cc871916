"""
Argument parsing for the CLI interface.

Provides functions to create and configure the argument parser for the
image finder command-line interface.
"""

from __future__ import annotations

import argparse

from ..config import DEFAULT_MATCH_DISPLAY_LIMIT


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '-d', '--database',
        default=None,
        help='Fingerprint database file. Default: IMAGEFINDER_DB, config file, '
             'or ~/.imagefinder/images.db'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose (DEBUG) output'
    )
    parser.add_argument(
        '--log-file',
        default=None,
        help='Also write DEBUG logs to this file'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance with scan, search, stats and
        config subcommands
    """
    parser = argparse.ArgumentParser(
        prog='imagefinder',
        description='Index image collections and find visually similar images',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s scan --folder /photos --prefix drive-a
      Fingerprint every image under /photos (unchanged files are skipped)

  %(prog)s scan --folder /photos --prefix drive-a --force
      Re-fingerprint every image even if unchanged

  %(prog)s search --image /exports/IMG_0042.jpg --threshold 0.85
      Find indexed images similar to IMG_0042.jpg

  %(prog)s stats --prefix drive-a
      Show database statistics
        """
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    # scan
    scan = subparsers.add_parser('scan', help='Fingerprint images in a folder')
    scan.add_argument(
        '-f', '--folder',
        required=True,
        help='Folder to scan (recursively)'
    )
    scan.add_argument(
        '-p', '--prefix',
        default='',
        help='Source label stored with every record (e.g. a drive name)'
    )
    scan.add_argument(
        '--force',
        action='store_true',
        help='Reprocess and overwrite records even if files are unchanged'
    )
    scan.add_argument(
        '-w', '--workers',
        type=int,
        default=None,
        help='Number of parallel workers. Default: 3/4 of available CPUs'
    )
    scan.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars (useful for piping output)'
    )
    _add_common_options(scan)

    # search
    search = subparsers.add_parser('search', help='Find images similar to a query image')
    search.add_argument(
        '-i', '--image',
        required=True,
        help='Query image'
    )
    search.add_argument(
        '-t', '--threshold',
        type=float,
        default=None,
        help='Minimum similarity (0.0-1.0, higher=stricter). Default: 0.8'
    )
    search.add_argument(
        '-p', '--prefix',
        default='',
        help='Only search records with this source label'
    )
    search.add_argument(
        '-w', '--workers',
        type=int,
        default=None,
        help='Number of parallel verification workers'
    )
    search.add_argument(
        '-n', '--limit',
        type=int,
        default=DEFAULT_MATCH_DISPLAY_LIMIT,
        help=f'Number of matches to print. Default: {DEFAULT_MATCH_DISPLAY_LIMIT}'
    )
    _add_common_options(search)

    # stats
    stats = subparsers.add_parser('stats', help='Show database statistics')
    stats.add_argument(
        '-p', '--prefix',
        default='',
        help='Only count records with this source label'
    )
    stats.add_argument(
        '--cleanup',
        action='store_true',
        help='Remove records for files that no longer exist, then vacuum'
    )
    _add_common_options(stats)

    # config
    config = subparsers.add_parser('config', help='Show or create the user configuration')
    config.add_argument(
        '-i', '--init',
        action='store_true',
        help='Create an example configuration file'
    )
    config.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose (DEBUG) output'
    )
    config.set_defaults(log_file=None, database=None)

    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: List of argument strings (default: sys.argv)

    Returns:
        Parsed arguments as Namespace object

    Examples:
        >>> args = parse_arguments(['search', '--image', 'a.jpg', '--threshold', '0.9'])
        >>> args.command, args.threshold
        ('search', 0.9)
    """
    parser = create_parser()
    return parser.parse_args(argv)


__all__ = [
    'create_parser',
    'parse_arguments',
]

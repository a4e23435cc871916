"""
Allow running the package with: python -m imagefinder

Examples:
    python -m imagefinder scan --folder /photos --prefix drive-a
    python -m imagefinder search --image /exports/IMG_0042.jpg
    python -m imagefinder config --init     # Create example config file
"""

import sys


def main():
    from .cli import main as cli_main
    sys.exit(cli_main())


if __name__ == '__main__':
    main()

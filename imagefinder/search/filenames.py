"""
Filename relation heuristic.

Cameras and export tools keep the frame number when deriving files, so
IMG_0042.CR2, IMG_0042.JPG and IMG_0042-edit.jpg are treated as related.
"""

from __future__ import annotations

import os
import re

_DIGIT_RUN = re.compile(r'\d+')


def base_stem(path: str) -> str:
    """Filename without directory or extension, casefolded."""
    return os.path.splitext(os.path.basename(path))[0].casefold()


def digit_runs(name: str) -> tuple[str, ...]:
    """Maximal runs of digits in order, e.g. 'IMG_0042_2' -> ('0042', '2')."""
    return tuple(_DIGIT_RUN.findall(name))


def filenames_related(path_a: str, path_b: str) -> bool:
    """
    Decide whether two files look like versions of the same frame.

    Related if one base name contains the other, or if both contain the
    same non-empty sequence of digit runs.

    Examples:
        >>> filenames_related('/raw/IMG_0042.CR2', '/export/IMG_0042.JPG')
        True
        >>> filenames_related('/raw/DSC_0042.NEF', '/export/holiday-0042.jpg')
        True
        >>> filenames_related('/a/beach.jpg', '/b/mountain.jpg')
        False
    """
    stem_a = base_stem(path_a)
    stem_b = base_stem(path_b)
    if not stem_a or not stem_b:
        return False
    if stem_a in stem_b or stem_b in stem_a:
        return True
    runs_a = digit_runs(stem_a)
    return bool(runs_a) and runs_a == digit_runs(stem_b)


__all__ = [
    'base_stem',
    'digit_runs',
    'filenames_related',
]

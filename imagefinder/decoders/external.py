"""
Scratch files and external converter tools (exiftool, dcraw).

Every converter writes into a private scratch file that is removed when the
strategy finishes, whether it succeeded, failed or raised.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from ..config import EXTERNAL_TOOL_TIMEOUT
from ..errors import DecodeError
from ..scanner.dependencies import Image

logger = logging.getLogger(__name__)


@contextmanager
def scratch_file(suffix: str = ".tmp") -> Iterator[str]:
    """
    Create a private temporary file and remove it on exit.

    Yields:
        Path of an empty file owned by the caller
    """
    fd, path = tempfile.mkstemp(prefix="imagefinder_", suffix=suffix)
    os.close(fd)
    try:
        yield path
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove scratch file {path}: {e}")


def tool_available(name: str) -> bool:
    """True if an executable is on PATH."""
    return shutil.which(name) is not None


def run_tool(
    args: Sequence[str],
    output_path: str,
    timeout: float = EXTERNAL_TOOL_TIMEOUT,
) -> None:
    """
    Run an external tool with its stdout redirected into output_path.

    Args:
        args: Command line, tool name first
        output_path: File receiving the tool's stdout
        timeout: Seconds before the tool is killed

    Raises:
        DecodeError: If the tool is missing, times out, fails, or writes nothing
    """
    tool = args[0]
    try:
        with open(output_path, 'wb') as out:
            completed = subprocess.run(
                list(args),
                stdout=out,
                stderr=subprocess.PIPE,
                timeout=timeout,
                check=False,
            )
    except FileNotFoundError:
        raise DecodeError(f"{tool} is not installed")
    except subprocess.TimeoutExpired:
        raise DecodeError(f"{tool} timed out after {timeout}s")

    if completed.returncode != 0:
        stderr = completed.stderr.decode(errors='replace').strip()
        raise DecodeError(f"{tool} failed (exit {completed.returncode}): {stderr}")
    if os.path.getsize(output_path) == 0:
        raise DecodeError(f"{tool} produced no output")


def load_detached(path: str | Path) -> Image.Image:
    """
    Open an image file and load its pixels so the file can be removed.

    Raises:
        DecodeError: If Pillow cannot read the file
    """
    try:
        with Image.open(path) as img:
            img.load()
            return img.copy()
    except (Image.UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"Cannot read image data: {e}", path=str(path))


def extract_with_tool(args: Sequence[str], suffix: str = ".jpg") -> Image.Image:
    """
    Run a converter into a scratch file and load the result.

    The last element of args is expected to be the source path; stdout
    of the tool is the converted image.
    """
    with scratch_file(suffix) as scratch:
        run_tool(args, scratch)
        return load_detached(scratch)


__all__ = [
    'scratch_file',
    'tool_available',
    'run_tool',
    'load_detached',
    'extract_with_tool',
]

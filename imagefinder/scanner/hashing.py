"""
Hashing module for the scanner package.

Provides the two image fingerprints stored in the index (average hash and
DCT perceptual hash), the bit-level Hamming distance used by the search
prefilter, and the pixel similarity score used for verification.
"""

from __future__ import annotations

from typing import Callable, Optional

from scipy import fft as scipy_fft

from ..config import (
    AVERAGE_HASH_SIZE,
    PERCEPTUAL_GRID_SIZE,
    PERCEPTUAL_HASH_SIZE,
    DCT_ROUNDING_DECIMALS,
)
from ..errors import EmptyImageError
from .dependencies import Image, imagehash, np, _logger


def _check_not_empty(image: Optional[Image.Image]) -> None:
    if image is None or image.width == 0 or image.height == 0:
        raise EmptyImageError("Image has zero width or height")


def to_grayscale(image: Image.Image) -> Image.Image:
    """
    Convert a decoded image to 8-bit single-channel ('L').

    Args:
        image: Decoded PIL image in any mode

    Returns:
        Grayscale image (the same object if already 'L')
    """
    if image.mode == 'L':
        return image
    if image.mode in ('RGBA', 'LA', 'P', 'PA'):
        # Flatten transparency onto white so masked pixels don't read as black
        rgba = image.convert('RGBA')
        background = Image.new('RGBA', rgba.size, (255, 255, 255, 255))
        return Image.alpha_composite(background, rgba).convert('L')
    return image.convert('L')


def _resize_gray(image: Image.Image, size: int) -> np.ndarray:
    gray = to_grayscale(image)
    resized = gray.resize((size, size), Image.LANCZOS)
    return np.asarray(resized, dtype=np.float64)


def _to_hex(bits: np.ndarray) -> str:
    # ImageHash packs the flattened array row-major, most significant bit first
    return str(imagehash.ImageHash(bits))


def compute_average_hash(image: Image.Image) -> str:
    """
    Compute the 64-bit average hash of an image.

    The image is reduced to an 8x8 grayscale grid; each cell becomes 1 if
    its intensity is at or above the grid mean.

    Args:
        image: Decoded PIL image

    Returns:
        16 hex character hash string

    Raises:
        EmptyImageError: If the image has zero width or height
    """
    _check_not_empty(image)
    pixels = _resize_gray(image, AVERAGE_HASH_SIZE)
    return _to_hex(pixels >= pixels.mean())


def _dct_2d_scipy(matrix: np.ndarray) -> np.ndarray:
    return scipy_fft.dct(
        scipy_fft.dct(matrix, type=2, axis=0, norm='ortho'),
        type=2, axis=1, norm='ortho',
    )


def _dct_matrix(n: int) -> np.ndarray:
    """Orthonormal DCT-II basis: C[k, i] = s(k) * cos(pi * (2i + 1) * k / 2n)."""
    k = np.arange(n).reshape(-1, 1)
    i = np.arange(n).reshape(1, -1)
    basis = np.cos(np.pi * (2 * i + 1) * k / (2 * n)) * np.sqrt(2.0 / n)
    basis[0, :] = np.sqrt(1.0 / n)
    return basis


def _dct_2d_numpy(matrix: np.ndarray) -> np.ndarray:
    rows = _dct_matrix(matrix.shape[0])
    cols = _dct_matrix(matrix.shape[1])
    return rows @ matrix @ cols.T


DCT_BACKENDS: dict[str, Callable[[np.ndarray], np.ndarray]] = {
    'scipy': _dct_2d_scipy,
    'numpy': _dct_2d_numpy,
}


def dct_2d(matrix: np.ndarray, backend: str = 'scipy') -> np.ndarray:
    """
    Orthonormal 2-D DCT-II of a matrix.

    Args:
        matrix: 2-D float array
        backend: 'scipy' (scipy.fft) or 'numpy' (explicit basis matrices)

    Returns:
        Coefficient matrix, same shape as the input
    """
    try:
        transform = DCT_BACKENDS[backend]
    except KeyError:
        raise ValueError(f"Unknown DCT backend: {backend!r}") from None
    return transform(matrix)


def compute_perceptual_hash(image: Image.Image, backend: str = 'scipy') -> str:
    """
    Compute the 64-bit DCT perceptual hash of an image.

    The image is reduced to a 32x32 grayscale grid and transformed with a
    2-D DCT. Each of the 8x8 lowest-frequency coefficients becomes 1 if it
    is at or above the median of that block.

    Args:
        image: Decoded PIL image
        backend: DCT implementation (see dct_2d); both give identical hashes

    Returns:
        16 hex character hash string

    Raises:
        EmptyImageError: If the image has zero width or height
    """
    _check_not_empty(image)
    pixels = _resize_gray(image, PERCEPTUAL_GRID_SIZE)
    coefficients = dct_2d(pixels, backend)
    low = coefficients[:PERCEPTUAL_HASH_SIZE, :PERCEPTUAL_HASH_SIZE]
    # Rounding removes last-ulp differences between backends
    low = np.round(low, DCT_ROUNDING_DECIMALS)
    return _to_hex(low >= np.median(low))


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """
    Count differing bits between two hex hash strings.

    Hashes of different length are compared over the shorter one.

    Examples:
        >>> hamming_distance('ff00', 'ff01')
        1
    """
    length = min(len(hash_a), len(hash_b))
    if length == 0:
        return 0
    diff = int(hash_a[:length], 16) ^ int(hash_b[:length], 16)
    return bin(diff).count('1')


def pixel_similarity(image_a: Optional[Image.Image], image_b: Optional[Image.Image]) -> float:
    """
    Score how alike two images are pixel by pixel.

    Both images are converted to grayscale and the second is resized to the
    first's dimensions. The score is 1 - mean_abs_diff / 255.

    Args:
        image_a: Reference image
        image_b: Image to compare

    Returns:
        Similarity in [0.0, 1.0]; 0.0 if either image is missing or empty
    """
    for image in (image_a, image_b):
        if image is None or image.width == 0 or image.height == 0:
            return 0.0

    gray_a = to_grayscale(image_a)
    gray_b = to_grayscale(image_b)
    if gray_b.size != gray_a.size:
        gray_b = gray_b.resize(gray_a.size, Image.BILINEAR)

    # uint8 samples, so the difference fits in int16
    diff = np.asarray(gray_a, dtype=np.int16) - np.asarray(gray_b, dtype=np.int16)
    mean_abs_diff = float(np.abs(diff).mean())
    score = 1.0 - mean_abs_diff / 255.0
    _logger.debug(f"Pixel similarity {score:.4f} ({gray_a.size[0]}x{gray_a.size[1]})")
    return max(0.0, min(1.0, score))


__all__ = [
    'to_grayscale',
    'compute_average_hash',
    'compute_perceptual_hash',
    'dct_2d',
    'DCT_BACKENDS',
    'hamming_distance',
    'pixel_similarity',
]

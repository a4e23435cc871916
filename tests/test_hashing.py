"""
Unit tests for the fingerprint engine (average hash, perceptual hash,
Hamming distance, pixel similarity).
"""

import numpy as np
import pytest
from PIL import Image

from imagefinder.errors import EmptyImageError
from imagefinder.scanner.hashing import (
    compute_average_hash,
    compute_perceptual_hash,
    dct_2d,
    hamming_distance,
    pixel_similarity,
    to_grayscale,
)


def _gray(array) -> Image.Image:
    return Image.fromarray(np.asarray(array, dtype=np.uint8))


class TestAverageHash:
    """Test compute_average_hash function."""

    @pytest.mark.parametrize("size", [(1, 1), (64, 64), (3000, 7), (7, 3000)])
    def test_hash_is_16_hex_chars(self, pattern_image, size):
        """Test hash length and alphabet for any input size."""
        h = compute_average_hash(pattern_image(7, size))
        assert len(h) == 16
        int(h, 16)

    def test_deterministic(self, pattern_image):
        """Test same image always gives the same hash."""
        img = pattern_image(11)
        assert compute_average_hash(img) == compute_average_hash(img.copy())

    def test_half_black_half_white(self):
        """Test left-dark/right-bright grid sets the right nibble of each row."""
        grid = np.zeros((8, 8))
        grid[:, 4:] = 255
        assert compute_average_hash(_gray(grid)) == "0f0f0f0f0f0f0f0f"

    def test_uniform_image_all_bits_set(self):
        """Test every cell equals the mean, so every bit is 1."""
        assert compute_average_hash(_gray(np.full((8, 8), 128))) == "ffffffffffffffff"

    def test_color_and_gray_agree(self, pattern_image):
        """Test RGB input is reduced to grayscale before hashing."""
        gray = pattern_image(5)
        assert compute_average_hash(gray.convert('RGB')) == compute_average_hash(gray)

    def test_empty_image_raises(self):
        """Test zero-size image is rejected."""
        with pytest.raises(EmptyImageError):
            compute_average_hash(Image.new('L', (0, 0)))

    def test_none_raises(self):
        """Test missing image is rejected."""
        with pytest.raises(EmptyImageError):
            compute_average_hash(None)


class TestPerceptualHash:
    """Test compute_perceptual_hash and the DCT backends."""

    @pytest.mark.parametrize("size", [(1, 1), (64, 64), (3000, 7), (7, 3000)])
    def test_hash_is_16_hex_chars(self, pattern_image, size):
        """Test hash length and alphabet for any input size."""
        h = compute_perceptual_hash(pattern_image(3, size))
        assert len(h) == 16
        int(h, 16)

    def test_different_images_differ(self, pattern_image):
        """Test unrelated patterns are far apart."""
        a = compute_perceptual_hash(pattern_image(1))
        b = compute_perceptual_hash(pattern_image(2))
        assert hamming_distance(a, b) > 12

    @pytest.mark.parametrize("seed", [1, 2, 3, 42, 1234])
    def test_backends_give_identical_hashes(self, pattern_image, seed):
        """Test scipy and numpy DCT produce the same hash."""
        img = pattern_image(seed, (96, 64))
        assert (compute_perceptual_hash(img, backend='scipy')
                == compute_perceptual_hash(img, backend='numpy'))

    def test_backends_agree_numerically(self):
        """Test both DCT implementations return the same coefficients."""
        rng = np.random.default_rng(0)
        matrix = rng.uniform(0, 255, size=(32, 32))
        np.testing.assert_allclose(
            dct_2d(matrix, 'scipy'), dct_2d(matrix, 'numpy'), atol=1e-8
        )

    def test_constant_matrix_has_only_dc(self):
        """Test orthonormal DCT of a constant keeps all energy in [0, 0]."""
        coefficients = dct_2d(np.full((32, 32), 10.0))
        assert coefficients[0, 0] == pytest.approx(320.0)
        coefficients[0, 0] = 0.0
        assert np.allclose(coefficients, 0.0)

    def test_brightness_offset_invariance(self):
        """Test a uniform brightness shift only moves the DC coefficient."""
        rng = np.random.default_rng(9)
        base = rng.integers(20, 200, size=(32, 32))
        brighter = base + 30
        assert compute_perceptual_hash(_gray(base)) == compute_perceptual_hash(_gray(brighter))

    def test_unknown_backend_raises(self, pattern_image):
        """Test an unknown backend name is rejected."""
        with pytest.raises(ValueError, match="Unknown DCT backend"):
            compute_perceptual_hash(pattern_image(1), backend='fftw')

    def test_empty_image_raises(self):
        """Test zero-size image is rejected."""
        with pytest.raises(EmptyImageError):
            compute_perceptual_hash(Image.new('L', (10, 0)))


class TestHammingDistance:
    """Test hamming_distance function."""

    def test_identical(self):
        assert hamming_distance("a1b2c3d4e5f60718", "a1b2c3d4e5f60718") == 0

    def test_single_bit(self):
        assert hamming_distance("ff00", "ff01") == 1

    def test_all_bits(self):
        assert hamming_distance("0000000000000000", "ffffffffffffffff") == 64

    def test_counts_bits_not_characters(self):
        """Test '1' vs 'e' is four bits, not one differing character."""
        assert hamming_distance("1", "e") == 4

    def test_different_lengths_compare_prefix(self):
        """Test only the common prefix is compared."""
        assert hamming_distance("ff", "ff0f") == 0

    def test_empty(self):
        assert hamming_distance("", "ffff") == 0

    def test_symmetric(self):
        assert hamming_distance("0f0f", "f0f1") == hamming_distance("f0f1", "0f0f")


class TestPixelSimilarity:
    """Test pixel_similarity function."""

    def test_identical_images(self, pattern_image):
        img = pattern_image(4)
        assert pixel_similarity(img, img.copy()) == pytest.approx(1.0)

    def test_black_vs_white(self):
        black = Image.new('L', (16, 16), 0)
        white = Image.new('L', (16, 16), 255)
        assert pixel_similarity(black, white) == pytest.approx(0.0)

    def test_mean_absolute_difference(self):
        """Test score is 1 - mean |a - b| / 255."""
        a = Image.new('L', (10, 10), 100)
        b = Image.new('L', (10, 10), 151)
        assert pixel_similarity(a, b) == pytest.approx(1 - 51 / 255)

    def test_difference_is_absolute(self):
        """Test a darker second image scores the same as a brighter one."""
        dark = Image.new('L', (10, 10), 20)
        bright = Image.new('L', (10, 10), 200)
        assert pixel_similarity(dark, bright) == pytest.approx(1 - 180 / 255)
        assert pixel_similarity(bright, dark) == pytest.approx(1 - 180 / 255)

    def test_second_image_resized(self, pattern_image):
        """Test images of different size are compared at the first's size."""
        small = pattern_image(6, (64, 64))
        large = pattern_image(6, (128, 128))
        assert pixel_similarity(small, large) > 0.9

    def test_missing_image_scores_zero(self, pattern_image):
        assert pixel_similarity(None, pattern_image(1)) == 0.0
        assert pixel_similarity(pattern_image(1), Image.new('L', (0, 5))) == 0.0

    def test_color_input(self, pattern_image):
        img = pattern_image(8)
        assert pixel_similarity(img.convert('RGB'), img) == pytest.approx(1.0)


class TestToGrayscale:
    """Test to_grayscale function."""

    def test_gray_passthrough(self):
        img = Image.new('L', (4, 4), 7)
        assert to_grayscale(img) is img

    def test_transparency_flattened_to_white(self):
        img = Image.new('RGBA', (4, 4), (0, 0, 0, 0))
        gray = to_grayscale(img)
        assert gray.mode == 'L'
        assert gray.getextrema() == (255, 255)

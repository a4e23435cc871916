"""
Image decoders for Image Finder.

Each format category has a decoder that turns a file into a grayscale PIL
image; DecoderRegistry maps categories to decoders and is passed explicitly
to the scan pipeline and the search engine.

Public API:
- ImageDecoder: Decoder interface
- DecoderRegistry: Category -> decoder mapping (DecoderRegistry.default())
- StandardDecoder, TiffDecoder, RawDecoder: Built-in decoders
- scratch_file: Private temporary file removed on every exit path
"""

from __future__ import annotations

from .base import ImageDecoder, DecoderRegistry
from .external import scratch_file
from .standard import StandardDecoder
from .tiff import TiffDecoder
from .raw import RawDecoder


__all__ = [
    'ImageDecoder',
    'DecoderRegistry',
    'StandardDecoder',
    'TiffDecoder',
    'RawDecoder',
    'scratch_file',
]

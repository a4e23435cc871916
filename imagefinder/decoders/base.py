"""
Decoder interface and the format-to-decoder registry.

A DecoderRegistry is an ordinary object passed to the scan pipeline and the
search engine; there is no process-wide registration.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional

from ..errors import DecodeError
from ..formats import classify
from ..models import FormatCategory
from ..scanner.dependencies import Image

logger = logging.getLogger(__name__)


class ImageDecoder(ABC):
    """Turns a file into a decoded PIL image, or raises DecodeError."""

    name = "decoder"

    @abstractmethod
    def decode(self, path: str | Path) -> Image.Image:
        """
        Decode an image file.

        Args:
            path: Path to the image

        Returns:
            Fully loaded PIL image (detached from the file)

        Raises:
            DecodeError: If no strategy produced a usable image
        """


class DecoderRegistry:
    """
    Mapping from format category to decoder.

    Examples:
        >>> registry = DecoderRegistry.default()
        >>> image = registry.decode('/photos/IMG_0042.CR2')
    """

    def __init__(self, decoders: Optional[Mapping[FormatCategory, ImageDecoder]] = None):
        self._decoders: dict[FormatCategory, ImageDecoder] = dict(decoders or {})

    @classmethod
    def default(cls) -> 'DecoderRegistry':
        """Registry with the Pillow, TIFF and RAW decoders."""
        from .standard import StandardDecoder
        from .tiff import TiffDecoder
        from .raw import RawDecoder

        return cls({
            FormatCategory.STANDARD: StandardDecoder(),
            FormatCategory.TIFF: TiffDecoder(),
            FormatCategory.RAW: RawDecoder(),
        })

    @classmethod
    def uniform(cls, decoder: ImageDecoder) -> 'DecoderRegistry':
        """Registry using one decoder for every supported category."""
        return cls({
            FormatCategory.STANDARD: decoder,
            FormatCategory.TIFF: decoder,
            FormatCategory.RAW: decoder,
        })

    def register(self, category: FormatCategory, decoder: ImageDecoder) -> None:
        self._decoders[category] = decoder

    def get(self, category: FormatCategory) -> Optional[ImageDecoder]:
        return self._decoders.get(category)

    def __contains__(self, category: FormatCategory) -> bool:
        return category in self._decoders

    def decode(self, path: str | Path, category: Optional[FormatCategory] = None) -> Image.Image:
        """
        Decode a file with the decoder for its category.

        Args:
            path: Path to the image
            category: Format category (classified from the extension if omitted)

        Returns:
            Decoded PIL image

        Raises:
            DecodeError: If the category has no decoder or decoding fails
        """
        if category is None:
            category = classify(path)
        decoder = self._decoders.get(category)
        if decoder is None:
            raise DecodeError(f"No decoder for {category.value} files", path=str(path))
        logger.debug(f"Decoding {path} with {decoder.name}")
        return decoder.decode(path)


__all__ = [
    'ImageDecoder',
    'DecoderRegistry',
]

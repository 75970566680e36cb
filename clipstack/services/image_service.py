#!/usr/bin/env python3
"""
Image Service - Encodes clipboard and screenshot images to PNG data URIs
"""
import base64
import logging
from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image/png;base64,"


class ImageService:
    """Service for turning images into their canonical encoded form"""

    def encode_image(self, image: Image.Image) -> str:
        """
        Encode an image as a PNG data URI

        Args:
            image: Pillow image from the clipboard or a file

        Returns:
            "data:image/png;base64,..." string
        """
        # Modes PNG cannot store (CMYK, YCbCr, ...) go through RGBA
        if image.mode not in ("1", "L", "LA", "P", "RGB", "RGBA"):
            image = image.convert("RGBA")

        png_io = BytesIO()
        image.save(png_io, format="PNG")
        png_bytes = png_io.getvalue()
        return DATA_URI_PREFIX + base64.b64encode(png_bytes).decode("utf-8")

    def load_file(self, path: Union[str, Path]) -> Image.Image:
        """
        Read and fully decode an image file

        Raises:
            OSError: If the file cannot be read or is not a valid image
        """
        with Image.open(path) as image:
            image.load()
            return image.copy()

    def encode_file(self, path: Union[str, Path]) -> str:
        """Decode an image file and return its data URI"""
        image = self.load_file(path)
        encoded = self.encode_image(image)
        logger.info(f"Encoded image file {Path(path).name}: {image.size} -> {len(encoded)} chars")
        return encoded

    def decode_data_uri(self, encoded: str) -> bytes:
        """
        Get the raw image bytes back out of a data URI

        Raises:
            ValueError: If the string is not a base64 image data URI
        """
        if not encoded.startswith("data:image/") or ";base64," not in encoded:
            raise ValueError("Not a base64 image data URI")
        _, b64_data = encoded.split(";base64,", 1)
        try:
            return base64.b64decode(b64_data, validate=True)
        except ValueError as e:
            raise ValueError(f"Invalid base64 image data: {e}") from e

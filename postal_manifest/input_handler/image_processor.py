"""
Image Processor Module.

This module prepares captured label images for the recognition service:
    - Decoding and validation
    - Orientation correction from EXIF
    - RGB conversion
    - Downscaling of oversized frames
    - JPEG re-encoding and base64 packaging

Author: ML Engineering Team
"""

import base64
import io
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from config import get_config
from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.exceptions import CorruptedImageError

logger = get_logger(__name__)


class ImageProcessor:
    """
    Turns raw capture bytes into the payload the recognition service expects.

    Attributes:
        max_side: Longest allowed edge in pixels; larger frames are scaled down.
        jpeg_quality: JPEG quality used for re-encoding (1-95).
        auto_orient: Whether to apply EXIF orientation.

    Example:
        >>> processor = ImageProcessor()
        >>> image_b64 = processor.prepare(open("label.jpg", "rb").read())
    """

    MIN_SIDE = 32

    def __init__(
        self,
        max_side: int = None,
        jpeg_quality: int = None,
        auto_orient: bool = None
    ) -> None:
        self.max_side = max_side or get_config("input.image.max_side", 1920)
        self.jpeg_quality = jpeg_quality or get_config("input.image.jpeg_quality", 80)
        self.auto_orient = auto_orient if auto_orient is not None else \
            get_config("input.image.auto_orient", True)

        logger.debug(
            f"ImageProcessor initialized (max_side={self.max_side}, "
            f"quality={self.jpeg_quality})"
        )

    def prepare(self, image_bytes: bytes) -> str:
        """
        Decode, normalize and re-encode a captured frame.

        Args:
            image_bytes: Raw image file bytes (JPEG, PNG, WebP, ...).

        Returns:
            Base64-encoded JPEG.

        Raises:
            CorruptedImageError: If the bytes are empty or not a decodable image,
                or the image is too small to hold a label.
        """
        jpeg_bytes, size = self.to_jpeg(image_bytes)
        logger.debug(f"Prepared image {size[0]}x{size[1]} ({len(jpeg_bytes)} bytes)")
        return base64.b64encode(jpeg_bytes).decode('ascii')

    def to_jpeg(self, image_bytes: bytes) -> Tuple[bytes, Tuple[int, int]]:
        """Return normalized JPEG bytes and the final (width, height)."""
        if not image_bytes:
            raise CorruptedImageError("empty capture")

        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise CorruptedImageError(str(e))

        image = self._process_image(image)

        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=self.jpeg_quality)
        return buffer.getvalue(), image.size

    def _process_image(self, image: Image.Image) -> Image.Image:
        """
        Processing steps:
            1. Fix orientation from EXIF
            2. Convert to RGB
            3. Validate minimum size of the decoded frame
            4. Resize if too large
        """
        if self.auto_orient:
            image = ImageOps.exif_transpose(image)

        if image.mode != 'RGB':
            image = image.convert('RGB')

        self._validate_size(image)
        return self._resize_if_needed(image)

    def _resize_if_needed(self, image: Image.Image) -> Image.Image:
        longest = max(image.size)
        if longest <= self.max_side:
            return image

        scale = self.max_side / longest
        new_size = (max(1, int(image.width * scale)), max(1, int(image.height * scale)))
        logger.debug(f"Resizing image from {image.size} to {new_size}")
        return image.resize(new_size, Image.LANCZOS)

    def _validate_size(self, image: Image.Image) -> None:
        if min(image.size) < self.MIN_SIDE:
            raise CorruptedImageError(
                f"image too small: {image.width}x{image.height}"
            )

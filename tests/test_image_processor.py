"""Tests for capture image preparation."""

import base64
import io

import pytest
from PIL import Image

from postal_manifest.input_handler import ImageProcessor
from postal_manifest.utils.exceptions import CorruptedImageError


def encode(image, fmt="PNG", **save_kwargs):
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


class TestPrepare:
    def test_returns_base64_jpeg(self, png_bytes):
        image_b64 = ImageProcessor().prepare(png_bytes)

        assert base64.b64decode(image_b64)[:2] == b"\xff\xd8"

    def test_downscales_long_edge(self):
        processor = ImageProcessor(max_side=1000)

        _, size = processor.to_jpeg(encode(Image.new("RGB", (4000, 1000))))

        assert size == (1000, 250)

    def test_keeps_small_frames(self, png_bytes):
        _, size = ImageProcessor(max_side=1000).to_jpeg(png_bytes)

        assert size == (120, 80)

    def test_converts_transparent_png(self):
        jpeg, _ = ImageProcessor().to_jpeg(encode(Image.new("RGBA", (64, 64), (0, 0, 0, 0))))

        assert Image.open(io.BytesIO(jpeg)).mode == "RGB"

    def test_applies_exif_orientation(self):
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 on display
        data = encode(Image.new("RGB", (200, 100)), fmt="JPEG", exif=exif)

        _, size = ImageProcessor(auto_orient=True).to_jpeg(data)

        assert size == (100, 200)


class TestRejects:
    def test_empty(self):
        with pytest.raises(CorruptedImageError):
            ImageProcessor().prepare(b"")

    def test_not_an_image(self):
        with pytest.raises(CorruptedImageError):
            ImageProcessor().prepare(b"\x00\x01garbage")

    def test_too_small(self):
        with pytest.raises(CorruptedImageError):
            ImageProcessor().prepare(encode(Image.new("RGB", (10, 10))))


class TestStripLabels:
    def test_narrow_strip_survives_downscale(self):
        _, size = ImageProcessor(max_side=1920).to_jpeg(encode(Image.new("RGB", (4000, 60))))

        assert size == (1920, 28)

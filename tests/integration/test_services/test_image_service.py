"""Tests for ImageService."""

import base64
from io import BytesIO

import pytest
from PIL import Image

from clipstack.services.image_service import DATA_URI_PREFIX, ImageService
from fixtures.test_data import generate_image, generate_image_bytes


def _decode(encoded: str) -> Image.Image:
    return Image.open(BytesIO(base64.b64decode(encoded[len(DATA_URI_PREFIX):])))


def test_encode_image_produces_png_data_uri(image_service: ImageService):
    encoded = image_service.encode_image(generate_image(4, 3, (10, 20, 30)))

    assert encoded.startswith(DATA_URI_PREFIX)
    decoded = _decode(encoded)
    assert decoded.format == "PNG"
    assert decoded.size == (4, 3)


def test_encoding_is_stable(image_service: ImageService):
    """Test that identical pixels give identical encodings."""
    first = image_service.encode_image(generate_image(color=(5, 5, 5)))
    second = image_service.encode_image(generate_image(color=(5, 5, 5)))

    assert first == second


def test_cmyk_is_converted(image_service: ImageService):
    encoded = image_service.encode_image(Image.new("CMYK", (2, 2), (0, 0, 0, 0)))

    assert _decode(encoded).mode == "RGBA"


def test_encode_jpeg_file(image_service: ImageService, tmp_path):
    path = tmp_path / "shot.jpg"
    path.write_bytes(generate_image_bytes(6, 6, format="JPEG"))

    encoded = image_service.encode_file(path)

    assert _decode(encoded).size == (6, 6)


def test_encode_corrupt_file_raises(image_service: ImageService, tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"\x89PNG not really")

    with pytest.raises(OSError):
        image_service.encode_file(path)


def test_decode_data_uri(image_service: ImageService):
    png = generate_image_bytes()

    assert image_service.decode_data_uri(DATA_URI_PREFIX + base64.b64encode(png).decode()) == png


@pytest.mark.parametrize("value", [
    "plain text",
    "data:text/plain;base64,AAAA",
    "data:image/png;base64,!!!not-base64!!!",
])
def test_decode_rejects_bad_input(image_service: ImageService, value):
    with pytest.raises(ValueError):
        image_service.decode_data_uri(value)

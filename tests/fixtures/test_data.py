"""Test data generators for ClipStack tests."""

import base64
import io
import random
from datetime import datetime, timedelta, timezone
from typing import List

from PIL import Image

from clipstack.models import ImageSnapshot, TextSnapshot

BASE_TIME = datetime(2025, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


def text_item(text: str, item_id: int = 1, minutes: int = 0) -> TextSnapshot:
    """Text snapshot with a fixed id and timestamp."""
    return TextSnapshot(id=item_id, text=text, captured_at=BASE_TIME + timedelta(minutes=minutes))


def image_item(image: str, item_id: int = 1, minutes: int = 0) -> ImageSnapshot:
    """Image snapshot with a fixed id and timestamp."""
    return ImageSnapshot(id=item_id, image=image, captured_at=BASE_TIME + timedelta(minutes=minutes))


def text_history(count: int, prefix: str = "entry") -> List[TextSnapshot]:
    """History of distinct text entries, most recent first."""
    return [text_item(f"{prefix}-{i}", item_id=count - i, minutes=count - i) for i in range(count)]


def generate_image(width: int = 8, height: int = 8, color=None) -> Image.Image:
    """Generate a small solid-color test image."""
    if color is None:
        color = (random.randint(0, 255), random.randint(0, 255), random.randint(0, 255))
    return Image.new('RGB', (width, height), color)


def generate_image_bytes(width: int = 8, height: int = 8, color=(255, 0, 0), format: str = 'PNG') -> bytes:
    """Generate encoded image file bytes."""
    img_bytes = io.BytesIO()
    generate_image(width, height, color).save(img_bytes, format=format)
    return img_bytes.getvalue()


def data_uri(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode('utf-8')

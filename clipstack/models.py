"""Clipboard snapshot domain models."""
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar, Dict, Optional, Tuple, Union

TEXT = "text"
IMAGE = "image"
SNAPSHOT_KINDS = (TEXT, IMAGE)


@dataclass(frozen=True)
class TextSnapshot:
    """A piece of text captured from the clipboard."""

    id: int
    text: str
    captured_at: datetime

    kind: ClassVar[str] = TEXT

    @property
    def payload(self) -> str:
        return self.text

    def dedupe_key(self) -> Tuple[str, str]:
        return (self.kind, self.text)

    def to_record(self) -> Dict:
        return {
            "id": self.id,
            "type": self.kind,
            "text": self.text,
            "timestamp": self.captured_at.isoformat(),
        }


@dataclass(frozen=True)
class ImageSnapshot:
    """An image captured from the clipboard or a screenshot file.

    ``image`` holds the encoded form (a PNG data URI). Two snapshots are
    duplicates only when their encodings are equal.
    """

    id: int
    image: str
    captured_at: datetime

    kind: ClassVar[str] = IMAGE

    @property
    def payload(self) -> str:
        return self.image

    def dedupe_key(self) -> Tuple[str, str]:
        return (self.kind, self.image)

    def to_record(self) -> Dict:
        return {
            "id": self.id,
            "type": self.kind,
            "image": self.image,
            "timestamp": self.captured_at.isoformat(),
        }


Snapshot = Union[TextSnapshot, ImageSnapshot]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def is_well_formed(snapshot) -> bool:
    """Check that a snapshot has a known kind and a non-empty payload."""
    if not isinstance(snapshot, (TextSnapshot, ImageSnapshot)):
        return False
    payload = snapshot.payload
    return isinstance(payload, str) and payload != ""


def snapshot_from_record(record: Dict) -> Snapshot:
    """
    Decode a persisted history record into a snapshot

    Args:
        record: Dict shaped like {"id", "type", "text"|"image", "timestamp"}

    Returns:
        TextSnapshot or ImageSnapshot

    Raises:
        ValueError: If the record is not a valid snapshot record
    """
    if not isinstance(record, dict):
        raise ValueError(f"History record must be an object, got {type(record).__name__}")

    item_id = record.get("id")
    if isinstance(item_id, bool) or not isinstance(item_id, (int, float)):
        raise ValueError(f"History record has invalid id: {item_id!r}")

    captured_at = _parse_timestamp(record.get("timestamp"))

    # Records written before image support carried no "type" field
    kind = record.get("type", TEXT)
    if kind == TEXT:
        text = record.get("text")
        if not isinstance(text, str) or not text:
            raise ValueError("Text record is missing its text")
        return TextSnapshot(id=int(item_id), text=text, captured_at=captured_at)
    if kind == IMAGE:
        image = record.get("image")
        if not isinstance(image, str) or not image:
            raise ValueError("Image record is missing its image")
        return ImageSnapshot(id=int(item_id), image=image, captured_at=captured_at)

    raise ValueError(f"Unknown history record type: {kind!r}")


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"History record has invalid timestamp: {value!r}")
    # fromisoformat() before 3.11 does not accept a trailing "Z"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise ValueError(f"History record has invalid timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SnapshotIdGenerator:
    """Hands out creation-time ids in milliseconds, strictly increasing."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last_id = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last_id:
                candidate = self._last_id + 1
            self._last_id = candidate
            return candidate


_default_ids = SnapshotIdGenerator()


def make_text_snapshot(text: str, captured_at: Optional[datetime] = None,
                       ids: Optional[SnapshotIdGenerator] = None) -> TextSnapshot:
    """Create a text snapshot stamped with a fresh id and the current time"""
    ids = ids or _default_ids
    return TextSnapshot(id=ids.next_id(), text=text, captured_at=captured_at or now_utc())


def make_image_snapshot(image: str, captured_at: Optional[datetime] = None,
                        ids: Optional[SnapshotIdGenerator] = None) -> ImageSnapshot:
    """Create an image snapshot stamped with a fresh id and the current time"""
    ids = ids or _default_ids
    return ImageSnapshot(id=ids.next_id(), image=image, captured_at=captured_at or now_utc())

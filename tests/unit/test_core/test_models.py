"""Tests for snapshot models."""

from datetime import datetime, timezone

import pytest

from clipstack.models import (ImageSnapshot, SnapshotIdGenerator, TextSnapshot,
                              is_well_formed, make_image_snapshot, make_text_snapshot,
                              snapshot_from_record)
from fixtures.test_data import BASE_TIME, image_item, text_item


def test_text_snapshot_record_shape():
    item = text_item("hello", item_id=42)

    assert item.to_record() == {
        "id": 42,
        "type": "text",
        "text": "hello",
        "timestamp": "2025-01-01T10:00:00+00:00",
    }


def test_image_snapshot_record_shape():
    record = image_item("data:image/png;base64,AAAA", item_id=7).to_record()

    assert record["type"] == "image"
    assert record["image"] == "data:image/png;base64,AAAA"
    assert "text" not in record


def test_snapshots_are_immutable():
    item = text_item("hello")

    with pytest.raises(AttributeError):
        item.text = "changed"


def test_dedupe_key_ignores_id_and_time():
    assert text_item("a", item_id=1, minutes=0).dedupe_key() == text_item("a", item_id=9, minutes=5).dedupe_key()


def test_record_round_trip_keeps_snapshot():
    item = image_item("data:image/png;base64,QUJD", item_id=3)

    assert snapshot_from_record(item.to_record()) == item


def test_record_without_type_is_text():
    item = snapshot_from_record({"id": 1700000000000, "text": "legacy", "timestamp": "2025-01-01T10:00:00.000Z"})

    assert isinstance(item, TextSnapshot)
    assert item.text == "legacy"
    assert item.captured_at == BASE_TIME


def test_naive_timestamp_is_treated_as_utc():
    item = snapshot_from_record({"id": 1, "type": "text", "text": "x", "timestamp": "2025-01-01T10:00:00"})

    assert item.captured_at.tzinfo == timezone.utc


@pytest.mark.parametrize("record", [
    None,
    [],
    {"type": "text", "text": "no id", "timestamp": "2025-01-01T10:00:00"},
    {"id": True, "type": "text", "text": "bool id", "timestamp": "2025-01-01T10:00:00"},
    {"id": 1, "type": "text", "text": "", "timestamp": "2025-01-01T10:00:00"},
    {"id": 1, "type": "image", "timestamp": "2025-01-01T10:00:00"},
    {"id": 1, "type": "file", "text": "x", "timestamp": "2025-01-01T10:00:00"},
    {"id": 1, "type": "text", "text": "x", "timestamp": "yesterday"},
    {"id": 1, "type": "text", "text": "x"},
])
def test_bad_records_raise_value_error(record):
    with pytest.raises(ValueError):
        snapshot_from_record(record)


def test_is_well_formed():
    assert is_well_formed(text_item("x"))
    assert is_well_formed(image_item("data:image/png;base64,AA"))
    assert not is_well_formed(text_item(""))
    assert not is_well_formed({"type": "text", "text": "x"})
    assert not is_well_formed(None)


def test_id_generator_is_strictly_increasing_within_a_tick():
    ids = SnapshotIdGenerator(clock=lambda: 1700000000.0)

    assert [ids.next_id() for _ in range(3)] == [1700000000000, 1700000000001, 1700000000002]


def test_id_generator_follows_clock():
    ticks = iter([1.0, 2.0])
    ids = SnapshotIdGenerator(clock=lambda: next(ticks))

    assert ids.next_id() == 1000
    assert ids.next_id() == 2000


def test_id_generator_never_goes_backwards():
    ticks = iter([5.0, 1.0])
    ids = SnapshotIdGenerator(clock=lambda: next(ticks))

    first = ids.next_id()
    assert ids.next_id() == first + 1


def test_make_snapshots_stamp_id_and_time():
    ids = SnapshotIdGenerator(clock=lambda: 10.0)
    before = datetime.now(timezone.utc)

    text = make_text_snapshot("hi", ids=ids)
    image = make_image_snapshot("data:image/png;base64,AA", ids=ids)

    assert isinstance(text, TextSnapshot)
    assert isinstance(image, ImageSnapshot)
    assert (text.id, image.id) == (10000, 10001)
    assert text.captured_at >= before

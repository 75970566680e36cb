"""Tests for history maintenance."""

import pytest

from clipstack.history import MAX_HISTORY_ITEMS, apply_snapshot, filter_history
from fixtures.test_data import image_item, text_history, text_item


def _keys(history):
    return [item.dedupe_key() for item in history]


class TestApplySnapshot:
    """Test dedupe, promotion and capacity rules."""

    def test_insert_into_empty_history(self):
        """Test that the first capture becomes the only entry."""
        hello = text_item("hello")

        result = apply_snapshot(hello, [])

        assert result == [hello]

    def test_promote_existing_text(self):
        """Test that a duplicate is moved to the top with the new snapshot."""
        a_old = text_item("a", item_id=2, minutes=2)
        b = text_item("b", item_id=1, minutes=1)
        a_new = text_item("a", item_id=3, minutes=3)

        result = apply_snapshot(a_new, [a_old, b])

        assert result == [a_new, b]
        assert result[0].id == 3
        assert result[0].captured_at == a_new.captured_at

    def test_promote_from_middle(self):
        """Test promotion of an entry that is not on top."""
        history = text_history(5)
        again = text_item(history[3].text, item_id=99)

        result = apply_snapshot(again, history)

        assert result[0] is again
        assert len(result) == 5
        assert [item.text for item in result[1:]] == [history[i].text for i in (0, 1, 2, 4)]

    def test_insert_new_prepends(self):
        """Test that a new item is put in front of the unchanged history."""
        history = text_history(3)
        fresh = text_item("fresh", item_id=100)

        result = apply_snapshot(fresh, history)

        assert result == [fresh] + history

    def test_text_and_image_with_same_payload_are_distinct(self):
        """Test that dedupe compares kind as well as payload."""
        as_text = text_item("data:image/png;base64,AAAA", item_id=1)
        as_image = image_item("data:image/png;base64,AAAA", item_id=2)

        result = apply_snapshot(as_image, [as_text])

        assert result == [as_image, as_text]

    def test_full_history_drops_oldest(self):
        """Test that a new image on a full history keeps 50 entries."""
        history = text_history(MAX_HISTORY_ITEMS)
        new_image = image_item("x", item_id=1000)

        result = apply_snapshot(new_image, history)

        assert len(result) == MAX_HISTORY_ITEMS
        assert result[0] is new_image
        assert history[-1] not in result
        assert result[1:] == history[:-1]

    def test_promotion_on_full_history_keeps_everything_else(self):
        """Test that promoting inside a full history drops nothing."""
        history = text_history(MAX_HISTORY_ITEMS)
        again = text_item(history[-1].text, item_id=1000)

        result = apply_snapshot(again, history)

        assert len(result) == MAX_HISTORY_ITEMS
        assert result[0] is again
        assert result[1:] == history[:-1]

    def test_custom_capacity(self):
        """Test truncation to a smaller bound."""
        result = apply_snapshot(text_item("new"), text_history(10), max_items=5)

        assert len(result) == 5

    def test_input_not_mutated(self):
        """Test that apply_snapshot is pure."""
        history = text_history(3)
        before = list(history)

        apply_snapshot(text_item(history[1].text, item_id=50), history)

        assert history == before

    def test_deterministic(self):
        """Test that equal inputs give equal outputs."""
        history = text_history(4)
        item = text_item("same", item_id=7)

        assert apply_snapshot(item, history) == apply_snapshot(item, history)

    @pytest.mark.parametrize("repeats", [1, 2, 5])
    def test_repeated_apply_keeps_single_entry(self, repeats):
        """Test that applying the same snapshot again never duplicates it."""
        history = text_history(3)
        item = text_item("repeat", item_id=500)

        for _ in range(repeats):
            history = apply_snapshot(item, history)

        assert history[0] is item
        assert _keys(history).count(item.dedupe_key()) == 1
        assert len(history) == 4

    @pytest.mark.parametrize("size", [0, 1, 25, 49, 50])
    def test_bounded_size(self, size):
        """Test that the result never exceeds the bound."""
        history = text_history(size)

        result = apply_snapshot(text_item("new", item_id=999), history)

        assert len(result) <= MAX_HISTORY_ITEMS
        assert len(set(_keys(result))) == len(result)


class TestFilterHistory:
    """Test the search filter."""

    @pytest.fixture
    def mixed_history(self):
        return [
            text_item("Hello World", item_id=5),
            image_item("data:image/png;base64,AAA", item_id=4),
            text_item("python snippet", item_id=3),
            image_item("data:image/png;base64,BBB", item_id=2),
            text_item("another HELLO", item_id=1),
        ]

    def test_empty_query_returns_all(self, mixed_history):
        """Test that an empty query keeps every entry in order."""
        assert filter_history(mixed_history, "") == mixed_history
        assert filter_history(mixed_history, "   ") == mixed_history

    def test_image_query_returns_only_images(self, mixed_history):
        """Test filtering by the image kind."""
        result = filter_history(mixed_history, "image")

        assert [item.id for item in result] == [4, 2]
        assert all(item.kind == "image" for item in result)

    def test_text_query_returns_only_text(self, mixed_history):
        """Test filtering by the text kind."""
        result = filter_history(mixed_history, "Text")

        assert [item.id for item in result] == [5, 3, 1]

    def test_substring_is_case_insensitive(self, mixed_history):
        """Test free-text search over text entries."""
        result = filter_history(mixed_history, "hello")

        assert [item.id for item in result] == [5, 1]

    def test_substring_never_matches_image_data(self, mixed_history):
        """Test that encoded image data is not searched."""
        assert filter_history(mixed_history, "base64") == []

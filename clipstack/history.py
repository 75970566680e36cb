"""
History maintenance - pure functions over the ordered clipboard history

History lists are most-recent-first. Nothing here mutates its inputs.
"""
from typing import List, Sequence

from clipstack.models import SNAPSHOT_KINDS, Snapshot, TEXT

MAX_HISTORY_ITEMS = 50


def apply_snapshot(new_item: Snapshot, current: Sequence[Snapshot],
                   max_items: int = MAX_HISTORY_ITEMS) -> List[Snapshot]:
    """
    Produce the next history after capturing new_item

    An existing entry with the same kind and payload is removed and the new
    snapshot takes its place at the top (promotion). Otherwise the new
    snapshot is simply put on top. The result is cut to max_items.

    Args:
        new_item: Well-formed snapshot just captured
        current: Current history, most recent first
        max_items: Capacity bound

    Returns:
        New history list
    """
    key = new_item.dedupe_key()
    result = [new_item]
    promoted = False
    for entry in current:
        if not promoted and entry.dedupe_key() == key:
            promoted = True
            continue
        result.append(entry)
    return result[:max_items]


def filter_history(history: Sequence[Snapshot], query: str) -> List[Snapshot]:
    """
    Filter history the way the search box does

    Args:
        history: History to filter
        query: Search string. Empty shows everything; "text" or "image"
            selects that kind; anything else matches inside text entries.

    Returns:
        Matching entries in their original order
    """
    needle = (query or "").strip().lower()
    if not needle:
        return list(history)

    if needle in SNAPSHOT_KINDS:
        return [entry for entry in history if entry.kind == needle]

    return [
        entry for entry in history
        if entry.kind == TEXT and needle in entry.payload.lower()
    ]

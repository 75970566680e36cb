#!/usr/bin/env python3
"""
History Service - Owns the in-memory clipboard history and keeps the store in sync
"""
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from clipstack.history import MAX_HISTORY_ITEMS, apply_snapshot
from clipstack.models import Snapshot, is_well_formed, snapshot_from_record
from clipstack.store import JsonStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "history"
THEME_KEY = "theme-color"


@dataclass(frozen=True)
class HistoryChanged:
    """Published after every history mutation"""
    history: Tuple[Snapshot, ...]

    def records(self) -> List[Dict]:
        return [item.to_record() for item in self.history]


HistoryListener = Callable[[HistoryChanged], None]


class HistoryService:
    """Service for maintaining the clipboard history"""

    def __init__(self, store: JsonStore, max_items: int = MAX_HISTORY_ITEMS):
        """
        Initialize history service

        Args:
            store: Key/value store the history is written through to
            max_items: History capacity
        """
        logger.info("[HistoryService.__init__] Starting initialization...")
        self.store = store
        self.max_items = min(max_items, MAX_HISTORY_ITEMS)
        self._items: List[Snapshot] = []
        self._listeners: List[HistoryListener] = []
        self._lock = threading.RLock()
        logger.info("[HistoryService.__init__] Initialization complete")

    def load(self) -> int:
        """
        Read the persisted history from the store

        Returns:
            Number of entries loaded
        """
        records = self.store.get(HISTORY_KEY)
        if records is None:
            records = []
        if not isinstance(records, list):
            logger.warning(f"Stored history is not a list ({type(records).__name__}), starting empty")
            records = []

        items: List[Snapshot] = []
        seen = set()
        for record in records:
            try:
                item = snapshot_from_record(record)
            except ValueError as e:
                logger.warning(f"Skipping bad history record: {e}")
                continue
            key = item.dedupe_key()
            if key in seen:
                continue
            seen.add(key)
            items.append(item)

        with self._lock:
            self._items = items[:self.max_items]
            count = len(self._items)
        logger.info(f"Loaded {count} history items from {self.store.path}")
        return count

    @property
    def items(self) -> List[Snapshot]:
        """Copy of the current history, most recent first"""
        with self._lock:
            return list(self._items)

    def records(self) -> List[Dict]:
        """Current history in its persisted shape"""
        return [item.to_record() for item in self.items]

    def add(self, snapshot: Snapshot) -> bool:
        """
        Capture a snapshot into the history

        Args:
            snapshot: New text or image snapshot

        Returns:
            True if the history changed, False if the snapshot was rejected
        """
        if not is_well_formed(snapshot):
            logger.warning(f"Rejecting malformed snapshot: {snapshot!r}")
            return False

        with self._lock:
            self._items = apply_snapshot(snapshot, self._items, self.max_items)
            event = HistoryChanged(tuple(self._items))
            self._persist(event)
            # Published under the lock so listeners see mutations in order
            self._publish(event)

        if snapshot.kind == "text":
            logger.info(f"✓ Captured text ({len(snapshot.payload)} chars)")
        else:
            logger.info(f"✓ Captured image ({len(snapshot.payload)} bytes encoded)")
        return True

    def clear(self):
        """Empty the history"""
        with self._lock:
            self._items = []
            event = HistoryChanged(())
            self._persist(event)
            self._publish(event)
        logger.info("History cleared")

    def get_theme(self) -> Optional[str]:
        """Read the stored theme color"""
        value = self.store.get(THEME_KEY)
        return value if isinstance(value, str) else None

    def set_theme(self, color: str) -> bool:
        """Store the theme color"""
        logger.info(f"Saving theme color: {color}")
        return self.store.set(THEME_KEY, color)

    def subscribe(self, listener: HistoryListener):
        """Register a callback for HistoryChanged events"""
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: HistoryListener):
        """Remove a previously registered callback"""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _persist(self, event: HistoryChanged):
        # A failed write is logged by the store; memory stays authoritative
        if not self.store.set(HISTORY_KEY, event.records()):
            logger.warning("History not persisted, keeping in-memory copy")

    def _publish(self, event: HistoryChanged):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Error in history listener {listener!r}: {e}")

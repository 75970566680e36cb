#!/usr/bin/env python3
"""
Screenshot Service - Ingests new screenshot files from a watched folder
"""
import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Set

from clipstack.models import SnapshotIdGenerator, make_image_snapshot
from clipstack.services.clipboard_service import CaptureState
from clipstack.services.history_service import HistoryService
from clipstack.services.image_service import ImageService

logger = logging.getLogger(__name__)


class ScreenshotService:
    """Service for picking up screenshots saved to a folder"""

    def __init__(self, history_service: HistoryService, image_service: ImageService,
                 capture_state: CaptureState, directory: str,
                 extensions: Iterable[str] = (".png", ".jpg"), enabled: bool = True,
                 settle_delay: float = 0.5, recency_window: float = 5.0,
                 scan_interval: float = 0.5, clock: Callable[[], float] = time.time,
                 ids: Optional[SnapshotIdGenerator] = None):
        """
        Initialize screenshot service

        Args:
            history_service: History the screenshots go into
            image_service: Decoder/encoder for image files
            capture_state: Last-seen values, shared with the clipboard service
            directory: Folder to watch
            extensions: File suffixes treated as screenshots
            enabled: Whether the folder is watched at all
            settle_delay: Seconds to wait before reading a new file
            recency_window: Files older than this many seconds are ignored
            scan_interval: Seconds between folder scans
            clock: Wall-clock source, compared against file mtimes
            ids: Snapshot id source
        """
        logger.info("[ScreenshotService.__init__] Starting initialization...")
        self.history_service = history_service
        self.image_service = image_service
        self.state = capture_state
        self.directory = Path(directory).expanduser()
        self.extensions = {ext.lower() for ext in extensions}
        self.enabled = enabled
        self.settle_delay = settle_delay
        self.recency_window = recency_window
        self.scan_interval = scan_interval
        self._clock = clock
        self._ids = ids
        self._known: Dict[str, int] = {}
        self._pending: Set[threading.Timer] = set()
        self._pending_lock = threading.Lock()
        self._stop_event = threading.Event()
        self.worker_thread: Optional[threading.Thread] = None
        logger.info("[ScreenshotService.__init__] Initialization complete")

    def start(self):
        """Start watching the screenshot folder"""
        if not self.enabled:
            logger.info("Screenshot folder watch disabled, not starting worker")
            return
        if self.worker_thread and self.worker_thread.is_alive():
            return

        # Files already in the folder are not new screenshots
        self._known = self._list_files()
        logger.info(f"📸 Watching {self.directory} for screenshots ({len(self._known)} existing files)")

        self._stop_event.clear()
        self.worker_thread = threading.Thread(target=self._worker, name="screenshot-watcher", daemon=True)
        self.worker_thread.start()

    def stop(self, timeout: float = 5.0):
        """Stop the scanner and cancel ingests that have not run yet"""
        self._stop_event.set()
        if self.worker_thread:
            self.worker_thread.join(timeout)
            self.worker_thread = None

        with self._pending_lock:
            pending = list(self._pending)
            self._pending.clear()
        for timer in pending:
            timer.cancel()
        logger.info(f"Screenshot folder watch stopped ({len(pending)} pending ingests cancelled)")

    def _worker(self):
        """Background thread that scans the folder at regular intervals"""
        while not self._stop_event.wait(self.scan_interval):
            try:
                self.scan_once()
            except Exception as e:
                logger.error(f"⚠ Screenshot watcher error: {e}")

    def _list_files(self) -> Dict[str, int]:
        """Map each file name in the folder to its mtime in nanoseconds"""
        files: Dict[str, int] = {}
        try:
            with os.scandir(self.directory) as entries:
                for entry in entries:
                    try:
                        if entry.is_file():
                            files[entry.name] = entry.stat().st_mtime_ns
                    except OSError:
                        # Removed between listing and stat
                        continue
        except FileNotFoundError:
            logger.debug(f"Screenshot folder {self.directory} does not exist")
        except OSError as e:
            logger.warning(f"Cannot list screenshot folder {self.directory}: {e}")
        return files

    def is_screenshot(self, name: str) -> bool:
        """Check a file name against the screenshot extensions"""
        return Path(name).suffix.lower() in self.extensions

    def scan_once(self) -> Set[str]:
        """
        Look for files created or rewritten since the last scan and schedule their ingest

        A name seen before counts again when its mtime changed, which covers
        a screenshot saved over an older file of the same name.

        Returns:
            Names of the new screenshot files found
        """
        current = self._list_files()
        created = {
            name for name, mtime in current.items()
            if self._known.get(name) != mtime and self.is_screenshot(name)
        }
        self._known = current

        for name in sorted(created):
            logger.info(f"New screenshot file: {name}")
            self._schedule(self.directory / name)
        return created

    def _schedule(self, path: Path):
        """Ingest the file after the settle delay so a half-written file is not read"""
        if self._stop_event.is_set():
            return

        timer: Optional[threading.Timer] = None

        def run():
            with self._pending_lock:
                self._pending.discard(timer)
            self.ingest_file(path)

        timer = threading.Timer(self.settle_delay, run)
        timer.daemon = True
        with self._pending_lock:
            self._pending.add(timer)
        timer.start()

    def ingest_file(self, path: Path) -> bool:
        """
        Read a screenshot file into the history

        Args:
            path: Image file that just appeared

        Returns:
            True if a snapshot was added
        """
        try:
            if not path.is_file():
                logger.info(f"Screenshot {path.name} disappeared before it could be read")
                return False

            age = self._clock() - path.stat().st_mtime
            if age > self.recency_window:
                logger.info(f"Ignoring stale screenshot {path.name} (modified {age:.1f}s ago)")
                return False

            encoded = self.image_service.encode_file(path)
        except Exception as e:
            logger.error(f"Error reading screenshot {path}: {e}")
            return False

        if not self.state.accept_image(encoded):
            logger.info(f"Screenshot {path.name} matches the last captured image, skipping")
            return False
        return self.history_service.add(make_image_snapshot(encoded, ids=self._ids))

#!/usr/bin/env python3
"""
Clipboard Service - Polls the system clipboard and writes items back to it
"""
import logging
import shutil
import subprocess
import sys
import threading
from typing import Callable, Optional

import pyperclip
from PIL import Image, ImageGrab

from clipstack.models import (IMAGE, TEXT, Snapshot, SnapshotIdGenerator,
                              make_image_snapshot, make_text_snapshot)
from clipstack.services.history_service import HistoryService
from clipstack.services.image_service import ImageService

logger = logging.getLogger(__name__)


class ClipboardUnavailableError(RuntimeError):
    """No clipboard mechanism is available on this system"""


class CaptureState:
    """
    Last values seen by the capture paths

    Shared by the clipboard poller and the screenshot ingester so that an
    image captured by one is not captured again by the other.
    """

    def __init__(self):
        self.last_text = ""
        self.last_image_encoding = ""
        self._lock = threading.Lock()

    def accept_text(self, text: str) -> bool:
        """Record text as last seen. Returns False if it is empty or unchanged."""
        with self._lock:
            if not text or text == self.last_text:
                return False
            self.last_text = text
            return True

    def accept_image(self, encoding: str) -> bool:
        """Record an image encoding as last seen. Returns False if empty or unchanged."""
        with self._lock:
            if not encoding or encoding == self.last_image_encoding:
                return False
            self.last_image_encoding = encoding
            return True


def _grab_clipboard_image():
    return ImageGrab.grabclipboard()


class ClipboardService:
    """Service for polling the clipboard into the history"""

    def __init__(self, history_service: HistoryService, image_service: ImageService,
                 capture_state: Optional[CaptureState] = None, interval: float = 1.0,
                 capture_images: bool = True,
                 read_text: Callable[[], str] = pyperclip.paste,
                 write_text: Callable[[str], None] = pyperclip.copy,
                 grab_image: Callable[[], object] = _grab_clipboard_image,
                 ids: Optional[SnapshotIdGenerator] = None):
        """
        Initialize clipboard service

        Args:
            history_service: History the captured snapshots go into
            image_service: Encoder for clipboard images
            capture_state: Last-seen values, shared with the screenshot service
            interval: Seconds between clipboard reads
            capture_images: Whether the image channel is polled
            read_text: Clipboard text reader
            write_text: Clipboard text writer
            grab_image: Clipboard image reader
            ids: Snapshot id source
        """
        logger.info("[ClipboardService.__init__] Starting initialization...")
        self.history_service = history_service
        self.image_service = image_service
        self.state = capture_state or CaptureState()
        self.interval = interval
        self.capture_images = capture_images
        self._read_text = read_text
        self._write_text = write_text
        self._grab_image = grab_image
        self._ids = ids
        self._stop_event = threading.Event()
        self.worker_thread: Optional[threading.Thread] = None
        logger.info("[ClipboardService.__init__] Initialization complete")

    def check_available(self):
        """
        Make sure a clipboard can be read at all

        Raises:
            ClipboardUnavailableError: If no clipboard mechanism exists
        """
        try:
            self._read_text()
        except pyperclip.PyperclipException as e:
            raise ClipboardUnavailableError(str(e)) from e
        except Exception as e:
            # Anything else may be transient (clipboard busy); the poller retries
            logger.warning(f"Clipboard probe failed: {e}")

    def start(self):
        """Start clipboard polling worker thread"""
        if self.worker_thread and self.worker_thread.is_alive():
            return
        logger.info(f"📋 Clipboard polling started (interval: {self.interval}s)")
        self._stop_event.clear()
        self.worker_thread = threading.Thread(target=self._worker, name="clipboard-poller", daemon=True)
        self.worker_thread.start()

    def stop(self, timeout: float = 5.0):
        """Stop the polling thread and wait for it to exit"""
        self._stop_event.set()
        if self.worker_thread:
            self.worker_thread.join(timeout)
            self.worker_thread = None
        logger.info("Clipboard polling stopped")

    def _worker(self):
        """Background thread that polls the clipboard once per interval"""
        while not self._stop_event.wait(self.interval):
            try:
                self.poll_once()
            except Exception as e:
                logger.error(f"⚠ Clipboard poller error: {e}")

    def poll_once(self) -> int:
        """
        Check both clipboard channels once

        Returns:
            Number of snapshots captured this tick (0, 1 or 2)
        """
        captured = 0
        if self._poll_text():
            captured += 1
        if self.capture_images and self._poll_image():
            captured += 1
        return captured

    def _poll_text(self) -> bool:
        try:
            text = self._read_text()
        except Exception as e:
            logger.debug(f"Clipboard text read failed, skipping tick: {e}")
            return False

        if not isinstance(text, str) or not self.state.accept_text(text):
            return False
        return self.history_service.add(make_text_snapshot(text, ids=self._ids))

    def _poll_image(self) -> bool:
        try:
            grabbed = self._grab_image()
        except Exception as e:
            logger.debug(f"Clipboard image read failed, skipping tick: {e}")
            return False

        # grabclipboard() also returns file name lists; only images count
        if not isinstance(grabbed, Image.Image):
            return False

        try:
            encoded = self.image_service.encode_image(grabbed)
        except Exception as e:
            logger.error(f"Error encoding clipboard image: {e}")
            return False

        if not self.state.accept_image(encoded):
            return False
        return self.history_service.add(make_image_snapshot(encoded, ids=self._ids))

    def copy_item(self, snapshot: Snapshot) -> bool:
        """
        Put a history item back on the clipboard

        The value is recorded as last seen so the next tick does not capture
        it again.

        Returns:
            True if the clipboard was written
        """
        if snapshot.kind == TEXT:
            try:
                self._write_text(snapshot.payload)
            except Exception as e:
                logger.error(f"Error writing text to clipboard: {e}")
                return False
            self.state.accept_text(snapshot.payload)
            logger.info(f"Copied text back to clipboard ({len(snapshot.payload)} chars)")
            return True

        if snapshot.kind == IMAGE:
            try:
                png_bytes = self.image_service.decode_data_uri(snapshot.payload)
            except ValueError as e:
                logger.error(f"Cannot copy image item {snapshot.id}: {e}")
                return False
            if not self._write_image(png_bytes):
                return False
            self.state.accept_image(snapshot.payload)
            logger.info(f"Copied image back to clipboard ({len(png_bytes)} bytes)")
            return True

        logger.warning(f"Cannot copy item of kind {snapshot.kind!r}")
        return False

    def _write_image(self, png_bytes: bytes) -> bool:
        """Write PNG bytes to the clipboard with wl-copy or xclip"""
        if shutil.which("wl-copy"):
            cmd = ["wl-copy", "--type", "image/png"]
        elif shutil.which("xclip"):
            cmd = ["xclip", "-selection", "clipboard", "-t", "image/png", "-i"]
        else:
            logger.warning(f"No clipboard image writer available on {sys.platform} (need wl-copy or xclip)")
            return False

        try:
            # Both tools fork to keep owning the selection; the child must not hold our pipes
            result = subprocess.run(cmd, input=png_bytes, stdout=subprocess.DEVNULL,
                                    stderr=subprocess.DEVNULL, timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning("Clipboard image write timed out")
            return False
        except OSError as e:
            logger.error(f"Clipboard image write failed: {e}")
            return False

        if result.returncode != 0:
            logger.warning(f"Clipboard image write failed: {cmd[0]} exited with {result.returncode}")
            return False
        return True

#!/usr/bin/env python3
"""
ClipStack Server Main Entry Point
Initializes all services with dependency injection and starts the server
"""
import asyncio
import logging
import signal
import sys
import threading
from typing import Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

from clipstack.models import SnapshotIdGenerator
from clipstack.store import JsonStore
from clipstack.services.settings_service import SettingsService
from clipstack.services.history_service import HistoryService
from clipstack.services.image_service import ImageService
from clipstack.services.clipboard_service import (CaptureState, ClipboardService,
                                                  ClipboardUnavailableError)
from clipstack.services.screenshot_service import ScreenshotService
from clipstack.services.command_service import CommandService
from clipstack.services.ipc_service import IPCService
from clipstack.services.websocket_service import WebSocketService


class ClipStackServer:
    """Main server application with dependency injection"""

    def __init__(self, settings_service: Optional[SettingsService] = None):
        """Initialize server with all services"""
        logging.info("Initializing services...")

        # Initialize services in dependency order
        self.settings_service = settings_service or SettingsService()
        self.store = JsonStore(self.settings_service.storage_path)
        self.history_service = HistoryService(
            self.store,
            max_items=self.settings_service.max_history_items
        )
        self.image_service = ImageService()
        self.capture_state = CaptureState()
        self.ids = SnapshotIdGenerator()
        self.clipboard_service = ClipboardService(
            self.history_service,
            self.image_service,
            capture_state=self.capture_state,
            interval=self.settings_service.poll_interval,
            capture_images=self.settings_service.capture_images,
            ids=self.ids
        )
        screenshots = self.settings_service.screenshots
        self.screenshot_service = ScreenshotService(
            self.history_service,
            self.image_service,
            self.capture_state,
            directory=screenshots.directory,
            extensions=screenshots.extensions,
            enabled=screenshots.enabled,
            settle_delay=screenshots.settle_delay,
            recency_window=screenshots.recency_window,
            scan_interval=screenshots.scan_interval,
            ids=self.ids
        )
        self.command_service = CommandService(self.history_service, self.clipboard_service)
        self.ipc_service = IPCService(
            self.command_service,
            self.history_service,
            socket_path=self.settings_service.socket_path
        )
        self.websocket_service: Optional[WebSocketService] = None
        if self.settings_service.websocket_enabled:
            self.websocket_service = WebSocketService(
                self.command_service,
                self.history_service,
                port=self.settings_service.websocket_port
            )

        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.loop_thread: Optional[threading.Thread] = None
        self._shutdown_event = threading.Event()

        logging.info("All services initialized successfully")

    async def _start_transports(self):
        await self.ipc_service.start()
        if self.websocket_service:
            await self.websocket_service.start()

    async def _stop_transports(self):
        if self.websocket_service:
            await self.websocket_service.stop()
        await self.ipc_service.stop()

    def _run_loop(self, ready: threading.Event):
        """Run the transports' event loop in its own thread"""
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self._start_transports())
        except Exception as e:
            logging.critical(f"Failed to start IPC transports: {e}")
            self.loop.run_until_complete(self._stop_transports())
            self._shutdown_event.set()
            ready.set()
            return
        ready.set()
        self.loop.run_forever()

    def signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        logging.info(f"Received signal {signum}, shutting down...")
        self._shutdown_event.set()

    def shutdown(self):
        """Stop capture first, then the transports, then release the loop"""
        self.clipboard_service.stop()
        self.screenshot_service.stop()

        if self.loop and self.loop.is_running():
            future = asyncio.run_coroutine_threadsafe(self._stop_transports(), self.loop)
            try:
                future.result(timeout=5)
            except Exception as e:
                logging.error(f"Error stopping transports: {e}")
            self.loop.call_soon_threadsafe(self.loop.stop)

        if self.loop_thread:
            self.loop_thread.join(timeout=5)
        if self.loop and not self.loop.is_running():
            self.loop.close()

        logging.info("Server shutdown complete")

    def start(self) -> int:
        """
        Start the ClipStack server and block until a shutdown signal

        Returns:
            Process exit code
        """
        try:
            self.clipboard_service.check_available()
        except ClipboardUnavailableError as e:
            logging.critical(f"No clipboard available, cannot run: {e}")
            return 1

        self.history_service.load()

        # Set up signal handlers for cleanup
        signal.signal(signal.SIGTERM, self.signal_handler)
        signal.signal(signal.SIGINT, self.signal_handler)

        self.loop = asyncio.new_event_loop()
        ready = threading.Event()
        self.loop_thread = threading.Thread(target=self._run_loop, args=(ready,), name="ipc-loop", daemon=True)
        self.loop_thread.start()
        ready.wait()

        if self._shutdown_event.is_set():
            self.shutdown()
            return 1

        self.clipboard_service.start()
        self.screenshot_service.start()
        logging.info(f"ClipStack running (toggle popup with {self.settings_service.hotkey})")

        # Event.wait() with a timeout keeps the main thread responsive to signals
        while not self._shutdown_event.wait(1.0):
            pass

        self.shutdown()
        return 0


def main():
    server = ClipStackServer()
    sys.exit(server.start())


if __name__ == "__main__":
    main()

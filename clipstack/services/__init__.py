"""Background and transport services."""

from .clipboard_service import CaptureState, ClipboardService, ClipboardUnavailableError
from .command_service import CommandService
from .history_service import HistoryChanged, HistoryService
from .image_service import ImageService
from .ipc_service import IPCService
from .screenshot_service import ScreenshotService
from .settings_service import SettingsService
from .websocket_service import WebSocketService

__all__ = [
    "CaptureState",
    "ClipboardService",
    "ClipboardUnavailableError",
    "CommandService",
    "HistoryChanged",
    "HistoryService",
    "ImageService",
    "IPCService",
    "ScreenshotService",
    "SettingsService",
    "WebSocketService",
]

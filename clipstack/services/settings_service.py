#!/usr/bin/env python3
"""
Settings Service - Wrapper for settings management
"""
import logging
from pathlib import Path
from typing import Optional

from clipstack.settings import ScreenshotSettings, SettingsManager

logger = logging.getLogger(__name__)


class SettingsService:
    """Service for managing application settings"""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings service

        Args:
            config_path: Optional path to settings file
        """
        logger.info("[SettingsService.__init__] Starting initialization...")
        logger.info(f"[SettingsService.__init__] Loading settings from: {config_path or 'default path'}")
        self._manager = SettingsManager(config_path)
        logger.info("[SettingsService.__init__] Initialization complete")

    @property
    def poll_interval(self) -> float:
        """Get clipboard poll interval in seconds"""
        return self._manager.poll_interval

    @property
    def capture_images(self) -> bool:
        """Get whether clipboard images are captured"""
        return self._manager.capture_images

    @property
    def max_history_items(self) -> int:
        """Get history capacity"""
        return self._manager.max_history_items

    @property
    def screenshots(self) -> ScreenshotSettings:
        """Get screenshot folder watch settings"""
        return self._manager.screenshots

    @property
    def storage_path(self) -> Optional[str]:
        """Get history file path override"""
        return self._manager.storage_path

    @property
    def socket_path(self) -> Optional[str]:
        """Get IPC socket path override"""
        return self._manager.socket_path

    @property
    def websocket_enabled(self) -> bool:
        """Get whether the WebSocket transport is served"""
        return self._manager.websocket_enabled

    @property
    def websocket_port(self) -> int:
        """Get WebSocket port"""
        return self._manager.websocket_port

    @property
    def hotkey(self) -> str:
        """Get popup toggle chord"""
        return self._manager.hotkey

    def update_settings(self, **kwargs):
        """Update settings"""
        self._manager.update_settings(**kwargs)

    def reload(self):
        """Reload settings from file"""
        self._manager.reload()

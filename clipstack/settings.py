#!/usr/bin/env python3
"""
ClipStack Settings Management
Loads and validates settings from settings.yml using Pydantic
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


def default_config_path() -> Path:
    """Settings file location under XDG_CONFIG_HOME"""
    xdg_config_home = os.environ.get('XDG_CONFIG_HOME', str(Path.home() / '.config'))
    return Path(xdg_config_home) / 'clipstack' / 'settings.yml'


class CaptureSettings(BaseModel):
    """Clipboard polling settings"""
    poll_interval: float = Field(
        default=1.0,
        ge=0.1,
        le=60.0,
        description="Seconds between clipboard reads (0.1-60)"
    )
    images: bool = Field(
        default=True,
        description="Capture images copied to the clipboard"
    )


class HistorySettings(BaseModel):
    """History size settings"""
    max_items: int = Field(
        default=50,
        ge=1,
        le=50,
        description="Maximum number of entries kept in history (1-50)"
    )


class ScreenshotSettings(BaseModel):
    """Screenshot folder watch settings"""
    enabled: bool = Field(
        default=True,
        description="Ingest new image files from the screenshot folder"
    )
    directory: str = Field(
        default=str(Path.home() / "Desktop"),
        description="Folder to watch for new screenshots"
    )
    extensions: List[str] = Field(
        default_factory=lambda: [".png", ".jpg"],
        description="File extensions treated as screenshots"
    )
    settle_delay: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="Seconds to wait before reading a new file (0-10)"
    )
    recency_window: float = Field(
        default=5.0,
        ge=0.1,
        le=3600.0,
        description="Only files modified this many seconds ago or less are ingested"
    )
    scan_interval: float = Field(
        default=0.5,
        ge=0.1,
        le=60.0,
        description="Seconds between folder scans (0.1-60)"
    )

    @field_validator('extensions')
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        """Lower-case extensions and make sure they start with a dot"""
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith('.'):
                ext = '.' + ext
            normalized.append(ext)
        if not normalized:
            raise ValueError("at least one screenshot extension is required")
        return normalized


class StorageSettings(BaseModel):
    """Persistence settings"""
    path: Optional[str] = Field(
        default=None,
        description="History file path. Defaults to the XDG data directory"
    )


class ServerSettings(BaseModel):
    """IPC and WebSocket settings"""
    socket_path: Optional[str] = Field(
        default=None,
        description="UNIX socket path. Defaults to $XDG_RUNTIME_DIR/clipstack-ipc.sock"
    )
    websocket_enabled: bool = Field(
        default=True,
        description="Serve the command surface over WebSocket too"
    )
    websocket_port: int = Field(
        default=8765,
        ge=1024,
        le=65535,
        description="WebSocket port on localhost (1024-65535)"
    )


class HotkeySettings(BaseModel):
    """Hotkey read by the popup; the server does not register it"""
    toggle_window: str = Field(
        default="CommandOrControl+Shift+V",
        description="Chord that toggles the popup window"
    )


class Settings(BaseModel):
    """Main settings model"""
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    screenshots: ScreenshotSettings = Field(default_factory=ScreenshotSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    hotkey: HotkeySettings = Field(default_factory=HotkeySettings)


class SettingsManager:
    """Manages loading and accessing settings"""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager

        Args:
            config_path: Path to settings.yml file. Defaults to the XDG config directory
        """
        if config_path is None:
            config_path = default_config_path()

        self.config_path = Path(config_path)
        self.settings = self._load_settings()

    def _load_settings(self) -> Settings:
        """Load and validate settings from YAML file"""
        try:
            if not self.config_path.exists():
                logger.info(f"Settings file not found at {self.config_path}, using defaults")
                return Settings()

            with open(self.config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)

            if config_data is None:
                logger.info("Settings file is empty, using defaults")
                return Settings()

            settings = Settings(**config_data)
            logger.info(f"Loaded settings from {self.config_path}")
            logger.info(f"  - Poll interval: {settings.capture.poll_interval}s")
            logger.info(f"  - Max history items: {settings.history.max_items}")
            return settings

        except yaml.YAMLError as e:
            logger.error(f"Error parsing settings YAML: {e}")
            logger.error("Using default settings")
            return Settings()
        except Exception as e:
            logger.error(f"Error loading settings: {e}")
            logger.error("Using default settings")
            return Settings()

    def reload(self):
        """Reload settings from file"""
        self.settings = self._load_settings()

    @property
    def poll_interval(self) -> float:
        return self.settings.capture.poll_interval

    @property
    def capture_images(self) -> bool:
        return self.settings.capture.images

    @property
    def max_history_items(self) -> int:
        return self.settings.history.max_items

    @property
    def screenshots(self) -> ScreenshotSettings:
        return self.settings.screenshots

    @property
    def storage_path(self) -> Optional[str]:
        return self.settings.storage.path

    @property
    def socket_path(self) -> Optional[str]:
        return self.settings.server.socket_path

    @property
    def websocket_enabled(self) -> bool:
        return self.settings.server.websocket_enabled

    @property
    def websocket_port(self) -> int:
        return self.settings.server.websocket_port

    @property
    def hotkey(self) -> str:
        return self.settings.hotkey.toggle_window

    def update_settings(self, **kwargs):
        """Update settings and save to file"""
        data = self.settings.model_dump()
        for key, value in kwargs.items():
            # Nested keys like 'capture.poll_interval'
            parts = key.split('.')
            target = data
            for part in parts[:-1]:
                if part not in target or not isinstance(target[part], dict):
                    raise KeyError(f"Unknown settings section: {key}")
                target = target[part]
            if parts[-1] not in target:
                raise KeyError(f"Unknown setting: {key}")
            target[parts[-1]] = value

        # Re-validate so bad values never reach disk
        self.settings = Settings(**data)
        self._save_settings()

    def _save_settings(self):
        """Save current settings to YAML file"""
        config_data = self.settings.model_dump()
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f, default_flow_style=False)


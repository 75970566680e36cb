"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add tests/ to path for fixtures imports
sys.path.insert(0, str(Path(__file__).parent))

from clipstack.models import SnapshotIdGenerator
from clipstack.store import JsonStore
from clipstack.services.clipboard_service import CaptureState
from clipstack.services.history_service import HistoryService
from clipstack.services.image_service import ImageService


@pytest.fixture
def temp_store_path(tmp_path: Path) -> Path:
    return tmp_path / "paste-history.json"


@pytest.fixture
def temp_config_path(tmp_path: Path) -> Path:
    return tmp_path / "settings.yml"


@pytest.fixture
def store(temp_store_path: Path) -> JsonStore:
    return JsonStore(temp_store_path)


@pytest.fixture
def history_service(store: JsonStore) -> HistoryService:
    return HistoryService(store)


@pytest.fixture
def image_service() -> ImageService:
    return ImageService()


@pytest.fixture
def capture_state() -> CaptureState:
    return CaptureState()


@pytest.fixture
def ids() -> SnapshotIdGenerator:
    return SnapshotIdGenerator()

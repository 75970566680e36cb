"""JSON-file key/value store.

Holds the clipboard history and the theme preference in a single
pretty-printed JSON document, by default
~/.local/share/clipstack/paste-history.json.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

STORE_FILENAME = "paste-history.json"


def default_store_path() -> Path:
    """Store location under XDG_DATA_HOME."""
    xdg_data_home = os.environ.get('XDG_DATA_HOME', str(Path.home() / '.local' / 'share'))
    return Path(xdg_data_home) / 'clipstack' / STORE_FILENAME


class JsonStore:
    """Key/value store backed by one JSON object on disk."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else default_store_path()
        self._lock = threading.Lock()

    def _load(self) -> dict:
        """Load the whole document. Missing or corrupt files read as empty."""
        try:
            if self.path.exists():
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
                logger.warning("Store %s does not hold a JSON object, ignoring it", self.path)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.error("Error loading store %s: %s", self.path, e)
        return {}

    def _save(self, data: dict):
        """Write the whole document via a temp file so readers never see a partial write."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix='.store-', suffix='.json', dir=str(self.path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def get(self, key: str, default: Any = None) -> Any:
        """Read one key, or default when the key or the file is absent."""
        with self._lock:
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """
        Write one key, keeping every other key in the document

        Returns:
            True if the document was written, False if the write failed
        """
        with self._lock:
            data = self._load()
            data[key] = value
            try:
                self._save(data)
                return True
            except (OSError, TypeError, ValueError) as e:
                logger.error("Failed to save store %s: %s", self.path, e)
                return False

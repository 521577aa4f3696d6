"""
Durable key-value backends for the stock snapshot.

MemoryStorage keeps values in a dict and is what tests use to simulate a page
reload (build a new cache over the same storage object). JsonFileStorage writes
one file per key under a cache directory, the same way the Dropbox cache files
are kept on disk.
"""

import logging
import os
from typing import Dict, Optional

from app.core.exceptions import StockStorageError
from app.integrations.base import KeyValueStorage

logger = logging.getLogger(__name__)


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """Stores each key as ``<cache_dir>/<key>.json``."""

    def __init__(self, cache_dir: str):
        self.cache_dir = cache_dir

    def _path(self, key: str) -> str:
        return os.path.join(self.cache_dir, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StockStorageError(f"Could not read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StockStorageError(f"Could not write {path}: {e}") from e

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            if os.path.exists(path):
                os.remove(path)
                logger.debug(f"Removed stock snapshot {path}")
        except OSError as e:
            raise StockStorageError(f"Could not remove {path}: {e}") from e

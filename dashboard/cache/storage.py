from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
import json
import logging
import os

from dashboard.core.errors import StorageError, StorageQuotaExceeded

logger = logging.getLogger(__name__)


def _size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class Storage(ABC):
    """Local persistent key-value capability shared by the cache components.

    Values are strings (already serialized JSON). Implementations raise
    ``StorageError`` when a write cannot be completed and must leave the
    previous value untouched in that case.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        pass


class InMemoryStorage(Storage):
    def __init__(self, quota_bytes: int = 0):
        self._data: Dict[str, str] = {}
        # 0 disables the quota check
        self.quota_bytes = quota_bytes

    def _used_bytes(self, skip: Optional[str] = None) -> int:
        return sum(_size(k, v) for k, v in self._data.items() if k != skip)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes:
            needed = self._used_bytes(skip=key) + _size(key, value)
            if needed > self.quota_bytes:
                raise StorageQuotaExceeded(key, needed, self.quota_bytes)
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class JsonFileStorage(Storage):
    """Keeps every key in a single JSON document on disk."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._data: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache file {self.path}: {e}")
            return
        if isinstance(payload, dict):
            self._data = {k: v for k, v in payload.items() if isinstance(v, str)}

    def _flush(self) -> None:
        os.makedirs(self.path.parent, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f)
        os.replace(tmp_path, self.path)

    def _write(self, key: str, value: Optional[str]) -> None:
        previous = self._data.get(key)
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value
        try:
            self._flush()
        except OSError as e:
            if previous is None:
                self._data.pop(key, None)
            else:
                self._data[key] = previous
            raise StorageError(f"Could not persist '{key}' to {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._write(key, value)

    def remove(self, key: str) -> None:
        if key in self._data:
            self._write(key, None)

    def keys(self) -> List[str]:
        return list(self._data)

"""
Namespaced key-value storage.

``SecureStorage`` prefixes every key so that several consumers can share one
backend; ``clear()`` only touches keys under its own prefix.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from ..config import settings


logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Persistent string store shared by SecureStorage namespaces."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self) -> Iterable[str]:
        pass


class MemoryBackend(StorageBackend):
    """Process-local backend, lost on exit."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> Iterable[str]:
        return list(self._items)


class JsonFileBackend(StorageBackend):
    """Backend persisted as a single JSON object on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._items: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring storage file {self.path}: not a JSON object")
            return {}
        return {str(key): str(value) for key, value in data.items()}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._items, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self.path)

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._flush()

    def keys(self) -> Iterable[str]:
        return list(self._items)


class SecureStorage:
    """
    Namespaced JSON value store.

    Usage:
        storage = SecureStorage(prefix="fhevm_", backend=JsonFileBackend("permits.json"))
        storage.set("permit", {"signature": "0x..."})
        storage.get("permit")
        storage.clear()  # removes fhevm_* keys only
    """

    def __init__(
        self,
        prefix: Optional[str] = None,
        backend: Optional[StorageBackend] = None,
    ):
        self.prefix = prefix if prefix is not None else settings.storage_prefix
        self.backend = backend or MemoryBackend()

    def _full_key(self, key: str) -> str:
        return self.prefix + key

    def set(self, key: str, value: Any) -> None:
        self.backend.set_item(self._full_key(key), json.dumps(value))

    def get(self, key: str) -> Any:
        item = self.backend.get_item(self._full_key(key))
        if item is None:
            return None
        try:
            return json.loads(item)
        except json.JSONDecodeError:
            logger.warning(f"Dropping corrupt storage entry {self._full_key(key)}")
            self.backend.remove_item(self._full_key(key))
            return None

    def remove(self, key: str) -> None:
        self.backend.remove_item(self._full_key(key))

    def keys(self) -> list[str]:
        """Keys in this namespace, without the prefix."""
        return [
            key[len(self.prefix):]
            for key in self.backend.keys()
            if key.startswith(self.prefix)
        ]

    def clear(self) -> None:
        for key in list(self.backend.keys()):
            if key.startswith(self.prefix):
                self.backend.remove_item(key)

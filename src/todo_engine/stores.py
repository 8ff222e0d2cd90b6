from __future__ import annotations

import errno
import os
import re
from abc import ABC, abstractmethod
from threading import RLock
from typing import Dict, List, Optional

from loguru import logger

from .errors import StorageError, StorageQuotaExceeded, StorageWriteError
from .settings import Settings, get_settings


def _size_of(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


# PUBLIC_INTERFACE
class KeyValueStore(ABC):
    """
    Abstract string key-value store with an optional byte quota, modelled on
    browser local storage.

    Implementations must raise StorageQuotaExceeded when a write would not fit
    and StorageWriteError for other write failures.
    """

    def __init__(self, quota_bytes: int = 0) -> None:
        self.quota_bytes = max(quota_bytes, 0)

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if absent."""

    @abstractmethod
    def _write(self, key: str, value: str) -> None:
        """Persist value under key without quota checks."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete key if present."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Return all stored keys."""

    def used_bytes(self) -> int:
        total = 0
        for k in self.keys():
            v = self.get_item(k)
            if v is not None:
                total += _size_of(k, v)
        return total

    def set_item(self, key: str, value: str) -> None:
        """
        Store value under key.

        Raises:
            StorageQuotaExceeded if the quota is set and the write would exceed it.
        """
        if self.quota_bytes:
            current = self.get_item(key)
            used = self.used_bytes() - (_size_of(key, current) if current is not None else 0)
            required = _size_of(key, value)
            if used + required > self.quota_bytes:
                raise StorageQuotaExceeded(key, required, max(self.quota_bytes - used, 0))
        self._write(key, value)


class InMemoryKeyValueStore(KeyValueStore):
    """
    Thread-safe process-local store suitable for testing and the default runtime.
    Nothing survives the process.
    """

    def __init__(self, quota_bytes: int = 0, initial: Optional[Dict[str, str]] = None) -> None:
        super().__init__(quota_bytes)
        self._lock = RLock()
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def _write(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)


_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


class JsonFileKeyValueStore(KeyValueStore):
    """
    Stores each key as '<directory>/<key>.json'. Writes go through a temporary
    file and os.replace so a crash never leaves a half-written value behind.
    """

    def __init__(self, directory: str, quota_bytes: int = 0) -> None:
        super().__init__(quota_bytes)
        os.makedirs(directory, exist_ok=True)
        self._dir = directory

    def _path(self, key: str) -> str:
        return os.path.join(self._dir, _UNSAFE.sub("_", key) + ".json")

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Could not read '{key}' from {path}: {e}") from e

    def _write(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)
        except OSError as e:
            if e.errno in (errno.ENOSPC, errno.EDQUOT):
                raise StorageQuotaExceeded(key, _size_of(key, value), 0) from e
            raise StorageWriteError(f"Could not write '{key}' to {path}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass

    def keys(self) -> List[str]:
        # File names are sanitized keys; this matches the keys the engine writes.
        return [name[: -len(".json")] for name in os.listdir(self._dir) if name.endswith(".json")]


# PUBLIC_INTERFACE
def get_key_value_store(settings: Optional[Settings] = None) -> KeyValueStore:
    """
    Factory to return the configured key-value store based on settings.
    - memory: InMemoryKeyValueStore
    - file: JsonFileKeyValueStore rooted at settings.storage_path
    - sqlite: SQLiteKeyValueStore at settings.storage_path
    """
    settings = settings or get_settings()
    quota = settings.storage_quota_bytes
    if settings.storage_backend == "sqlite":
        from .db import SQLiteKeyValueStore

        logger.debug(f"Using sqlite key-value store at {settings.storage_path}")
        return SQLiteKeyValueStore(settings.storage_path or "./data/todos.db", quota_bytes=quota)
    if settings.storage_backend == "file":
        logger.debug(f"Using JSON file key-value store in {settings.storage_path}")
        return JsonFileKeyValueStore(settings.storage_path or "./data/todo-store", quota_bytes=quota)
    return InMemoryKeyValueStore(quota_bytes=quota)

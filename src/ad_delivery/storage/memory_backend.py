"""In-process storage backend, used by tests and one-shot CLI runs."""

import asyncio
import copy
import fnmatch
import time
from typing import Any, Optional

from ad_delivery.storage.base import StorageBackend


class MemoryBackend(StorageBackend):
    """Dictionary-backed storage. Values are deep-copied in and out."""

    def __init__(self):
        self._data: dict[str, tuple[Any, Optional[float]]] = {}
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    def _live_value(self, key: str) -> Optional[Any]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at < time.time():
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._live_value(key))

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = time.time() + ttl if ttl else None
        async with self._lock:
            self._data[key] = (copy.deepcopy(value), expires_at)

    async def set_if_version(self, key: str, value: dict, expected_version: int) -> bool:
        async with self._lock:
            current = self._live_value(key)
            if not isinstance(current, dict):
                return False
            if int(current.get("version") or 0) != expected_version:
                return False
            self._data[key] = (copy.deepcopy(value), None)
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            existed = self._live_value(key) is not None
            self._data.pop(key, None)
            return existed

    async def exists(self, key: str) -> bool:
        return self._live_value(key) is not None

    async def keys(self, pattern: str = "*") -> list[str]:
        return [
            key
            for key in list(self._data)
            if fnmatch.fnmatchcase(key, pattern) and self._live_value(key) is not None
        ]

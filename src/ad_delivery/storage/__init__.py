"""Storage backends for campaigns, insertion orders and delivery records."""

from ad_delivery.storage.base import StorageBackend
from ad_delivery.storage.factory import close_storage, get_storage, get_storage_backend
from ad_delivery.storage.memory_backend import MemoryBackend
from ad_delivery.storage.sqlite_backend import SQLiteBackend

__all__ = [
    "MemoryBackend",
    "SQLiteBackend",
    "StorageBackend",
    "close_storage",
    "get_storage",
    "get_storage_backend",
]

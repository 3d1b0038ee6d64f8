# Author: AgentRange Inc.
# Donated to IAB Tech Lab

"""Storage backend factory."""

from typing import Optional

from ad_delivery.storage.base import StorageBackend
from ad_delivery.storage.memory_backend import MemoryBackend
from ad_delivery.storage.sqlite_backend import SQLiteBackend

SUPPORTED_STORAGE_TYPES = ("sqlite", "redis", "memory")


def get_storage_backend(
    storage_type: Optional[str] = None,
    database_url: Optional[str] = None,
    redis_url: Optional[str] = None,
) -> StorageBackend:
    """Create the storage backend named by the arguments or the settings.

    Args:
        storage_type: "sqlite", "redis" or "memory". Defaults to settings.
        database_url: SQLite database URL (for sqlite backend)
        redis_url: Redis connection URL (for redis backend)

    Returns:
        An unconnected StorageBackend instance

    Raises:
        ValueError: If invalid storage type or missing configuration
    """
    from ad_delivery.config.settings import get_settings
    settings = get_settings()

    storage_type = (storage_type or settings.storage_type or "sqlite").lower()
    database_url = database_url or settings.database_url
    redis_url = redis_url or settings.redis_url

    if storage_type == "sqlite":
        return SQLiteBackend(database_url=database_url or "sqlite:///./ad_delivery.db")

    if storage_type == "memory":
        return MemoryBackend()

    if storage_type == "redis":
        if not redis_url:
            raise ValueError(
                "Redis URL required for redis storage. "
                "Set REDIS_URL environment variable or pass redis_url parameter."
            )

        from ad_delivery.storage.redis_backend import RedisBackend
        return RedisBackend(redis_url=redis_url)

    raise ValueError(
        f"Unknown storage type: {storage_type}. "
        f"Supported types: {', '.join(SUPPORTED_STORAGE_TYPES)}"
    )


_storage_instance: Optional[StorageBackend] = None


async def get_storage() -> StorageBackend:
    """Get the shared, connected storage instance, creating it on first use."""
    global _storage_instance

    if _storage_instance is None:
        backend = get_storage_backend()
        await backend.connect()
        _storage_instance = backend

    return _storage_instance


async def close_storage() -> None:
    """Disconnect and forget the shared storage instance."""
    global _storage_instance

    if _storage_instance is not None:
        await _storage_instance.disconnect()
        _storage_instance = None

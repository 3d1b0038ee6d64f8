# Author: AgentRange Inc.
# Donated to IAB Tech Lab

"""Redis storage backend implementation."""

import json
from typing import Any, Optional

from ad_delivery.storage.base import StorageBackend

try:
    import redis.asyncio as redis
    from redis.exceptions import WatchError
    REDIS_AVAILABLE = True
except ImportError:
    REDIS_AVAILABLE = False


class RedisBackend(StorageBackend):
    """Redis-based storage backend.

    Use this when several delivery workers share one data store. Versioned
    order writes use WATCH/MULTI so a concurrent writer aborts the
    transaction instead of being overwritten.

    Requires redis package: pip install redis
    """

    def __init__(self, redis_url: str, key_prefix: str = "ad_delivery:"):
        """Initialize Redis backend.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            key_prefix: Prefix for all keys to namespace the data
        """
        if not REDIS_AVAILABLE:
            raise ImportError(
                "Redis package not installed. Install with: pip install redis"
            )

        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self._client: Optional[redis.Redis] = None

    def _client_or_raise(self) -> "redis.Redis":
        if not self._client:
            raise RuntimeError("Storage not connected. Call connect() first.")
        return self._client

    def _prefixed_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _unprefixed_key(self, key: str) -> str:
        if key.startswith(self.key_prefix):
            return key[len(self.key_prefix):]
        return key

    async def connect(self) -> None:
        """Establish connection to Redis."""
        self._client = redis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        await self._client.ping()

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, key: str) -> Optional[Any]:
        """Retrieve a value by key."""
        value = await self._client_or_raise().get(self._prefixed_key(key))
        if value is None:
            return None
        return json.loads(value)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a value with optional TTL (seconds)."""
        client = self._client_or_raise()
        payload = json.dumps(value)
        prefixed = self._prefixed_key(key)

        if ttl:
            await client.setex(prefixed, ttl, payload)
        else:
            await client.set(prefixed, payload)

    async def set_if_version(self, key: str, value: dict, expected_version: int) -> bool:
        """Replace a document only if its stored version matches.

        The key is watched while the current version is read; if another
        client writes it before EXEC the transaction is discarded.
        """
        client = self._client_or_raise()
        prefixed = self._prefixed_key(key)

        async with client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(prefixed)
                current = await pipe.get(prefixed)
                if current is None:
                    return False
                if int(json.loads(current).get("version") or 0) != expected_version:
                    return False

                pipe.multi()
                pipe.set(prefixed, json.dumps(value))
                await pipe.execute()
                return True
            except WatchError:
                return False

    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if key existed."""
        result = await self._client_or_raise().delete(self._prefixed_key(key))
        return result > 0

    async def exists(self, key: str) -> bool:
        """Check if key exists."""
        result = await self._client_or_raise().exists(self._prefixed_key(key))
        return result > 0

    async def keys(self, pattern: str = "*") -> list[str]:
        """List keys matching pattern."""
        client = self._client_or_raise()
        found = []
        async for key in client.scan_iter(match=self._prefixed_key(pattern)):
            found.append(self._unprefixed_key(key))
        return found

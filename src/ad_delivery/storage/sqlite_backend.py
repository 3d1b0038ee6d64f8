# Author: AgentRange Inc.
# Donated to IAB Tech Lab

"""SQLite storage backend implementation."""

import json
import time
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from ad_delivery.storage.base import StorageBackend


class SQLiteBackend(StorageBackend):
    """SQLite-based storage backend.

    Documents are stored as JSON in a key-value table. Each row mirrors the
    document's `version` in its own column so versioned writes are a single
    conditional UPDATE. Suitable for development and single-instance
    deployments.
    """

    def __init__(self, database_url: str):
        """Initialize SQLite backend.

        Args:
            database_url: SQLite connection string (e.g., sqlite:///./ad_delivery.db)
        """
        if database_url.startswith("sqlite:///"):
            self.db_path = database_url[len("sqlite:///"):]
        else:
            self.db_path = database_url

        self._connection: Optional[aiosqlite.Connection] = None

    def _require_connection(self) -> aiosqlite.Connection:
        if not self._connection:
            raise RuntimeError("Storage not connected. Call connect() first.")
        return self._connection

    @staticmethod
    def _version_of(value: Any) -> int:
        if isinstance(value, dict):
            return int(value.get("version") or 0)
        return 0

    async def connect(self) -> None:
        """Establish connection and create tables."""
        if self.db_path != ":memory:":
            db_dir = Path(self.db_path).parent
            if db_dir and not db_dir.exists():
                db_dir.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)

        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 0,
                expires_at REAL
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_expires_at ON kv_store(expires_at)
        """)

        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def _cleanup_expired(self) -> None:
        """Remove expired entries."""
        connection = self._require_connection()
        await connection.execute(
            "DELETE FROM kv_store WHERE expires_at IS NOT NULL AND expires_at < ?",
            (time.time(),)
        )
        await connection.commit()

    async def get(self, key: str) -> Optional[Any]:
        """Retrieve a value by key."""
        connection = self._require_connection()

        async with connection.execute(
            "SELECT value, expires_at FROM kv_store WHERE key = ?",
            (key,)
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None

        value, expires_at = row
        if expires_at is not None and expires_at < time.time():
            await self.delete(key)
            return None

        return json.loads(value)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a value with optional TTL (seconds)."""
        connection = self._require_connection()

        expires_at = time.time() + ttl if ttl else None
        await connection.execute(
            """
            INSERT OR REPLACE INTO kv_store (key, value, version, expires_at)
            VALUES (?, ?, ?, ?)
            """,
            (key, json.dumps(value), self._version_of(value), expires_at)
        )
        await connection.commit()

    async def set_if_version(self, key: str, value: dict, expected_version: int) -> bool:
        """Replace a document only if its stored version matches."""
        connection = self._require_connection()

        async with connection.execute(
            """
            UPDATE kv_store SET value = ?, version = ?
            WHERE key = ? AND version = ?
              AND (expires_at IS NULL OR expires_at > ?)
            """,
            (json.dumps(value), self._version_of(value), key, expected_version, time.time())
        ) as cursor:
            updated = cursor.rowcount > 0
        await connection.commit()
        return updated

    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if key existed."""
        connection = self._require_connection()

        async with connection.execute(
            "DELETE FROM kv_store WHERE key = ?",
            (key,)
        ) as cursor:
            deleted = cursor.rowcount > 0
        await connection.commit()
        return deleted

    async def exists(self, key: str) -> bool:
        """Check if key exists."""
        connection = self._require_connection()

        async with connection.execute(
            "SELECT 1 FROM kv_store WHERE key = ? AND (expires_at IS NULL OR expires_at > ?)",
            (key, time.time())
        ) as cursor:
            row = await cursor.fetchone()
            return row is not None

    async def keys(self, pattern: str = "*") -> list[str]:
        """List keys matching a glob pattern (* and ? wildcards)."""
        connection = self._require_connection()
        await self._cleanup_expired()

        async with connection.execute(
            "SELECT key FROM kv_store WHERE key GLOB ? AND (expires_at IS NULL OR expires_at > ?)",
            (pattern, time.time())
        ) as cursor:
            rows = await cursor.fetchall()
            return [row[0] for row in rows]

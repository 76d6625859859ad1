"""
Key-Value Cache - JSON values with optional expiry.

Forecast and geocoding caches are written against the KeyValueStore
protocol so they can run on the database or in memory. Expired entries
read as missing.
"""

import json
import logging
import time
from typing import Any, Callable, Protocol, runtime_checkable

from kisanmitra.storage.database import Database

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for JSON key-value stores."""

    async def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None: ...
    async def delete(self, key: str) -> None: ...


def _expiry(now: float, ttl_seconds: float | None) -> float | None:
    return now + ttl_seconds if ttl_seconds is not None else None


class InMemoryKeyValueStore:
    """Process-local store with the same expiry rules as SQLiteKeyValueStore."""

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._entries: dict[str, tuple[str, float | None]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value_json, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return json.loads(value_json)

    async def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        # Stored as JSON so callers never share mutable state with the cache
        self._entries[key] = (json.dumps(value), _expiry(self._clock(), ttl_seconds))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class SQLiteKeyValueStore:
    """
    Store backed by the kv_cache table.

    Works on either database backend; the upsert syntax is shared by
    SQLite and PostgreSQL.
    """

    def __init__(self, database: Database, clock: Clock = time.time):
        self.db = database
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        """
        Get a cached value.

        Args:
            key: Cache key

        Returns:
            The decoded value, or None if missing or expired
        """
        row = await self.db.fetch_one(
            "SELECT value_json, expires_at FROM kv_cache WHERE key = ?",
            (key,),
        )
        if row is None:
            return None

        expires_at = row["expires_at"]
        if expires_at is not None and expires_at <= self._clock():
            await self.delete(key)
            return None

        try:
            return json.loads(row["value_json"])
        except ValueError:
            logger.warning("Dropping undecodable cache entry %s", key)
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Insert or replace a value."""
        await self.db.execute(
            """
            INSERT INTO kv_cache (key, value_json, expires_at)
            VALUES (?, ?, ?)
            ON CONFLICT (key) DO UPDATE SET
                value_json = excluded.value_json,
                expires_at = excluded.expires_at
            """,
            (key, json.dumps(value), _expiry(self._clock(), ttl_seconds)),
        )

    async def delete(self, key: str) -> None:
        await self.db.execute("DELETE FROM kv_cache WHERE key = ?", (key,))

    async def purge_expired(self) -> int:
        """Delete expired rows. Returns how many were removed."""
        now = self._clock()
        rows = await self.db.fetch_all(
            "SELECT key FROM kv_cache WHERE expires_at IS NOT NULL AND expires_at <= ?",
            (now,),
        )
        if rows:
            await self.db.execute(
                "DELETE FROM kv_cache WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (now,),
            )
            logger.info("Purged %d expired cache entries", len(rows))
        return len(rows)

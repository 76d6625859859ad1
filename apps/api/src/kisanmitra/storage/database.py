"""
Cache database.

Holds the kv_cache table behind the weather and geocoding caches.
SQLite (aiosqlite) for local runs, PostgreSQL (asyncpg) when
DATABASE_URL is a postgres:// URL. Queries are written with ?
placeholders and converted for Postgres.
"""

import logging
from pathlib import Path
from typing import Any

from kisanmitra.config import get_settings

logger = logging.getLogger(__name__)

# (name, statements) in apply order; both backends run the same SQL
MIGRATIONS: list[tuple[str, tuple[str, ...]]] = [
    (
        "001_create_kv_cache",
        (
            """
            CREATE TABLE IF NOT EXISTS kv_cache (
                key TEXT PRIMARY KEY,
                value_json TEXT NOT NULL,
                expires_at DOUBLE PRECISION,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_kv_cache_expires_at ON kv_cache(expires_at)",
        ),
    ),
]

MIGRATIONS_TABLE = """
    CREATE TABLE IF NOT EXISTS _migrations (
        name TEXT PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
"""


class SQLiteDatabase:
    """Single aiosqlite connection; every write commits."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self._connection: Any = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        import aiosqlite

        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA journal_mode = WAL")
        await self._migrate()

    async def disconnect(self) -> None:
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def _migrate(self) -> None:
        await self._connection.execute(MIGRATIONS_TABLE)
        for name, statements in MIGRATIONS:
            cursor = await self._connection.execute(
                "SELECT 1 FROM _migrations WHERE name = ?", (name,)
            )
            if await cursor.fetchone():
                continue
            for statement in statements:
                await self._connection.execute(statement)
            await self._connection.execute("INSERT INTO _migrations (name) VALUES (?)", (name,))
            await self._connection.commit()
            logger.info("Applied migration %s to %s", name, self.db_path)

    def _require_connection(self) -> Any:
        if not self._connection:
            raise RuntimeError("Database not connected")
        return self._connection

    async def execute(self, query: str, params: tuple[Any, ...] | None = None) -> None:
        connection = self._require_connection()
        await connection.execute(query, params or ())
        await connection.commit()

    async def fetch_one(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> dict[str, Any] | None:
        cursor = await self._require_connection().execute(query, params or ())
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def fetch_all(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> list[dict[str, Any]]:
        cursor = await self._require_connection().execute(query, params or ())
        return [dict(row) for row in await cursor.fetchall()]


class PostgresDatabase:
    """asyncpg connection pool for deployed instances."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._pool: Any = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        import asyncpg

        self._pool = await asyncpg.create_pool(self.database_url, min_size=1, max_size=5)
        await self._migrate()

    async def disconnect(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None

    async def _migrate(self) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(MIGRATIONS_TABLE)
            for name, statements in MIGRATIONS:
                if await conn.fetchrow("SELECT 1 FROM _migrations WHERE name = $1", name):
                    continue
                async with conn.transaction():
                    for statement in statements:
                        await conn.execute(statement)
                    await conn.execute("INSERT INTO _migrations (name) VALUES ($1)", name)
                logger.info("Applied migration %s", name)

    def _require_pool(self) -> Any:
        if not self._pool:
            raise RuntimeError("Database not connected")
        return self._pool

    async def execute(self, query: str, params: tuple[Any, ...] | None = None) -> None:
        async with self._require_pool().acquire() as conn:
            await conn.execute(self._convert_placeholders(query), *(params or ()))

    async def fetch_one(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> dict[str, Any] | None:
        async with self._require_pool().acquire() as conn:
            row = await conn.fetchrow(self._convert_placeholders(query), *(params or ()))
        return dict(row) if row else None

    async def fetch_all(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> list[dict[str, Any]]:
        async with self._require_pool().acquire() as conn:
            rows = await conn.fetch(self._convert_placeholders(query), *(params or ()))
        return [dict(row) for row in rows]

    @staticmethod
    def _convert_placeholders(query: str) -> str:
        """Rewrite ? placeholders as $1, $2, ..."""
        parts = query.split("?")
        return parts[0] + "".join(f"${i}{part}" for i, part in enumerate(parts[1:], start=1))


Database = SQLiteDatabase | PostgresDatabase

_database: Database | None = None


def create_database(database_url: str) -> Database:
    """Pick the backend for a database URL."""
    if database_url.startswith(("postgres://", "postgresql://")):
        return PostgresDatabase(database_url)
    if database_url.startswith("sqlite"):
        return SQLiteDatabase(database_url.split("///")[-1])
    return SQLiteDatabase("./kisanmitra.db")


async def get_database() -> Database:
    """Get the process-wide database, connecting on first use."""
    global _database

    if _database is None:
        _database = create_database(get_settings().database_url)
        await _database.connect()

    return _database


async def close_database() -> None:
    global _database

    if _database:
        await _database.disconnect()
        _database = None

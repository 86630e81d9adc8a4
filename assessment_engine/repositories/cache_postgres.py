from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any

import asyncpg

from assessment_engine.domain.errors import CacheError
from assessment_engine.repositories.sql_loader import load_sql

SQL_ENSURE_SCHEMA = load_sql("ensure_cache_schema.sql")
SQL_GET_ENTRY = load_sql("get_cache_entry.sql")
SQL_UPSERT_ENTRY = load_sql("upsert_cache_entry.sql")
SQL_PURGE_EXPIRED = load_sql("purge_expired_cache_entries.sql")

logger = logging.getLogger(__name__)

# InterfaceError and InternalClientError are client-side and not PostgresError
# subclasses; "pool is closing" and "another operation is in progress" land here.
STORE_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    asyncpg.exceptions.InternalClientError,
    OSError,
)


@dataclass
class AsyncpgPoolManager:
    dsn: str
    min_size: int = 1
    max_size: int = 5
    pool: Any | None = None

    async def startup(self) -> None:
        async def _init_connection(conn: Any) -> None:
            await conn.set_type_codec(
                "jsonb",
                encoder=json.dumps,
                decoder=json.loads,
                schema="pg_catalog",
            )

        self.pool = await asyncpg.create_pool(
            dsn=self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            init=_init_connection,
        )

    async def shutdown(self) -> None:
        if self.pool is None:
            return
        await self.pool.close()
        self.pool = None


@dataclass
class PostgresCacheStore:
    pool_manager: AsyncpgPoolManager

    def _pool(self) -> Any:
        if self.pool_manager.pool is None:
            raise CacheError("postgres pool is not initialized")
        return self.pool_manager.pool

    async def ensure_schema(self) -> None:
        async with self._pool().acquire() as conn:
            await conn.execute(SQL_ENSURE_SCHEMA)

    async def get(self, key: str) -> str | None:
        pool = self._pool()
        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(SQL_GET_ENTRY, key)
        except STORE_ERRORS as exc:
            raise CacheError(f"cache read failed for {key}: {exc}") from exc
        if row is None:
            return None
        return row["value"]

    async def put(self, key: str, value: str, *, ttl_seconds: int, metadata: dict[str, object]) -> None:
        pool = self._pool()
        try:
            async with pool.acquire() as conn:
                # Values arrive as JSON text; pass them through the jsonb codec
                # as decoded objects so they are stored once, not double-encoded.
                await conn.execute(SQL_UPSERT_ENTRY, key, json.loads(value), metadata, float(ttl_seconds))
        except STORE_ERRORS as exc:
            raise CacheError(f"cache write failed for {key}: {exc}") from exc

    async def purge_expired(self) -> int:
        async with self._pool().acquire() as conn:
            status = await conn.execute(SQL_PURGE_EXPIRED)
        # asyncpg returns the command tag, e.g. "DELETE 3".
        purged = int(status.split()[-1]) if status else 0
        logger.info("purged %d expired cache entries", purged)
        return purged

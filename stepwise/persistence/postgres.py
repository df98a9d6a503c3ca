"""PostgreSQL implementation of the storage adapter."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import asyncpg

from .adapter import StorageAdapter


class PostgresStorageAdapter(StorageAdapter):
    """Persist form data using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS wizard_state (
                storage_key TEXT PRIMARY KEY,
                data JSONB NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    async def save(self, key: str, data: dict[str, Any]) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO wizard_state (storage_key, data, updated_at) VALUES ($1, $2, $3)
                ON CONFLICT (storage_key) DO UPDATE SET data = EXCLUDED.data, updated_at = EXCLUDED.updated_at
                """,
                key,
                json.dumps(data),
                datetime.utcnow(),
            )
        finally:
            await conn.close()

    async def load(self, key: str) -> dict[str, Any] | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT data FROM wizard_state WHERE storage_key = $1", key
            )
        finally:
            await conn.close()
        if not row:
            return None
        data = row["data"]
        # asyncpg returns JSONB as text unless a codec is registered
        return json.loads(data) if isinstance(data, str) else data

    async def delete(self, key: str) -> None:
        conn = await self._connect()
        try:
            await conn.execute("DELETE FROM wizard_state WHERE storage_key = $1", key)
        finally:
            await conn.close()

    async def keys(self) -> list[str]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT storage_key FROM wizard_state ORDER BY storage_key"
            )
        finally:
            await conn.close()
        return [r["storage_key"] for r in rows]

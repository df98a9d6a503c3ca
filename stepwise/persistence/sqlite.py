"""SQLite implementation of the storage adapter."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from .adapter import StorageAdapter


class SQLiteStorageAdapter(StorageAdapter):
    """Persist form data using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS wizard_state (
                storage_key TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Adapter API
    async def save(self, key: str, data: dict[str, Any]) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO wizard_state (storage_key, data, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(storage_key) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
            """,
            key,
            json.dumps(data),
            datetime.utcnow().isoformat(),
        )

    async def load(self, key: str) -> dict[str, Any] | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT data FROM wizard_state WHERE storage_key = ?",
            key,
        )
        if not row:
            return None
        return json.loads(row["data"])

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(
            self._execute, "DELETE FROM wizard_state WHERE storage_key = ?", key
        )

    async def keys(self) -> list[str]:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT storage_key FROM wizard_state ORDER BY storage_key"
        )
        return [row["storage_key"] for row in rows]

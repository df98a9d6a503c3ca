"""JSON file implementation of the storage adapter."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any

from .adapter import StorageAdapter


class FileStorageAdapter(StorageAdapter):
    """Keep every key as an entry of a single JSON document on disk.

    Writes go to a temporary file that replaces the document, so a crash
    mid-write leaves the previous contents intact.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            content = f.read()
        return json.loads(content) if content.strip() else {}

    def _write(self, document: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)

    def _save(self, key: str, data: dict[str, Any]) -> None:
        document = self._read()
        document[key] = data
        self._write(document)

    def _delete(self, key: str) -> None:
        document = self._read()
        if document.pop(key, None) is not None:
            self._write(document)

    # ------------------------------------------------------------------
    async def save(self, key: str, data: dict[str, Any]) -> None:
        async with self._lock:
            await asyncio.to_thread(self._save, key, data)

    async def load(self, key: str) -> dict[str, Any] | None:
        document = await asyncio.to_thread(self._read)
        return document.get(key)

    async def delete(self, key: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._delete, key)

    async def keys(self) -> list[str]:
        document = await asyncio.to_thread(self._read)
        return sorted(document)

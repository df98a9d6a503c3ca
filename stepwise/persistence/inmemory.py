"""In-memory implementations of the storage adapter."""

from __future__ import annotations

import copy
from typing import Any, Dict

from .adapter import StorageAdapter


class InMemoryStorageAdapter(StorageAdapter):
    """Store form data in local memory.

    Useful for tests or when no storage is configured. Data survives
    controller re-creation within one process but not process restarts.
    """

    def __init__(self) -> None:
        self._slots: Dict[str, dict[str, Any]] = {}

    async def save(self, key: str, data: dict[str, Any]) -> None:
        self._slots[key] = copy.deepcopy(data)

    async def load(self, key: str) -> dict[str, Any] | None:
        data = self._slots.get(key)
        return copy.deepcopy(data) if data is not None else None

    async def delete(self, key: str) -> None:
        self._slots.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._slots)


class NullStorageAdapter(StorageAdapter):
    """Storage that keeps nothing, for ephemeral workflows."""

    async def save(self, key: str, data: dict[str, Any]) -> None:
        return None

    async def load(self, key: str) -> dict[str, Any] | None:
        return None

    async def delete(self, key: str) -> None:
        return None

    async def keys(self) -> list[str]:
        return []

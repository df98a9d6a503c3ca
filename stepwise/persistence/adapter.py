"""Storage abstraction for persisting workflow form data."""

from __future__ import annotations

from typing import Any, Protocol


class StorageAdapter(Protocol):
    """Protocol for key-value storage backends.

    A controller only ever touches its own configured key; backends may be
    shared across controllers.
    """

    async def save(self, key: str, data: dict[str, Any]) -> None:
        """Persist ``data`` under ``key``, replacing any previous value."""

    async def load(self, key: str) -> dict[str, Any] | None:
        """Return the data stored under ``key`` or ``None``."""

    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""

    async def keys(self) -> list[str]:
        """Return all stored keys."""

"""Ordered, best-effort writes on top of a storage adapter."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict

from .adapter import StorageAdapter

logger = logging.getLogger(__name__)


class SequencedWriter:
    """Apply writes per key in call order and never let storage errors escape.

    Each call to :meth:`stamp` issues a monotonically increasing version for a
    key. :meth:`write` serializes on a per-key lock and drops any write whose
    version is older than the last one applied, so a slow earlier save can
    never overwrite a newer one.
    """

    def __init__(self, adapter: StorageAdapter) -> None:
        self.adapter = adapter
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._issued: Dict[str, int] = defaultdict(int)
        self._applied: Dict[str, int] = {}

    def stamp(self, key: str) -> int:
        self._issued[key] += 1
        return self._issued[key]

    def last_applied(self, key: str) -> int:
        return self._applied.get(key, 0)

    async def write(self, key: str, data: dict[str, Any], version: int) -> bool:
        """Save ``data`` under ``key``; return ``True`` when it was applied."""
        async with self._locks[key]:
            if version <= self._applied.get(key, 0):
                logger.debug(
                    f"Dropping stale write for key={key} version={version} "
                    f"(applied={self._applied[key]})"
                )
                return False
            try:
                await self.adapter.save(key, data)
            except Exception as e:
                logger.warning(f"Failed to persist workflow data for key={key}: {e}")
                return False
            self._applied[key] = version
            return True

    async def read(self, key: str) -> dict[str, Any] | None:
        try:
            return await self.adapter.load(key)
        except Exception as e:
            logger.warning(f"Failed to load workflow data for key={key}: {e}")
            return None

    async def discard(self, key: str) -> bool:
        """Delete ``key`` after any pending writes; later stamps still apply."""
        async with self._locks[key]:
            self._applied[key] = self._issued[key]
            try:
                await self.adapter.delete(key)
            except Exception as e:
                logger.warning(f"Failed to delete workflow data for key={key}: {e}")
                return False
            return True

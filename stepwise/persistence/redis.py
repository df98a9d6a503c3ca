"""Redis implementation of the storage adapter."""

from __future__ import annotations

import json
from typing import Any, Optional

try:
    import redis.asyncio as redis
except ImportError:
    redis = None

from ..constants import REDIS_KEY_PREFIX
from .adapter import StorageAdapter


class RedisStorageAdapter(StorageAdapter):
    """Redis-backed storage shared across processes."""

    def __init__(self, url: str = "redis://localhost:6379/0", prefix: str = REDIS_KEY_PREFIX) -> None:
        if redis is None:
            raise ImportError("redis package is required for RedisStorageAdapter")

        self.url = url
        self.prefix = prefix
        self._redis: Optional[Any] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis.from_url(self.url, decode_responses=True)
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def save(self, key: str, data: dict[str, Any]) -> None:
        if not self._redis:
            await self.connect()
        await self._redis.set(self._key(key), json.dumps(data))

    async def load(self, key: str) -> dict[str, Any] | None:
        if not self._redis:
            await self.connect()
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def delete(self, key: str) -> None:
        if not self._redis:
            await self.connect()
        await self._redis.delete(self._key(key))

    async def keys(self) -> list[str]:
        if not self._redis:
            await self.connect()
        found = [k async for k in self._redis.scan_iter(match=f"{self.prefix}*")]
        return sorted(k[len(self.prefix):] for k in found)

"""Persistence layer for stepwise workflows."""

from __future__ import annotations

import os
from typing import Optional

from ..config import StepwiseConfig, load_config
from .adapter import StorageAdapter
from .file import FileStorageAdapter
from .inmemory import InMemoryStorageAdapter, NullStorageAdapter
from .sqlite import SQLiteStorageAdapter
from .writer import SequencedWriter

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresStorageAdapter
except ImportError:  # pragma: no cover - optional dependency
    PostgresStorageAdapter = None  # type: ignore

_adapter_instance: StorageAdapter | None = None


def get_adapter(
    storage_url: Optional[str] = None, config: Optional[StepwiseConfig] = None
) -> StorageAdapter:
    """Factory function to obtain a storage adapter.

    The backend is selected from ``storage_url`` which can be provided
    explicitly, via environment variable ``STEPWISE_STORAGE_URL``, or from
    loaded configuration. When no storage is configured, a process-wide
    in-memory adapter is returned.
    """

    global _adapter_instance
    if _adapter_instance is not None and storage_url is None and config is None:
        return _adapter_instance

    config = config or load_config()
    storage_url = (
        storage_url
        or os.getenv("STEPWISE_STORAGE_URL")
        or getattr(config.storage, "url", None)
    )

    if not storage_url or storage_url.startswith("memory://"):
        if not isinstance(_adapter_instance, InMemoryStorageAdapter):
            _adapter_instance = InMemoryStorageAdapter()
        return _adapter_instance

    if storage_url == "null://":
        _adapter_instance = NullStorageAdapter()
    elif storage_url.startswith("file://"):
        _adapter_instance = FileStorageAdapter(storage_url.replace("file://", "", 1))
    elif storage_url.startswith("sqlite://"):
        path = storage_url.replace("sqlite://", "", 1)
        _adapter_instance = SQLiteStorageAdapter(path)
    elif storage_url.startswith("postgres://") or storage_url.startswith(
        "postgresql://"
    ):
        if PostgresStorageAdapter is None:
            raise RuntimeError("Postgres support not available")
        _adapter_instance = PostgresStorageAdapter(storage_url)
    elif storage_url.startswith("redis://") or storage_url.startswith("rediss://"):
        from .redis import RedisStorageAdapter

        _adapter_instance = RedisStorageAdapter(storage_url)
    else:
        raise ValueError(f"Unsupported storage backend: {storage_url}")

    return _adapter_instance


__all__ = [
    "StorageAdapter",
    "InMemoryStorageAdapter",
    "NullStorageAdapter",
    "FileStorageAdapter",
    "SQLiteStorageAdapter",
    "PostgresStorageAdapter",
    "SequencedWriter",
    "get_adapter",
]

"""Helpers for user-supplied callbacks and import path references."""

from __future__ import annotations

import importlib
import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await ``value`` when a sync-or-async callback returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


def import_string(path: str) -> Any:
    """Resolve a ``package.module:attribute`` (or dotted) reference."""
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")
    if not module_name or not attr_path:
        raise ValueError(f"Invalid import path '{path}'")

    try:
        target: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            target = getattr(target, attr)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Failed to import '{attr_path}' from module '{module_name}': {e}")
    return target

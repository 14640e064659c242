from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

State store implementations and base contracts.
"""

from .base import StateStore, StoreCapabilities
from .in_memory import InMemoryStateStore
from .sqlite import SQLiteStateStore


def __getattr__(name: str):
    if name == "RedisStateStore":
        from .redis import RedisStateStore

        return RedisStateStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "StoreCapabilities",
    "StateStore",
    "InMemoryStateStore",
    "SQLiteStateStore",
    "RedisStateStore",
]

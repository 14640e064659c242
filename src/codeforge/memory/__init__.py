from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module provides the public API for the codeforge state store: models, backends and the env factory.
"""

from .models import JsonObject, JsonValue, StoreEvent, new_id, now_ms
from .store import InMemoryStateStore, SQLiteStateStore, StateStore, StoreCapabilities
from .factory import create_state_store_from_env


def __getattr__(name: str):
    if name == "RedisStateStore":
        from .store.redis import RedisStateStore

        return RedisStateStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "JsonValue",
    "JsonObject",
    "StoreEvent",
    "now_ms",
    "new_id",
    "StateStore",
    "StoreCapabilities",
    "InMemoryStateStore",
    "SQLiteStateStore",
    "RedisStateStore",
    "create_state_store_from_env",
]

from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module creates state store backends from environment variables.
"""

import os

from .store.base import StateStore
from .store.in_memory import InMemoryStateStore
from .store.sqlite import SQLiteStateStore


def create_state_store_from_env() -> StateStore:
    """Create a state store based on `CODEFORGE_STORE_BACKEND` and related settings."""
    backend = os.getenv("CODEFORGE_STORE_BACKEND", "sqlite").strip().lower()

    if backend in ("mem", "memory", "inmemory", "in_memory"):
        return InMemoryStateStore()

    if backend in ("sqlite", "sqlite3"):
        path = os.getenv("CODEFORGE_SQLITE_PATH", "codeforge_state.sqlite3")
        return SQLiteStateStore(path=path)

    if backend == "redis":
        from .store.redis import RedisStateStore

        url = os.getenv("CODEFORGE_REDIS_URL")
        if not url:
            host = os.getenv("CODEFORGE_REDIS_HOST", "localhost")
            port = os.getenv("CODEFORGE_REDIS_PORT", "6379")
            db = os.getenv("CODEFORGE_REDIS_DB", "0")
            password = os.getenv("CODEFORGE_REDIS_PASSWORD", "")
            url = (
                f"redis://:{password}@{host}:{port}/{db}"
                if password
                else f"redis://{host}:{port}/{db}"
            )
        max_events = int(os.getenv("CODEFORGE_REDIS_EVENTS_MAX", "2000"))
        return RedisStateStore(url=url, events_max_per_thread=max_events)

    raise ValueError(f"Unknown CODEFORGE_STORE_BACKEND: {backend}")

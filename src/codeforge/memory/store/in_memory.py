from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

In-process state store implementation for local development and tests.
"""

import asyncio

from ..models import JsonValue, StoreEvent
from .base import StateStore, StoreCapabilities


class InMemoryStateStore(StateStore):
    """Process-local backend. Survives a workflow crash only within one process."""

    capabilities = StoreCapabilities(durable=False, shared_across_processes=False, ttl=False)

    def __init__(self) -> None:
        super().__init__()
        self._lock = asyncio.Lock()
        self._events_by_thread: dict[str, list[StoreEvent]] = {}
        self._state_by_thread_key: dict[tuple[str, str], JsonValue] = {}

    async def append_event(self, event: StoreEvent) -> None:
        self._ensure_setup()
        async with self._lock:
            self._events_by_thread.setdefault(event.thread_id, []).append(event)

    async def get_recent_events(self, thread_id: str, limit: int = 50) -> list[StoreEvent]:
        self._ensure_setup()
        if limit <= 0:
            return []
        async with self._lock:
            return list(self._events_by_thread.get(thread_id, [])[-limit:])

    async def put_state(self, thread_id: str, key: str, value: JsonValue) -> None:
        self._ensure_setup()
        async with self._lock:
            self._state_by_thread_key[(thread_id, key)] = value

    async def get_state(self, thread_id: str, key: str) -> JsonValue | None:
        self._ensure_setup()
        async with self._lock:
            return self._state_by_thread_key.get((thread_id, key))

    async def list_state(self, thread_id: str, prefix: str | None = None) -> dict[str, JsonValue]:
        self._ensure_setup()
        async with self._lock:
            filtered_state: dict[str, JsonValue] = {}
            for (candidate_thread_id, state_key), state_value in self._state_by_thread_key.items():
                if candidate_thread_id != thread_id:
                    continue
                if prefix is not None and not state_key.startswith(prefix):
                    continue
                filtered_state[state_key] = state_value
            return dict(sorted(filtered_state.items(), key=lambda item: item[0]))

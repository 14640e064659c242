from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the abstract interface shared by state store backends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..models import JsonValue, StoreEvent


@dataclass(frozen=True, slots=True)
class StoreCapabilities:
    """Describes optional backend features."""

    durable: bool = False
    shared_across_processes: bool = False
    ttl: bool = False


class StateStore(ABC):
    """
    Base contract for all state backends.

    State is a thread-scoped key/value map of JSON values. `put_state` is an
    upsert, so writing the same key twice leaves exactly one record. Events
    form an append-only per-thread log returned in chronological order.
    """

    capabilities: StoreCapabilities = StoreCapabilities()

    def __init__(self) -> None:
        self._is_setup = False

    async def setup(self) -> None:
        """Initialize backend resources."""
        self._is_setup = True

    async def close(self) -> None:
        """Release backend resources."""
        self._is_setup = False

    async def __aenter__(self) -> "StateStore":
        await self.setup()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _ensure_setup(self) -> None:
        if not self._is_setup:
            raise RuntimeError(
                "StateStore is not initialized. Call setup() or use `async with`."
            )

    @abstractmethod
    async def append_event(self, event: StoreEvent) -> None:
        """Append one event for a thread."""

    @abstractmethod
    async def get_recent_events(
        self, thread_id: str, limit: int = 50
    ) -> list[StoreEvent]:
        """Return the newest `limit` events for a thread in chronological order."""

    @abstractmethod
    async def put_state(self, thread_id: str, key: str, value: JsonValue) -> None:
        """Set a state value for a thread-scoped key."""

    @abstractmethod
    async def get_state(self, thread_id: str, key: str) -> Optional[JsonValue]:
        """Return state value for a thread-scoped key."""

    @abstractmethod
    async def list_state(
        self, thread_id: str, prefix: str | None = None
    ) -> dict[str, JsonValue]:
        """List thread-scoped state sorted by key, optionally by key prefix."""

from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module provides a Redis state backend for low-latency checkpoints shared across workers.
"""

from redis.asyncio import Redis

from ..models import JsonValue, StoreEvent, json_dumps, json_loads
from .base import StateStore, StoreCapabilities


class RedisStateStore(StateStore):
    """Redis-backed state store using hashes for state and lists for events."""

    capabilities = StoreCapabilities(durable=True, shared_across_processes=True, ttl=True)

    def __init__(self, *, url: str, events_max_per_thread: int = 2_000) -> None:
        super().__init__()
        self.url = url
        self.events_max_per_thread = events_max_per_thread
        self._redis_client: Redis | None = None

    async def setup(self) -> None:
        self._redis_client = Redis.from_url(self.url, decode_responses=True)
        await self._redis_client.ping()
        await super().setup()

    async def close(self) -> None:
        if self._redis_client is not None:
            await self._redis_client.aclose()
            self._redis_client = None
        await super().close()

    def _redis(self) -> Redis:
        if self._redis_client is None:
            raise RuntimeError(
                "RedisStateStore is not initialized. Call setup() first."
            )
        return self._redis_client

    @staticmethod
    def _events_key(thread_id: str) -> str:
        return f"codeforge:events:{thread_id}"

    @staticmethod
    def _state_key(thread_id: str) -> str:
        return f"codeforge:state:{thread_id}"

    async def append_event(self, event: StoreEvent) -> None:
        self._ensure_setup()
        serialized_event = json_dumps(
            {
                "id": event.id,
                "thread_id": event.thread_id,
                "user_id": event.user_id,
                "type": event.type,
                "timestamp": event.timestamp,
                "payload": event.payload,
                "tags": event.tags,
            },
        )
        pipeline = self._redis().pipeline()
        events_key = self._events_key(event.thread_id)
        pipeline.lpush(events_key, serialized_event)
        pipeline.ltrim(events_key, 0, self.events_max_per_thread - 1)
        await pipeline.execute()

    async def get_recent_events(
        self, thread_id: str, limit: int = 50
    ) -> list[StoreEvent]:
        self._ensure_setup()
        if limit <= 0:
            return []
        serialized_events = await self._redis().lrange(
            self._events_key(thread_id), 0, limit - 1
        )
        return [self._deserialize_event(payload) for payload in reversed(serialized_events)]

    async def put_state(self, thread_id: str, key: str, value: JsonValue) -> None:
        self._ensure_setup()
        await self._redis().hset(self._state_key(thread_id), key, json_dumps(value))

    async def get_state(self, thread_id: str, key: str) -> JsonValue | None:
        self._ensure_setup()
        value = await self._redis().hget(self._state_key(thread_id), key)
        if value is None:
            return None
        return json_loads(value)

    async def list_state(
        self, thread_id: str, prefix: str | None = None
    ) -> dict[str, JsonValue]:
        self._ensure_setup()
        raw_values = await self._redis().hgetall(self._state_key(thread_id))
        filtered_state: dict[str, JsonValue] = {}
        for state_key, serialized_state_value in raw_values.items():
            if prefix is not None and not state_key.startswith(prefix):
                continue
            filtered_state[state_key] = json_loads(serialized_state_value)
        return dict(sorted(filtered_state.items(), key=lambda item: item[0]))

    @staticmethod
    def _deserialize_event(serialized: str) -> StoreEvent:
        data = json_loads(serialized)
        if not isinstance(data, dict):
            raise ValueError("Corrupt event payload in Redis")
        payload = data.get("payload")
        tags = data.get("tags")
        user_id = data.get("user_id")
        return StoreEvent(
            id=str(data["id"]),
            thread_id=str(data["thread_id"]),
            user_id=user_id if isinstance(user_id, str) else None,
            type=data["type"],  # type: ignore[arg-type]
            timestamp=int(data["timestamp"]),  # type: ignore[arg-type]
            payload=payload if isinstance(payload, dict) else {},
            tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
        )

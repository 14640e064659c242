from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module provides a SQLite state backend with JSON persistence.
"""

from typing import cast

import aiosqlite

from ..models import JsonValue, StoreEvent, json_dumps, json_loads, now_ms
from .base import StateStore, StoreCapabilities


class SQLiteStateStore(StateStore):
    """Persistent local state backend backed by SQLite."""

    capabilities = StoreCapabilities(durable=True, shared_across_processes=True, ttl=False)

    def __init__(self, path: str = "codeforge_state.sqlite3") -> None:
        super().__init__()
        self.path = path
        self._connection: aiosqlite.Connection | None = None

    async def setup(self) -> None:
        self._connection = await aiosqlite.connect(self.path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA journal_mode=WAL;")
        await self._connection.execute("PRAGMA synchronous=NORMAL;")
        await self._create_tables()
        await self._connection.commit()
        await super().setup()

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
        await super().close()

    def _db(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError(
                "SQLiteStateStore is not initialized. Call setup() first."
            )
        return self._connection

    async def _create_tables(self) -> None:
        db = self._db()
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS events (
              seq INTEGER PRIMARY KEY AUTOINCREMENT,
              id TEXT NOT NULL UNIQUE,
              thread_id TEXT NOT NULL,
              user_id TEXT,
              type TEXT NOT NULL,
              timestamp INTEGER NOT NULL,
              payload_json TEXT NOT NULL,
              tags_json TEXT NOT NULL
            );
            """,
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_events_thread_seq ON events(thread_id, seq DESC);"
        )
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS state_kv (
              thread_id TEXT NOT NULL,
              key TEXT NOT NULL,
              value_json TEXT NOT NULL,
              updated_at INTEGER NOT NULL,
              PRIMARY KEY(thread_id, key)
            );
            """,
        )

    async def append_event(self, event: StoreEvent) -> None:
        self._ensure_setup()
        db = self._db()
        await db.execute(
            """
            INSERT INTO events (id, thread_id, user_id, type, timestamp, payload_json, tags_json)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.id,
                event.thread_id,
                event.user_id,
                event.type,
                event.timestamp,
                json_dumps(event.payload),
                json_dumps(event.tags),
            ),
        )
        await db.commit()

    async def get_recent_events(
        self, thread_id: str, limit: int = 50
    ) -> list[StoreEvent]:
        self._ensure_setup()
        if limit <= 0:
            return []
        db = self._db()
        cursor = await db.execute(
            "SELECT * FROM events WHERE thread_id=? ORDER BY seq DESC LIMIT ?",
            (thread_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows][::-1]

    async def put_state(self, thread_id: str, key: str, value: JsonValue) -> None:
        self._ensure_setup()
        db = self._db()
        await db.execute(
            """
            INSERT INTO state_kv (thread_id, key, value_json, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(thread_id, key) DO UPDATE SET
              value_json=excluded.value_json,
              updated_at=excluded.updated_at
            """,
            (thread_id, key, json_dumps(value), now_ms()),
        )
        await db.commit()

    async def get_state(self, thread_id: str, key: str) -> JsonValue | None:
        self._ensure_setup()
        db = self._db()
        cursor = await db.execute(
            "SELECT value_json FROM state_kv WHERE thread_id=? AND key=?",
            (thread_id, key),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return json_loads(cast(str, row["value_json"]))

    async def list_state(
        self, thread_id: str, prefix: str | None = None
    ) -> dict[str, JsonValue]:
        self._ensure_setup()
        db = self._db()
        if prefix:
            cursor = await db.execute(
                "SELECT key, value_json FROM state_kv WHERE thread_id=? AND substr(key, 1, ?)=? ORDER BY key ASC",
                (thread_id, len(prefix), prefix),
            )
        else:
            cursor = await db.execute(
                "SELECT key, value_json FROM state_kv WHERE thread_id=? ORDER BY key ASC",
                (thread_id,),
            )
        rows = await cursor.fetchall()
        return {cast(str, row["key"]): json_loads(cast(str, row["value_json"])) for row in rows}

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> StoreEvent:
        payload = json_loads(cast(str, row["payload_json"]))
        tags = json_loads(cast(str, row["tags_json"]))
        return StoreEvent(
            id=cast(str, row["id"]),
            thread_id=cast(str, row["thread_id"]),
            user_id=row["user_id"],
            type=row["type"],
            timestamp=int(row["timestamp"]),
            payload=payload if isinstance(payload, dict) else {},
            tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
        )

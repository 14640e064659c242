from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the message persistence contract and a `StateStore`-backed implementation.
"""

from typing import Literal, Optional, Protocol, runtime_checkable

from ..memory.models import new_id, now_ms
from ..memory.store.base import StateStore
from .models import Fragment, Message, MessageRole, MessageType

SortOrder = Literal["asc", "desc"]


@runtime_checkable
class MessageRepository(Protocol):
    """Persistence operations the workflow consumes."""

    async def create_message(
        self,
        *,
        conversation_id: str,
        content: str,
        role: MessageRole,
        type: MessageType,
        fragment: Optional[Fragment] = None,
        message_id: Optional[str] = None,
    ) -> Message:
        """
        Persist one message. When `message_id` names an existing message,
        that message is returned unchanged instead of creating another.
        """
        ...

    async def list_recent_messages(
        self, conversation_id: str, limit: int, order: SortOrder = "desc"
    ) -> list[Message]:
        """Return the `limit` newest messages, sorted by creation in `order`."""
        ...

    async def list_messages(self, conversation_id: str) -> list[Message]:
        """Return every message with its fragment, oldest first."""
        ...


class StoreMessageRepository:
    """
    Keeps each conversation in its own store thread, one state key per
    message, so creating a message under a known id is an idempotent upsert.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store

    @staticmethod
    def _thread(conversation_id: str) -> str:
        return f"conversation:{conversation_id}"

    @staticmethod
    def _key(message_id: str) -> str:
        return f"message:{message_id}"

    async def create_message(
        self,
        *,
        conversation_id: str,
        content: str,
        role: MessageRole,
        type: MessageType,
        fragment: Optional[Fragment] = None,
        message_id: Optional[str] = None,
    ) -> Message:
        thread = self._thread(conversation_id)
        if message_id is not None:
            existing = await self.store.get_state(thread, self._key(message_id))
            if isinstance(existing, dict):
                return Message.from_json(existing)

        current = await self.store.list_state(thread, prefix="message:")
        message = Message(
            id=message_id or new_id("msg"),
            conversation_id=conversation_id,
            content=content,
            role=role,
            type=type,
            created_at=now_ms(),
            seq=len(current),
            fragment=fragment,
        )
        await self.store.put_state(thread, self._key(message.id), message.to_json())
        return message

    async def list_messages(self, conversation_id: str) -> list[Message]:
        raw = await self.store.list_state(self._thread(conversation_id), prefix="message:")
        messages = [Message.from_json(value) for value in raw.values() if isinstance(value, dict)]
        messages.sort(key=lambda m: (m.created_at, m.seq, m.id))
        return messages

    async def list_recent_messages(
        self, conversation_id: str, limit: int, order: SortOrder = "desc"
    ) -> list[Message]:
        if limit <= 0:
            return []
        newest = (await self.list_messages(conversation_id))[-limit:]
        if order == "desc":
            newest.reverse()
        return newest

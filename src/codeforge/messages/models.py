from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the persisted conversation records: messages and the
fragments attached to successful runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..memory.models import JsonObject


class MessageRole(str, Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


class MessageType(str, Enum):
    RESULT = "RESULT"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class Fragment:
    """The artifact of a successful run: where to preview it, what to call it, and its files."""

    sandbox_url: str
    title: str
    files: dict[str, str] = field(default_factory=dict)

    def to_json(self) -> JsonObject:
        return {
            "sandbox_url": self.sandbox_url,
            "title": self.title,
            "files": dict(self.files),
        }

    @staticmethod
    def from_json(data: dict[str, Any]) -> "Fragment":
        files = data.get("files")
        return Fragment(
            sandbox_url=str(data.get("sandbox_url", "")),
            title=str(data.get("title", "")),
            files={str(k): str(v) for k, v in files.items()} if isinstance(files, dict) else {},
        )


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    conversation_id: str
    content: str
    role: MessageRole
    type: MessageType
    created_at: int
    seq: int = 0
    fragment: Optional[Fragment] = None

    def to_json(self) -> JsonObject:
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "content": self.content,
            "role": self.role.value,
            "type": self.type.value,
            "created_at": self.created_at,
            "seq": self.seq,
            "fragment": self.fragment.to_json() if self.fragment is not None else None,
        }

    @staticmethod
    def from_json(data: dict[str, Any]) -> "Message":
        fragment = data.get("fragment")
        return Message(
            id=str(data["id"]),
            conversation_id=str(data["conversation_id"]),
            content=str(data.get("content", "")),
            role=MessageRole(data["role"]),
            type=MessageType(data["type"]),
            created_at=int(data.get("created_at", 0)),
            seq=int(data.get("seq", 0)),
            fragment=Fragment.from_json(fragment) if isinstance(fragment, dict) else None,
        )

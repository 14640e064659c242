from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Conversation message records and their persistence.
"""

from .models import Fragment, Message, MessageRole, MessageType
from .repository import MessageRepository, SortOrder, StoreMessageRepository

__all__ = [
    "Fragment",
    "Message",
    "MessageRole",
    "MessageType",
    "MessageRepository",
    "SortOrder",
    "StoreMessageRepository",
]

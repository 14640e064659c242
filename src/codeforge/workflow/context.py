from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module loads prior conversation turns as model context.
"""

from dataclasses import dataclass
from typing import List, Literal

from ..llms.types import Message
from ..messages.models import MessageRole
from ..messages.repository import MessageRepository
from .events import CodeAgentEvent
from .steps import DurableStepExecutor

TurnRole = Literal["user", "assistant"]


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    role: TurnRole
    content: str

    def to_message(self) -> Message:
        return Message(role=self.role, content=self.content)


async def load_context(
    steps: DurableStepExecutor,
    repository: MessageRepository,
    task: CodeAgentEvent,
    *,
    limit: int = 5,
) -> List[ConversationTurn]:
    """
    Fetch the `limit` newest messages of the task's conversation, oldest first.

    Runs once per run as the durable step `get-previous-messages`; stored
    assistant messages map to `assistant` and everything else to `user`.
    """

    async def _fetch() -> list[dict[str, str]]:
        if not task.conversation_id:
            return []
        recent = await repository.list_recent_messages(
            task.conversation_id, limit, order="desc"
        )
        turns = [
            {
                "role": "assistant" if m.role == MessageRole.ASSISTANT else "user",
                "content": m.content,
            }
            for m in recent
        ]
        turns.reverse()
        return turns

    raw = await steps.run("get-previous-messages", _fetch)
    return [
        ConversationTurn(role=item["role"], content=item["content"])  # type: ignore[index]
        for item in raw  # type: ignore[union-attr]
    ]

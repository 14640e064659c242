from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module records a user's message and starts the workflow run for it.
"""

from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from ..memory.models import new_id
from ..messages.models import MessageRole, MessageType
from ..messages.repository import MessageRepository
from .code_agent import CodeAgentWorkflow
from .errors import InvalidEventError
from .events import CodeAgentEvent
from .outcome import WorkflowResult


class UserMessageInput(BaseModel):
    value: str = Field(min_length=1, max_length=10000)
    conversation_id: str = Field(min_length=1)


async def submit_user_message(
    repository: MessageRepository,
    workflow: CodeAgentWorkflow,
    value: str,
    conversation_id: str,
    *,
    run_id: Optional[str] = None,
) -> WorkflowResult:
    """
    Persist the user's message, then run the code agent on it.

    Raises:
        InvalidEventError: `value` is empty or longer than 10000 characters,
            or `conversation_id` is empty.
    """
    try:
        payload = UserMessageInput(value=value, conversation_id=conversation_id)
    except ValidationError as e:
        raise InvalidEventError(f"Invalid user message: {e}") from e

    await repository.create_message(
        conversation_id=payload.conversation_id,
        content=payload.value,
        role=MessageRole.USER,
        type=MessageType.RESULT,
    )
    return await workflow.run(
        CodeAgentEvent(value=payload.value, conversation_id=payload.conversation_id),
        run_id=run_id or new_id("run"),
    )

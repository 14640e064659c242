from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module classifies a finished run and persists its single outcome message.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..messages.models import Fragment, MessageRole, MessageType
from ..messages.repository import MessageRepository
from .state import AgentState
from .steps import DurableStepExecutor

ERROR_MESSAGE = "Something went wrong. Please try again."


def is_error_outcome(state: AgentState) -> bool:
    """A run failed when it never recorded a summary or never wrote a file."""
    return not state.summary or not state.files


@dataclass(frozen=True, slots=True)
class WorkflowResult:
    url: str
    title: str
    files: Dict[str, str] = field(default_factory=dict)
    summary: str = ""
    is_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "files": dict(self.files),
            "summary": self.summary,
        }


def outcome_message_id(run_id: str) -> str:
    """Outcome messages are keyed by run so a replayed save cannot duplicate them."""
    return f"msg_{run_id}"


async def save_result(
    steps: DurableStepExecutor,
    repository: MessageRepository,
    *,
    conversation_id: Optional[str],
    state: AgentState,
    response: str,
    title: str,
    sandbox_url: str,
) -> Dict[str, Any]:
    """
    Persist exactly one RESULT or ERROR message for the run (step `save-result`).

    Returns the persisted message as JSON.
    """
    target = conversation_id or steps.run_id
    is_error = is_error_outcome(state)

    async def _persist() -> Dict[str, Any]:
        if is_error:
            message = await repository.create_message(
                conversation_id=target,
                content=ERROR_MESSAGE,
                role=MessageRole.ASSISTANT,
                type=MessageType.ERROR,
                message_id=outcome_message_id(steps.run_id),
            )
        else:
            message = await repository.create_message(
                conversation_id=target,
                content=response,
                role=MessageRole.ASSISTANT,
                type=MessageType.RESULT,
                fragment=Fragment(sandbox_url=sandbox_url, title=title, files=dict(state.files)),
                message_id=outcome_message_id(steps.run_id),
            )
        return message.to_json()

    return await steps.run("save-result", _persist)  # type: ignore[return-value]

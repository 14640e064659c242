from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the inbound event that triggers a code-agent run.
"""

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidEventError


class CodeAgentEvent(BaseModel):
    """
    Task submitted to the code agent.

    Accepts both the Python field names and the `{taskValue, conversationId}`
    wire shape.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    value: str = Field(alias="taskValue", min_length=1)
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CodeAgentEvent":
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as e:
            raise InvalidEventError(f"Invalid code-agent event: {e}") from e

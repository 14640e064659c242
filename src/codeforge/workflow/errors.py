from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the exceptions that cross the workflow boundary.
"""


class WorkflowError(Exception):
    """Base exception for all codeforge workflow errors."""

    pass


class StepFailedError(WorkflowError):
    """
    A durable step exhausted its retry policy, or failed with an error its
    retry predicate rejected. `cause` is the last exception raised.
    """

    def __init__(self, step_id: str, attempts: int, cause: BaseException | None) -> None:
        super().__init__(f"Step '{step_id}' failed after {attempts} attempt(s): {cause}")
        self.step_id = step_id
        self.attempts = attempts
        self.cause = cause


class StepSerializationError(WorkflowError):
    """A step returned a value that cannot be checkpointed as JSON."""

    pass


class InvalidEventError(WorkflowError):
    """The inbound task event or user message failed validation."""

    pass

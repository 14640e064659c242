from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines custom exceptions raised by sandbox backends.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base import CommandResult


class SandboxError(Exception):
    """Base exception for all codeforge sandbox errors."""

    pass


class SandboxConfigurationError(SandboxError):
    """The sandbox backend is missing a dependency or credentials."""

    pass


class SandboxUnavailableError(SandboxError):
    """
    A sandbox could not be created or re-attached. Callers treat this as an
    infrastructure failure and let the step retry policy handle it.
    """

    pass


class CommandFailedError(SandboxError):
    """A command exited non-zero; `result` carries everything it printed."""

    def __init__(self, message: str, result: CommandResult) -> None:
        super().__init__(message)
        self.result = result

    @property
    def exit_code(self) -> int:
        return self.result.exit_code

    @property
    def stdout(self) -> str:
        return self.result.stdout

    @property
    def stderr(self) -> str:
        return self.result.stderr

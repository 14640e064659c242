from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Sandbox contracts shared by every backend.

A sandbox is a remote Linux environment where the agent's commands run and
its files live. Workflow code only ever talks to a `SandboxHandle` obtained
from a `SandboxProvider`, and re-attaches by id before each use since a
handle does not survive a workflow crash.
"""

import dataclasses
from typing import Callable, Protocol, runtime_checkable

OutputCallback = Callable[[str], None]


@dataclasses.dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of running a command inside a sandbox."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@runtime_checkable
class SandboxHandle(Protocol):
    """A live connection to one sandbox."""

    @property
    def sandbox_id(self) -> str: ...

    async def run_command(
        self,
        cmd: str,
        *,
        on_stdout: OutputCallback | None = None,
        on_stderr: OutputCallback | None = None,
    ) -> CommandResult:
        """Run a shell command; a non-zero exit raises `CommandFailedError`."""
        ...

    async def write_file(self, path: str, content: str) -> None: ...

    async def read_file(self, path: str) -> str: ...

    async def set_timeout(self, seconds: int) -> None:
        """Extend the sandbox lifetime to `seconds` from now."""
        ...

    def get_host(self, port: int) -> str:
        """Return the public host name that forwards to `port` in the sandbox."""
        ...


@runtime_checkable
class SandboxProvider(Protocol):
    """Creates sandboxes and re-attaches to existing ones by id."""

    @property
    def name(self) -> str: ...

    async def create(self, template: str, *, timeout_s: int) -> SandboxHandle: ...

    async def connect(self, sandbox_id: str) -> SandboxHandle: ...

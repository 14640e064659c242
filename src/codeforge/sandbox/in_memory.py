from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

In-process sandbox backend for local development and tests.

Files live in a dict per sandbox. Commands are answered by a
`CommandHandler` callable; the default handler succeeds with empty output.
"""

import inspect
from dataclasses import dataclass, field
from typing import Awaitable, Callable, cast

from .base import CommandResult, OutputCallback
from .errors import CommandFailedError, SandboxError, SandboxUnavailableError

CommandHandler = Callable[[str, "InMemorySandbox"], CommandResult | Awaitable[CommandResult]]


def _succeed(cmd: str, sandbox: "InMemorySandbox") -> CommandResult:
    return CommandResult(exit_code=0, stdout="", stderr="")


@dataclass(slots=True)
class _SandboxRecord:
    sandbox_id: str
    template: str
    timeout_s: int
    files: dict[str, str] = field(default_factory=dict)
    commands: list[str] = field(default_factory=list)
    timeouts_applied: list[int] = field(default_factory=list)


class InMemorySandbox:
    """`SandboxHandle` over an in-process record shared by every handle for the same id."""

    def __init__(self, record: _SandboxRecord, handler: CommandHandler) -> None:
        self._record = record
        self._handler = handler

    @property
    def sandbox_id(self) -> str:
        return self._record.sandbox_id

    @property
    def files(self) -> dict[str, str]:
        return self._record.files

    async def run_command(
        self,
        cmd: str,
        *,
        on_stdout: OutputCallback | None = None,
        on_stderr: OutputCallback | None = None,
    ) -> CommandResult:
        self._record.commands.append(cmd)
        outcome = self._handler(cmd, self)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        result = cast(CommandResult, outcome)

        if result.stdout and on_stdout is not None:
            on_stdout(result.stdout)
        if result.stderr and on_stderr is not None:
            on_stderr(result.stderr)
        if not result.ok:
            raise CommandFailedError(f"Command exited with code {result.exit_code}", result)
        return result

    async def write_file(self, path: str, content: str) -> None:
        self._record.files[path] = content

    async def read_file(self, path: str) -> str:
        try:
            return self._record.files[path]
        except KeyError as e:
            raise SandboxError(f"File not found: {path}") from e

    async def set_timeout(self, seconds: int) -> None:
        self._record.timeouts_applied.append(seconds)

    def get_host(self, port: int) -> str:
        return f"{port}-{self._record.sandbox_id}.sandbox.local"


class InMemorySandboxProvider:
    """
    Process-local `SandboxProvider`.

    Ids are sequential (`sbx-1`, `sbx-2`, ...). `fail_connects` makes the next
    N `connect` calls raise `SandboxUnavailableError`.
    """

    def __init__(
        self,
        *,
        command_handler: CommandHandler | None = None,
        fail_connects: int = 0,
    ) -> None:
        self._handler = command_handler or _succeed
        self._records: dict[str, _SandboxRecord] = {}
        self.fail_connects = fail_connects
        self.create_calls = 0
        self.connect_calls = 0

    @property
    def name(self) -> str:
        return "memory"

    async def create(self, template: str, *, timeout_s: int) -> InMemorySandbox:
        self.create_calls += 1
        sandbox_id = f"sbx-{self.create_calls}"
        record = _SandboxRecord(sandbox_id=sandbox_id, template=template, timeout_s=timeout_s)
        self._records[sandbox_id] = record
        return InMemorySandbox(record, self._handler)

    async def connect(self, sandbox_id: str) -> InMemorySandbox:
        self.connect_calls += 1
        if self.fail_connects > 0:
            self.fail_connects -= 1
            raise SandboxUnavailableError(f"Failed to connect to sandbox '{sandbox_id}'")
        record = self._records.get(sandbox_id)
        if record is None:
            raise SandboxUnavailableError(f"Unknown sandbox: {sandbox_id}")
        return InMemorySandbox(record, self._handler)

    def sandbox(self, sandbox_id: str) -> _SandboxRecord:
        """Inspect a sandbox's files, commands and applied timeouts."""
        return self._records[sandbox_id]

    def sandbox_ids(self) -> list[str]:
        return list(self._records.keys())

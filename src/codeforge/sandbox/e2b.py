from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

E2B sandbox backend.

Implements `SandboxProvider`/`SandboxHandle` on top of
`e2b_code_interpreter.AsyncSandbox`. The dependency is imported lazily so the
rest of codeforge works without it installed.
"""

import importlib
import os
from typing import Any

from .base import CommandResult, OutputCallback
from .errors import (
    CommandFailedError,
    SandboxConfigurationError,
    SandboxError,
    SandboxUnavailableError,
)


def _async_sandbox_cls() -> Any:
    try:
        e2b_module = importlib.import_module("e2b_code_interpreter")
    except ImportError as error:
        raise SandboxConfigurationError(
            "E2B backend requires e2b-code-interpreter. "
            "Install with: pip install e2b-code-interpreter"
        ) from error
    async_sandbox = getattr(e2b_module, "AsyncSandbox", None)
    if async_sandbox is None:
        raise SandboxConfigurationError("e2b_code_interpreter does not export AsyncSandbox")
    return async_sandbox


class E2BSandbox:
    """`SandboxHandle` backed by one E2B `AsyncSandbox`."""

    def __init__(self, inner: Any) -> None:
        self._inner = inner

    @property
    def sandbox_id(self) -> str:
        return self._inner.sandbox_id

    async def run_command(
        self,
        cmd: str,
        *,
        on_stdout: OutputCallback | None = None,
        on_stderr: OutputCallback | None = None,
    ) -> CommandResult:
        """
        Execute a shell command inside the E2B sandbox.

        Output chunks are forwarded to the callbacks as they arrive and also
        collected, so the result carries the full stdout/stderr either way.
        """
        stdout_chunks: list[str] = []
        stderr_chunks: list[str] = []

        def handle_stdout(chunk: Any) -> None:
            text = str(getattr(chunk, "line", chunk))
            stdout_chunks.append(text)
            if on_stdout is not None:
                on_stdout(text)

        def handle_stderr(chunk: Any) -> None:
            text = str(getattr(chunk, "line", chunk))
            stderr_chunks.append(text)
            if on_stderr is not None:
                on_stderr(text)

        try:
            result = await self._inner.commands.run(
                cmd,
                on_stdout=handle_stdout,
                on_stderr=handle_stderr,
            )
        except Exception as error:
            # e2b raises CommandExitException on non-zero command exits.
            if not (hasattr(error, "exit_code") and hasattr(error, "stderr")):
                raise SandboxError(f"Command could not be executed: {error}") from error
            exit_code = getattr(error, "exit_code", None)
            failed = CommandResult(
                exit_code=exit_code if isinstance(exit_code, int) else 1,
                stdout=getattr(error, "stdout", "") or "".join(stdout_chunks),
                stderr=getattr(error, "stderr", "") or "".join(stderr_chunks),
            )
            raise CommandFailedError(str(error), failed) from error

        exit_code_raw = getattr(result, "exit_code", None)
        out = CommandResult(
            exit_code=exit_code_raw if isinstance(exit_code_raw, int) else 0,
            stdout=getattr(result, "stdout", "") or "".join(stdout_chunks),
            stderr=getattr(result, "stderr", "") or "".join(stderr_chunks),
        )
        if not out.ok:
            raise CommandFailedError(f"Command exited with code {out.exit_code}", out)
        return out

    async def write_file(self, path: str, content: str) -> None:
        """E2B creates parent directories automatically."""
        try:
            await self._inner.files.write(path, content)
        except Exception as error:
            raise SandboxError(f"Failed to write {path}: {error}") from error

    async def read_file(self, path: str) -> str:
        try:
            return await self._inner.files.read(path)
        except Exception as error:
            raise SandboxError(f"Failed to read {path}: {error}") from error

    async def set_timeout(self, seconds: int) -> None:
        await self._inner.set_timeout(seconds)

    def get_host(self, port: int) -> str:
        return self._inner.get_host(port)


class E2BSandboxProvider:
    """Creates and re-attaches E2B sandboxes."""

    def __init__(self, *, api_key: str | None = None) -> None:
        self.api_key = api_key or os.environ.get("E2B_API_KEY")

    @property
    def name(self) -> str:
        return "e2b"

    def _auth_kwargs(self) -> dict[str, Any]:
        return {"api_key": self.api_key} if self.api_key else {}

    async def create(self, template: str, *, timeout_s: int) -> E2BSandbox:
        async_sandbox = _async_sandbox_cls()
        try:
            inner = await async_sandbox.create(
                template=template,
                timeout=timeout_s,
                **self._auth_kwargs(),
            )
        except SandboxError:
            raise
        except Exception as error:
            raise SandboxUnavailableError(
                f"Failed to create sandbox from template '{template}': {error}"
            ) from error
        return E2BSandbox(inner)

    async def connect(self, sandbox_id: str) -> E2BSandbox:
        async_sandbox = _async_sandbox_cls()
        try:
            inner = await async_sandbox.connect(sandbox_id, **self._auth_kwargs())
        except Exception as error:
            raise SandboxUnavailableError(
                f"Failed to connect to sandbox '{sandbox_id}': {error}"
            ) from error
        return E2BSandbox(inner)

from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module builds the sandbox tools the code agent can call.

Every tool invocation runs as its own durable step, so a resumed run
replays committed side effects instead of repeating them. Failures inside
the sandbox become text for the model; only a sandbox that cannot be
re-attached escapes as an infrastructure failure.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..core.telemetry import TelemetrySink, emit
from ..sandbox.base import SandboxProvider
from ..sandbox.errors import CommandFailedError, SandboxError, SandboxUnavailableError
from ..tools.base import Tool, ToolContext, ToolError, ToolResult
from ..tools.decorator import tool
from ..tools.registry import RegistryMiddleware, ToolRegistry
from .config import WorkflowConfig
from .errors import StepFailedError, WorkflowError
from .sandbox import reconnect
from .state import AgentState, FileEdit, apply_edits
from .steps import DurableStepExecutor


class RunCommandArgs(BaseModel):
    command: str = Field(min_length=1)


class FileEditArgs(BaseModel):
    path: str = Field(min_length=1)
    content: str


class WriteFilesArgs(BaseModel):
    files: List[FileEditArgs]


class ReadFilesArgs(BaseModel):
    files: List[str]


def _run_scope(ctx: ToolContext) -> Tuple[AgentState, DurableStepExecutor]:
    if ctx.state is None or ctx.steps is None:
        raise WorkflowError("Sandbox tools require a ToolContext with state and steps")
    return ctx.state, ctx.steps


def build_toolset(
    provider: SandboxProvider,
    sandbox_id: str,
    config: WorkflowConfig,
) -> List[Tool[Any, Any]]:
    """
    Create the `run-command`, `write-files` and `read-files` tools bound to
    one sandbox.

    `StepFailedError` is re-raised by each tool so an exhausted step aborts
    the run instead of becoming model-visible text.
    """

    @tool(
        args_model=RunCommandArgs,
        name="run-command",
        description="Use the terminal to run commands",
        reraise=(StepFailedError,),
    )
    async def run_command(args: RunCommandArgs, ctx: ToolContext) -> Any:
        _, steps = _run_scope(ctx)

        async def _step() -> Dict[str, Optional[str]]:
            handle = await reconnect(provider, sandbox_id, config)
            stdout: List[str] = []
            stderr: List[str] = []
            try:
                result = await handle.run_command(
                    args.command,
                    on_stdout=stdout.append,
                    on_stderr=stderr.append,
                )
            except CommandFailedError as e:
                return {
                    "output": None,
                    "error": (
                        f"Command failed: {e} \n"
                        f"stdout: {''.join(stdout) or e.stdout}\n"
                        f"stderr: {''.join(stderr) or e.stderr}"
                    ),
                }
            except SandboxUnavailableError:
                raise
            except SandboxError as e:
                return {
                    "output": None,
                    "error": (
                        f"Command failed: {e} \n"
                        f"stdout: {''.join(stdout)}\n"
                        f"stderr: {''.join(stderr)}"
                    ),
                }
            return {"output": result.stdout or "".join(stdout), "error": None}

        out = await steps.run("run-command", _step)
        if out.get("error"):  # type: ignore[union-attr]
            return ToolError(str(out["error"]))  # type: ignore[index]
        return out["output"] or ""  # type: ignore[index]

    @tool(
        args_model=WriteFilesArgs,
        name="write-files",
        description="Create or update files in the sandbox",
        reraise=(StepFailedError,),
    )
    async def write_files(args: WriteFilesArgs, ctx: ToolContext) -> Any:
        state, steps = _run_scope(ctx)
        edits = [FileEdit(path=f.path, content=f.content) for f in args.files]

        async def _step() -> Dict[str, Any]:
            handle = await reconnect(provider, sandbox_id, config)
            updated = dict(state.files)
            error: Optional[str] = None
            for edit in edits:
                try:
                    await handle.write_file(edit.path, edit.content)
                except SandboxUnavailableError:
                    raise
                except SandboxError as e:
                    error = f"Failed to create or update files: {e}"
                    break
                updated = apply_edits(updated, [edit])
            return {"files": updated, "error": error}

        out = await steps.run("write-files", _step)
        state.commit_files(out["files"])  # type: ignore[index, arg-type]
        if out.get("error"):  # type: ignore[union-attr]
            return ToolError(str(out["error"]))  # type: ignore[index]
        # State holds the full map; the model sees this call's paths.
        return {"written": [e.path for e in edits], "total_files": len(state.files)}

    @tool(
        args_model=ReadFilesArgs,
        name="read-files",
        description="Read files from the sandbox",
        reraise=(StepFailedError,),
    )
    async def read_files(args: ReadFilesArgs, ctx: ToolContext) -> Any:
        _, steps = _run_scope(ctx)

        async def _step() -> Dict[str, Optional[str]]:
            handle = await reconnect(provider, sandbox_id, config)
            contents: List[Dict[str, str]] = []
            try:
                for path in args.files:
                    contents.append({"path": path, "content": await handle.read_file(path)})
            except SandboxUnavailableError:
                raise
            except SandboxError as e:
                return {"output": None, "error": f"Failed to read files: {e}"}
            return {"output": json.dumps(contents, ensure_ascii=False), "error": None}

        out = await steps.run("read-files", _step)
        if out.get("error"):  # type: ignore[union-attr]
            return ToolError(str(out["error"]))  # type: ignore[index]
        return out["output"]  # type: ignore[index]

    return [run_command, write_files, read_files]


def telemetry_middleware(telemetry: TelemetrySink, run_id: str) -> RegistryMiddleware:
    """Count every tool call and report failed ones as `tool.error` events."""

    async def _observe(
        call_next: Any,
        t: Tool[Any, Any],
        raw_args: Dict[str, Any],
        ctx: ToolContext,
        tool_call_id: str | None,
    ) -> ToolResult[Any]:
        result = await call_next(t, raw_args, ctx, tool_call_id)
        telemetry.increment_counter(
            "codeforge.tool_calls",
            attributes={"tool_name": t.spec.name, "success": result.success},
        )
        if not result.success:
            emit(
                telemetry,
                "tool.error",
                run_id=run_id,
                tool_name=t.spec.name,
                tool_call_id=tool_call_id,
                error=result.error_message,
            )
        return result

    return RegistryMiddleware(_observe, name="telemetry")


def build_registry(
    provider: SandboxProvider,
    sandbox_id: str,
    config: WorkflowConfig,
    *,
    telemetry: TelemetrySink,
    run_id: str,
) -> ToolRegistry:
    registry = ToolRegistry(middlewares=[telemetry_middleware(telemetry, run_id)])
    registry.register_many(build_toolset(provider, sandbox_id, config))
    return registry

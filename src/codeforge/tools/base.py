from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the types and base classes for tools the code agent can call.
"""

import asyncio
import functools
import inspect
import json
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Optional,
    Type,
    TypeVar,
    Union,
)

from pydantic import BaseModel, ValidationError

from .errors import ToolValidationError

if TYPE_CHECKING:
    from ..workflow.state import AgentState
    from ..workflow.steps import DurableStepExecutor


ArgsT = TypeVar("ArgsT", bound=BaseModel)
ReturnT = TypeVar("ReturnT")

AsyncToolFn = Callable[..., Awaitable[Any]]
SyncToolFn = Callable[..., Any]
ToolFn = Union[AsyncToolFn, SyncToolFn]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """
    Stable tool metadata used for registry listing + model-facing export.
    """

    name: str
    description: str
    parameters_schema: Dict[str, Any]  # JSON Schema for the tool's arguments


@dataclass(frozen=True, slots=True)
class ToolContext:
    """
    Per-run values a tool handler needs besides its arguments.

    `state` is the run's shared `AgentState` and `steps` the run's durable step
    executor; both are passed explicitly so concurrent runs never share them.
    """

    run_id: str | None = None
    state: AgentState | None = None
    steps: DurableStepExecutor | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolError:
    """
    Explicit "this failed, tell the model" value.

    A handler returns it instead of raising so the failure text becomes the
    tool result the model sees on its next turn.
    """

    message: str


@dataclass(frozen=True, slots=True)
class ToolResult(Generic[ReturnT]):
    """
    Standardized result object returned by tools after execution.

    Failed results carry `error_message`; the agent loop forwards it to the
    model as the tool output.
    """

    output: Optional[ReturnT] = None
    success: bool = True
    error_message: Optional[str] = None
    tool_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    tool_call_id: Optional[str] = None

    def to_model_text(self) -> str:
        """Render the result as the text content of a tool-result message."""
        if not self.success:
            return self.error_message or f"Tool '{self.tool_name}' failed"
        if self.output is None:
            return ""
        if isinstance(self.output, str):
            return self.output
        return json.dumps(self.output, ensure_ascii=False, default=str)


def as_async(fn: ToolFn) -> AsyncToolFn:
    """
    Utility function to convert a synchronous function into an asynchronous one.
    """
    if inspect.iscoroutinefunction(fn):
        return fn  # type: ignore[return-value]

    async def _wrapped(*args: Any, **kwargs: Any) -> Any:
        return await asyncio.to_thread(functools.partial(fn, *args, **kwargs))

    return _wrapped


def _infer_call_style(fn: Callable[..., Any]) -> str:
    """
    Determine how to call a tool based on the signature.

    Allowed:
      (args)
      (args, ctx)
      (ctx, args)

    We accept ctx by name "ctx" OR annotation ToolContext.
    """
    sig = inspect.signature(fn)
    params = list(sig.parameters.values())

    if any(p.kind in (p.VAR_KEYWORD, p.VAR_POSITIONAL) for p in params):
        raise ToolValidationError(
            f"Tool function '{getattr(fn, '__name__', 'unknown')}' cannot have *args or **kwargs."
        )

    if len(params) == 1:
        return "args"

    if len(params) == 2:
        p0, p1 = params
        if p0.annotation in (ToolContext, "ToolContext") or p0.name == "ctx":
            return "ctx_args"
        if p1.annotation in (ToolContext, "ToolContext") or p1.name == "ctx":
            return "args_ctx"
        raise ToolValidationError(
            f"Tool function '{getattr(fn, '__name__', 'unknown')}' must include ToolContext "
            f"as 'ctx' (by name or annotation). Signature: {sig}"
        )

    raise ToolValidationError(
        f"Tool function '{getattr(fn, '__name__', 'unknown')}' has invalid signature. "
        f"Expected (args) or (args, ctx) or (ctx, args). Got {sig}."
    )


class Tool(Generic[ArgsT, ReturnT]):
    """
    A function-based tool with a pydantic args model.

    `call` returns a `ToolResult` and does not raise for argument or handler
    failures: those become failed results. Exception types listed in
    `reraise` are the exception; they escape unchanged so infrastructure
    failures can abort the run.
    """

    def __init__(
        self,
        *,
        spec: ToolSpec,
        fn: ToolFn,
        args_model: Type[ArgsT],
        reraise: tuple[Type[BaseException], ...] = (),
    ) -> None:
        self.spec = spec
        self._original_fn = fn
        self.fn = as_async(fn)
        self.args_model = args_model
        self.reraise = reraise

        self._call_style = _infer_call_style(fn)

    def validate(self, raw_args: Dict[str, Any]) -> ArgsT:
        try:
            return self.args_model.model_validate(raw_args)
        except ValidationError as e:
            raise ToolValidationError(
                f"Invalid arguments for tool '{self.spec.name}': {e}"
            ) from e

    async def _invoke(self, args: ArgsT, ctx: ToolContext) -> Any:
        if self._call_style == "args":
            return await self.fn(args)
        if self._call_style == "args_ctx":
            return await self.fn(args, ctx)
        return await self.fn(ctx, args)

    def _failed(self, message: str, tool_call_id: Optional[str]) -> ToolResult[ReturnT]:
        return ToolResult(
            output=None,
            success=False,
            error_message=message,
            tool_name=self.spec.name,
            tool_call_id=tool_call_id,
        )

    async def call(
        self,
        raw_args: Dict[str, Any],
        *,
        ctx: Optional[ToolContext] = None,
        tool_call_id: Optional[str] = None,
    ) -> ToolResult[ReturnT]:
        ctx = ctx or ToolContext()

        try:
            args = self.validate(raw_args)
        except ToolValidationError as e:
            return self._failed(str(e), tool_call_id)

        try:
            output = await self._invoke(args, ctx)
        except Exception as e:
            if self.reraise and isinstance(e, self.reraise):
                raise
            return self._failed(f"Error executing tool '{self.spec.name}': {e}", tool_call_id)

        if isinstance(output, ToolError):
            return self._failed(output.message, tool_call_id)

        return ToolResult(
            output=output,
            success=True,
            error_message=None,
            tool_name=self.spec.name,
            tool_call_id=tool_call_id,
        )

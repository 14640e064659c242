from __future__ import annotations
"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module implements the ToolRegistry.
It stores tools by name, dispatches calls one at a time in the order the model
issued them, wraps every call in registry-level middlewares and exports tool
specs to LLM tool-calling formats.
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from ..llms.types import ToolDefinition
from .base import Tool, ToolContext, ToolResult
from .errors import ToolAlreadyRegisteredError, ToolNotFoundError
from .export import to_litellm_tools


RegistryCallNext = Callable[
    [Tool[Any, Any], Dict[str, Any], ToolContext, Optional[str]],
    Awaitable[ToolResult[Any]],
]


class RegistryMiddleware:
    """
    Wraps ALL tool calls executed through the registry (tracing, counters,
    argument normalization).

    fn: async (call_next, tool, raw_args, ctx, tool_call_id) -> ToolResult
    call_next: async (tool, raw_args, ctx, tool_call_id) -> ToolResult
    """

    def __init__(
        self,
        fn: Callable[..., Awaitable[ToolResult[Any]]],
        *,
        name: str | None = None,
    ) -> None:
        self.name = name or getattr(fn, "__name__", "registry_middleware")
        self.fn = fn

    async def __call__(
        self,
        call_next: RegistryCallNext,
        tool: Tool[Any, Any],
        raw_args: Dict[str, Any],
        ctx: ToolContext,
        tool_call_id: str | None,
    ) -> ToolResult[Any]:
        return await self.fn(call_next, tool, raw_args, ctx, tool_call_id)


class ToolRegistry:
    """
    Stores tools by name and dispatches calls through registry middlewares.

    Unknown tool names are reported as failed results, not exceptions, so
    the model sees which tools exist.
    """

    def __init__(
        self,
        *,
        middlewares: Optional[List[RegistryMiddleware]] = None,
    ) -> None:
        self._tools: Dict[str, Tool[Any, Any]] = {}
        self._middlewares: List[RegistryMiddleware] = list(middlewares or [])

    def register(self, tool: Tool[Any, Any], *, overwrite: bool = False) -> None:
        name = tool.spec.name
        if not overwrite and name in self._tools:
            raise ToolAlreadyRegisteredError(f"Tool already registered: {name}")
        self._tools[name] = tool

    def register_many(self, tools: Iterable[Tool[Any, Any]], *, overwrite: bool = False) -> None:
        for t in tools:
            self.register(t, overwrite=overwrite)

    def get(self, name: str) -> Tool[Any, Any]:
        try:
            return self._tools[name]
        except KeyError as e:
            raise ToolNotFoundError(f"Unknown tool: {name}") from e

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> List[str]:
        return list(self._tools.keys())

    def add_middleware(self, mw: RegistryMiddleware) -> None:
        self._middlewares.append(mw)

    async def call(
        self,
        name: str,
        raw_args: Dict[str, Any],
        *,
        ctx: ToolContext | None = None,
        tool_call_id: str | None = None,
    ) -> ToolResult[Any]:
        """Execute a registered tool by name."""
        ctx = ctx or ToolContext()

        if name not in self._tools:
            return ToolResult(
                output=None,
                success=False,
                error_message=f"Unknown tool: {name}. Available tools: {', '.join(self.names())}",
                tool_name=name,
                tool_call_id=tool_call_id,
            )

        async def _core_call(
            t: Tool[Any, Any],
            a: Dict[str, Any],
            c: ToolContext,
            tcid: str | None,
        ) -> ToolResult[Any]:
            return await t.call(a, ctx=c, tool_call_id=tcid)

        call_next: RegistryCallNext = _core_call
        for mw in reversed(self._middlewares):
            prev = call_next

            async def _wrapped(
                t: Tool[Any, Any],
                a: Dict[str, Any],
                c: ToolContext,
                tcid: str | None,
                _mw=mw,
                _prev=prev,
            ) -> ToolResult[Any]:
                return await _mw(_prev, t, a, c, tcid)

            call_next = _wrapped

        return await call_next(self._tools[name], raw_args, ctx, tool_call_id)

    def to_litellm_tools(self) -> List[ToolDefinition]:
        """Export registered tools as OpenAI-compatible function tool definitions."""
        return to_litellm_tools(self._tools.values())

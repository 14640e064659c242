"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Tool primitives: tool definitions, the registry and LiteLLM export.
"""

from .base import (
    Tool,
    ToolContext,
    ToolError,
    ToolFn,
    ToolResult,
    ToolSpec,
    as_async,
)
from .decorator import tool
from .errors import (
    CodeforgeToolError,
    ToolAlreadyRegisteredError,
    ToolNotFoundError,
    ToolValidationError,
)
from .export import normalize_json_schema, to_litellm_tools, toolspec_to_litellm_tool
from .registry import RegistryMiddleware, ToolRegistry

__all__ = [
    "Tool",
    "ToolSpec",
    "ToolContext",
    "ToolResult",
    "ToolError",
    "ToolFn",
    "as_async",
    "tool",
    "ToolRegistry",
    "RegistryMiddleware",
    "normalize_json_schema",
    "toolspec_to_litellm_tool",
    "to_litellm_tools",
    "CodeforgeToolError",
    "ToolValidationError",
    "ToolAlreadyRegisteredError",
    "ToolNotFoundError",
]

from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Tool export utilities for LiteLLM.

LiteLLM expects OpenAI-compatible tool definitions for tool/function calling.
This module exports Tool/ToolSpec into LiteLLM-ready payloads.
"""

from typing import Any, Dict, Iterable, List, cast

from ..llms.types import ToolDefinition
from .base import Tool, ToolSpec


def normalize_json_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Pydantic v2's model_json_schema() is generally usable as-is.
    We ensure it is at least an object schema with 'properties' to avoid edge cases.
    """
    if not isinstance(schema, dict):
        return {"type": "object", "properties": {}}

    out = dict(schema)
    out.pop("title", None)
    out.setdefault("type", "object")
    out.setdefault("properties", {})
    return out


def toolspec_to_litellm_tool(spec: ToolSpec) -> ToolDefinition:
    """
    Convert a ToolSpec into an OpenAI-compatible function tool definition:
      {"type": "function", "function": {"name", "description", "parameters"}}
    """
    return cast(
        ToolDefinition,
        {
            "type": "function",
            "function": {
                "name": spec.name,
                "description": spec.description,
                "parameters": normalize_json_schema(spec.parameters_schema),
            },
        },
    )


def to_litellm_tools(tools: Iterable[Tool[Any, Any]]) -> List[ToolDefinition]:
    """Export Tool objects to a list of LiteLLM tool definitions."""
    return [toolspec_to_litellm_tool(t.spec) for t in tools]

from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module converts model responses into ordered output items and parses them.
"""

from typing import Any, List, Literal, TypedDict, Union

from ..llms.clients.shared.normalization import to_plain_dict
from ..llms.types import JSONObject, LLMResponse

FALLBACK_TITLE = "Fragment"


class TextOutputItem(TypedDict):
    type: Literal["text"]
    role: str
    content: Union[str, List[str]]


class ToolCallOutputItem(TypedDict):
    type: Literal["tool_call"]
    name: str
    arguments: JSONObject


OutputItem = Union[TextOutputItem, ToolCallOutputItem]


def _message_texts(row: dict[str, Any]) -> List[str]:
    content = row.get("content")
    if isinstance(content, str):
        return [content]
    texts: List[str] = []
    if isinstance(content, list):
        for part in content:
            block = to_plain_dict(part)
            if block.get("type") in ("output_text", "text") and isinstance(block.get("text"), str):
                texts.append(block["text"])
    return texts


def output_items_from_response(resp: LLMResponse) -> List[OutputItem]:
    """
    Return the response's output items in provider order.

    Items come from the raw Responses payload when it is available;
    otherwise they are rebuilt from the normalized text and tool calls.
    """
    raw_output = resp.raw.get("output") if isinstance(resp.raw, dict) else None
    items: List[OutputItem] = []

    if isinstance(raw_output, list):
        for entry in raw_output:
            row = to_plain_dict(entry)
            kind = row.get("type")
            if kind == "message":
                texts = _message_texts(row)
                role = row.get("role") if isinstance(row.get("role"), str) else "assistant"
                items.append(
                    {
                        "type": "text",
                        "role": role,
                        "content": texts[0] if len(texts) == 1 else texts,
                    }
                )
            elif kind == "function_call":
                match = next(
                    (
                        tc
                        for tc in resp.tool_calls
                        if tc.id in (row.get("call_id"), row.get("id"))
                    ),
                    None,
                )
                items.append(
                    {
                        "type": "tool_call",
                        "name": str(row.get("name") or ""),
                        "arguments": dict(match.arguments) if match is not None else {},
                    }
                )
        return items

    if resp.text_parts:
        items.append(
            {
                "type": "text",
                "role": "assistant",
                "content": resp.text_parts[0] if len(resp.text_parts) == 1 else list(resp.text_parts),
            }
        )
    for tc in resp.tool_calls:
        items.append({"type": "tool_call", "name": tc.tool_name, "arguments": dict(tc.arguments)})
    return items


def parse_agent_output(items: List[OutputItem]) -> str:
    """
    Reduce output items to one string.

    Only the first item is considered: plain text is returned as-is, a list
    of text fragments is joined with single spaces, and anything else
    (including no items at all) falls back to `"Fragment"`.
    """
    if not items:
        return FALLBACK_TITLE
    first = items[0]
    if first.get("type") != "text":
        return FALLBACK_TITLE
    content = first.get("content")
    if isinstance(content, list):
        return " ".join(str(part) for part in content)
    if isinstance(content, str):
        return content
    return FALLBACK_TITLE

from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module detects when the agent declares its task complete.
"""

from typing import Callable, List, Optional

from .output import OutputItem

CompletionPredicate = Callable[[str], bool]


def marker_predicate(marker: str = "<task_summary>") -> CompletionPredicate:
    """Completion means the assistant text contains `marker` anywhere."""

    def _contains(text: str) -> bool:
        return marker in text

    return _contains


def last_assistant_text(items: List[OutputItem]) -> Optional[str]:
    """
    Text of the latest assistant text item, with multi-part content
    concatenated. Returns `None` when the turn produced no assistant text.
    """
    for item in reversed(items):
        if item.get("type") != "text" or item.get("role") != "assistant":
            continue
        content = item.get("content")
        if isinstance(content, list):
            return "".join(str(part) for part in content)
        if isinstance(content, str):
            return content
    return None

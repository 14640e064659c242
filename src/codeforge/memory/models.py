from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines core data models and JSON helpers for the codeforge state store.
"""

from dataclasses import dataclass, field
import json
import time
import uuid
from typing import Literal, Optional, TypeAlias, cast

EventType = Literal["step", "tool_call", "tool_result", "message", "system"]
JsonPrimitive: TypeAlias = str | int | float | bool | None
JsonValue: TypeAlias = JsonPrimitive | list["JsonValue"] | dict[str, "JsonValue"]
JsonObject: TypeAlias = dict[str, JsonValue]


@dataclass(frozen=True, slots=True)
class StoreEvent:
    """Append-only record in a thread's event log (e.g. one executed workflow step)."""

    id: str
    thread_id: str
    type: EventType
    timestamp: int
    payload: JsonObject
    user_id: Optional[str] = None
    tags: list[str] = field(default_factory=list)


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id(prefix: str = "evt") -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def json_dumps(obj: object) -> str:
    """Serialize strictly; non-JSON values raise `TypeError`/`ValueError`."""
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def json_loads(s: str) -> JsonValue:
    return cast(JsonValue, json.loads(s))

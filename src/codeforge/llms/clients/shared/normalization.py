from __future__ import annotations

"""
Shared client-side normalization helpers used across LLM adapters.
"""

from dataclasses import asdict, is_dataclass
from typing import Any

from ...types import Usage


def to_plain_dict(value: Any) -> dict[str, Any]:
    """Best-effort conversion of SDK/provider objects into plain dictionaries."""
    if isinstance(value, dict):
        return value

    for method in ("model_dump", "to_dict"):
        if hasattr(value, method):
            try:
                dumped = getattr(value, method)()
            except Exception:
                continue
            if isinstance(dumped, dict):
                return dumped

    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)

    if hasattr(value, "__dict__"):
        return dict(value.__dict__)

    return {}


def to_jsonable(value: Any) -> Any:
    """Recursively coerce values into JSON-serializable primitives/containers."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]

    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))

    as_dict = to_plain_dict(value)
    if as_dict:
        return to_jsonable(as_dict)

    return repr(value)


def extract_usage(raw_dict: dict[str, Any]) -> Usage:
    """Normalize usage token counters from provider payloads."""
    usage = to_plain_dict(raw_dict.get("usage"))
    if not usage:
        return Usage()

    input_tokens = usage.get("input_tokens")
    if input_tokens is None:
        input_tokens = usage.get("prompt_tokens")

    output_tokens = usage.get("output_tokens")
    if output_tokens is None:
        output_tokens = usage.get("completion_tokens")

    total_tokens = usage.get("total_tokens")
    return Usage(
        input_tokens=input_tokens if isinstance(input_tokens, int) else None,
        output_tokens=output_tokens if isinstance(output_tokens, int) else None,
        total_tokens=total_tokens if isinstance(total_tokens, int) else None,
    )

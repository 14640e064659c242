from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Utility functions for LLM interactions, including JSON parsing and backoff strategies.
"""
import json
import random
from typing import Any, Dict, Optional

from .errors import LLMError, LLMRetryableError, LLMTimeoutError


def clamp_str(s: str, max_chars: int) -> str:
    if len(s) <= max_chars:
        return s
    return s[:max_chars] + "…"


def safe_json_loads(s: str) -> Optional[Dict[str, Any]]:
    try:
        obj = json.loads(s)
        return obj if isinstance(obj, dict) else None
    except Exception:
        return None


def backoff_delay(attempt: int, base_s: float, jitter_s: float) -> float:
    """
    Exponential backoff with jitter.
    attempt=0 => base, attempt=1 => 2*base, etc.
    """
    exp = base_s * (2 ** attempt)
    jitter = random.uniform(0.0, jitter_s)
    return exp + jitter


def is_retryable_error(e: BaseException) -> bool:
    """
    Whether retrying the call that raised `e` could succeed.

    Classified LLM errors are retryable only when transient (rate limits,
    timeouts, provider outages). Anything that is not an `LLMError` counts as
    an infrastructure failure and stays retryable.
    """
    if isinstance(e, (LLMRetryableError, LLMTimeoutError)):
        return True
    return not isinstance(e, LLMError)

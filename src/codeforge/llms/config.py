from __future__ import annotations
import os

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

"""
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LLMConfig:
    # Models
    default_model: str

    # Reliability
    timeout_s: float
    max_retries: int
    backoff_base_s: float
    backoff_jitter_s: float

    # Safety/limits
    max_input_chars: int
    api_base_url: str | None = None
    api_key: str | None = None

    @staticmethod
    def from_env() -> "LLMConfig":
        return LLMConfig(
            default_model=os.getenv("CODEFORGE_LLM_MODEL", "gpt-4.1"),
            api_base_url=os.getenv("CODEFORGE_LLM_API_BASE_URL"),
            api_key=os.getenv("CODEFORGE_LLM_API_KEY"),
            timeout_s=float(os.getenv("CODEFORGE_LLM_TIMEOUT_S", "120")),
            max_retries=int(os.getenv("CODEFORGE_LLM_MAX_RETRIES", "3")),
            backoff_base_s=float(os.getenv("CODEFORGE_LLM_BACKOFF_BASE_S", "0.5")),
            backoff_jitter_s=float(os.getenv("CODEFORGE_LLM_BACKOFF_JITTER_S", "0.15")),
            max_input_chars=int(os.getenv("CODEFORGE_LLM_MAX_INPUT_CHARS", "400000")),
        )

"""Concrete LLM client implementations."""

from .adapters import LiteLLMClient
from .base.responses import ResponsesClientBase

__all__ = ["ResponsesClientBase", "LiteLLMClient"]

from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Public API for the codeforge LLM layer: normalized request/response types,
the provider-agnostic client base and the adapter factory.
"""

from .config import LLMConfig
from .errors import (
    LLMCapabilityError,
    LLMConfigurationError,
    LLMError,
    LLMInvalidResponseError,
    LLMRetryableError,
    LLMTimeoutError,
)
from .factory import available_llm_adapters, create_llm, create_llm_from_env, register_llm_adapter
from .llm import LLM
from .middleware import LLMChatMiddleware, MiddlewareStack
from .observability import LLMLifecycleEvent, LLMObserver, TelemetryLLMObserver
from .types import (
    LLMCapabilities,
    LLMRequest,
    LLMResponse,
    Message,
    ToolCall,
    ToolDefinition,
    Usage,
)

__all__ = [
    "LLM",
    "LLMConfig",
    "LLMRequest",
    "LLMResponse",
    "LLMCapabilities",
    "Message",
    "ToolCall",
    "ToolDefinition",
    "Usage",
    "MiddlewareStack",
    "LLMChatMiddleware",
    "LLMLifecycleEvent",
    "LLMObserver",
    "TelemetryLLMObserver",
    "LLMError",
    "LLMTimeoutError",
    "LLMRetryableError",
    "LLMInvalidResponseError",
    "LLMConfigurationError",
    "LLMCapabilityError",
    "create_llm",
    "create_llm_from_env",
    "register_llm_adapter",
    "available_llm_adapters",
]

from __future__ import annotations

"""
Factory utilities for constructing concrete LLM adapters.
"""

import os
from typing import TYPE_CHECKING, Callable

from .config import LLMConfig
from .errors import LLMConfigurationError
from .middleware import MiddlewareStack
from .observability import LLMObserver

if TYPE_CHECKING:
    from .llm import LLM


AdapterFactory = Callable[[LLMConfig, MiddlewareStack, list[LLMObserver]], "LLM"]
_BUILTIN_ADAPTERS = {"litellm"}
_REGISTRY: dict[str, AdapterFactory] = {}


def register_llm_adapter(
    name: str,
    factory: AdapterFactory,
    *,
    overwrite: bool = False,
) -> None:
    """Register a custom adapter factory by name."""
    key = name.strip().lower()
    if not key:
        raise ValueError("Adapter name must be non-empty")

    if (not overwrite) and key in _REGISTRY:
        raise ValueError(f"Adapter already registered: {key}")

    _REGISTRY[key] = factory


def available_llm_adapters() -> list[str]:
    """Return built-in and runtime-registered adapter names."""
    return sorted(set(_BUILTIN_ADAPTERS) | set(_REGISTRY.keys()))


def create_llm(
    adapter: str,
    *,
    config: LLMConfig | None = None,
    middlewares: MiddlewareStack | None = None,
    observers: list[LLMObserver] | None = None,
) -> "LLM":
    """Create an LLM client instance for a specific adapter key."""
    key = adapter.strip().lower()
    if not key:
        raise LLMConfigurationError("Adapter name must be non-empty")

    factory = _REGISTRY.get(key) or _builtin_factory(key)
    return factory(
        config or LLMConfig.from_env(),
        middlewares or MiddlewareStack(),
        list(observers or []),
    )


def create_llm_from_env(
    *,
    config: LLMConfig | None = None,
    middlewares: MiddlewareStack | None = None,
    observers: list[LLMObserver] | None = None,
) -> "LLM":
    """Create an LLM client using `CODEFORGE_LLM_ADAPTER` (defaults to `litellm`)."""
    adapter = os.getenv("CODEFORGE_LLM_ADAPTER", "litellm")
    return create_llm(
        adapter,
        config=config,
        middlewares=middlewares,
        observers=observers,
    )


def _builtin_factory(adapter: str) -> AdapterFactory:
    """Resolve built-in adapter factories lazily to avoid hard imports."""
    if adapter == "litellm":
        from .clients.adapters.litellm import LiteLLMClient

        return lambda cfg, mws, obs: LiteLLMClient(
            config=cfg,
            middlewares=mws,
            observers=obs,
        )

    raise LLMConfigurationError(
        f"Unknown LLM adapter '{adapter}'. Available: {', '.join(available_llm_adapters())}"
    )

"""Provider adapter implementations."""

from .litellm import LiteLLMClient

__all__ = ["LiteLLMClient"]

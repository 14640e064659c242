from __future__ import annotations

"""
LiteLLM-backed adapter built on top of the shared Responses adapter base.
"""

import json
from typing import Any

from ..base.responses import ResponsesClientBase
from ...errors import LLMConfigurationError
from ...types import Message


class LiteLLMClient(ResponsesClientBase):
    """Concrete adapter using `litellm` Responses API wrappers."""

    @property
    def provider_id(self) -> str:
        return "litellm"

    async def _responses_create(self, payload: dict[str, Any]) -> Any:
        """Dispatch chat payload to `litellm.aresponses`."""
        try:
            from litellm import aresponses
        except Exception as e:  # pragma: no cover - environment dependent
            raise LLMConfigurationError(
                "litellm is not installed. Install the dependency to use LiteLLMClient."
            ) from e

        return await aresponses(**self._with_transport_defaults(payload))

    def _message_to_responses_input_items(self, message: Message) -> list[dict[str, Any]]:
        """
        Convert one normalized message into Responses input items.

        Assistant `tool_use` parts become `function_call` items and `tool_result`
        parts become `function_call_output` items so the provider can pair each
        result with the call that produced it.
        """
        role = message.role if message.role in ("user", "assistant", "system") else "user"

        if isinstance(message.content, str):
            return [{"type": "message", "role": role, "content": message.content}]

        items: list[dict[str, Any]] = []
        text_parts: list[dict[str, Any]] = []
        text_type = "output_text" if role == "assistant" else "input_text"

        def _flush_text() -> None:
            if text_parts:
                items.append({"type": "message", "role": role, "content": list(text_parts)})
                text_parts.clear()

        for part in message.content:
            p_type = part.get("type")
            if p_type == "text":
                text_parts.append({"type": text_type, "text": part["text"]})
                continue

            if p_type == "tool_use":
                _flush_text()
                items.append(
                    {
                        "type": "function_call",
                        "call_id": part["id"],
                        "name": part["name"],
                        "arguments": json.dumps(part["input"], ensure_ascii=True, default=str),
                    }
                )
                continue

            if p_type == "tool_result":
                _flush_text()
                items.append(
                    {
                        "type": "function_call_output",
                        "call_id": part["tool_use_id"],
                        "output": part.get("content", ""),
                    }
                )
                continue

        _flush_text()
        if not items:
            items.append({"type": "message", "role": role, "content": ""})
        return items

    def _with_transport_defaults(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Apply config-level transport defaults without overriding explicit extras."""
        out = dict(payload)

        idempotency_key = out.pop("idempotency_key", None)
        headers = out.get("headers")
        header_map: dict[str, str] = {}
        if isinstance(headers, dict):
            header_map.update(
                {k: v for k, v in headers.items() if isinstance(k, str) and isinstance(v, str)}
            )

        if isinstance(idempotency_key, str) and idempotency_key:
            header_map.setdefault("Idempotency-Key", idempotency_key)

        metadata = out.get("metadata")
        if isinstance(metadata, dict):
            request_id = metadata.get("codeforge_request_id")
            if isinstance(request_id, str) and request_id:
                header_map.setdefault("X-Request-Id", request_id)

        if header_map:
            out["headers"] = header_map

        if self.config.api_base_url:
            out.setdefault("api_base", self.config.api_base_url)
        if self.config.api_key:
            out.setdefault("api_key", self.config.api_key)
        return out

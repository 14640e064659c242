from __future__ import annotations

"""
Shared base adapter for providers exposing OpenAI-style Responses APIs.

This class centralizes:
  - request -> Responses payload mapping
  - response text and tool-call extraction

Concrete adapters only implement transport and provider-specific message
mapping.
"""

from abc import abstractmethod
from typing import Any

from ..shared.normalization import extract_usage, to_plain_dict
from ...llm import LLM
from ...types import (
    LLMCapabilities,
    LLMRequest,
    LLMResponse,
    Message,
    ToolCall,
    ToolDefinition,
)
from ...utils import safe_json_loads


class ResponsesClientBase(LLM):
    """Provider-agnostic base for Responses-compatible clients."""

    _CAPABILITIES = LLMCapabilities(
        chat=True,
        tool_calling=True,
        idempotency=True,
    )

    @property
    def capabilities(self) -> LLMCapabilities:
        return self._CAPABILITIES

    async def _chat_core(self, req: LLMRequest) -> LLMResponse:
        """Execute non-streaming call using provider transport hook."""
        payload = self._build_responses_payload(req)
        raw = await self._responses_create(payload)
        return self._normalize_responses_response(raw)

    def _build_responses_payload(self, req: LLMRequest) -> dict[str, Any]:
        """Map normalized `LLMRequest` into a Responses API payload."""
        payload: dict[str, Any] = {
            "model": req.model,
            "input": self._messages_to_responses_input(req.messages),
            "stream": False,
        }

        if req.max_tokens is not None:
            payload["max_output_tokens"] = req.max_tokens
        if req.temperature is not None:
            payload["temperature"] = req.temperature
        if req.timeout_s is not None:
            payload["timeout"] = req.timeout_s
        if req.tools is not None:
            payload["tools"] = [self._tool_to_responses_tool(t) for t in req.tools]
        if req.tool_choice is not None:
            payload["tool_choice"] = req.tool_choice
        if req.idempotency_key:
            payload["idempotency_key"] = req.idempotency_key

        metadata = dict(req.metadata)
        if req.request_id:
            metadata.setdefault("codeforge_request_id", req.request_id)
        if metadata:
            payload["metadata"] = metadata

        payload.update(req.extra)
        return payload

    def _messages_to_responses_input(self, messages: list[Message]) -> list[dict[str, Any]]:
        """Convert normalized messages to Responses API input items."""
        out: list[dict[str, Any]] = []
        for message in messages:
            out.extend(self._message_to_responses_input_items(message))
        return out

    def _tool_to_responses_tool(self, tool: ToolDefinition) -> dict[str, Any]:
        """Flatten a chat-style function tool into the Responses tool schema."""
        function = tool["function"]
        out: dict[str, Any] = {
            "type": "function",
            "name": function["name"],
            "parameters": function["parameters"],
        }
        description = function.get("description")
        if isinstance(description, str):
            out["description"] = description
        return out

    def _normalize_responses_response(self, raw: Any) -> LLMResponse:
        """Normalize raw Responses payload into `LLMResponse`."""
        raw_dict = to_plain_dict(raw)
        model = raw_dict.get("model") if isinstance(raw_dict.get("model"), str) else None
        output = raw_dict.get("output")
        output_items = output if isinstance(output, list) else []

        text_parts = self._extract_text_parts(output_items)
        finish_reason = raw_dict.get("status")

        return LLMResponse(
            text="".join(text_parts),
            text_parts=text_parts,
            request_id=raw_dict.get("id") if isinstance(raw_dict.get("id"), str) else None,
            tool_calls=self._extract_tool_calls(output_items),
            finish_reason=finish_reason if isinstance(finish_reason, str) else None,
            usage=extract_usage(raw_dict),
            raw=raw_dict,
            model=model,
        )

    def _extract_text_parts(self, output_items: list[Any]) -> list[str]:
        """Collect assistant text fragments from Responses output message items."""
        chunks: list[str] = []
        for item in output_items:
            row = to_plain_dict(item)
            if row.get("type") != "message":
                continue

            content = row.get("content")
            if isinstance(content, str):
                chunks.append(content)
                continue
            if not isinstance(content, list):
                continue

            for part in content:
                block = to_plain_dict(part)
                if block.get("type") in ("output_text", "text"):
                    text = block.get("text")
                    if isinstance(text, str):
                        chunks.append(text)
        return chunks

    def _extract_tool_calls(self, output_items: list[Any]) -> list[ToolCall]:
        """Extract normalized function tool calls from Responses output items."""
        out: list[ToolCall] = []
        for item in output_items:
            row = to_plain_dict(item)
            if row.get("type") != "function_call":
                continue

            name = row.get("name") if isinstance(row.get("name"), str) else ""
            call_id = row.get("call_id") if isinstance(row.get("call_id"), str) else None
            if call_id is None and isinstance(row.get("id"), str):
                call_id = row.get("id")

            arguments: dict[str, Any] = {}
            raw_args = row.get("arguments")
            if isinstance(raw_args, dict):
                arguments = raw_args
            elif isinstance(raw_args, str):
                arguments = safe_json_loads(raw_args) or {}

            out.append(ToolCall(id=call_id, tool_name=name, arguments=arguments))
        return out

    @abstractmethod
    async def _responses_create(self, payload: dict[str, Any]) -> Any:
        """Provider transport hook for Responses API calls."""

    @abstractmethod
    def _message_to_responses_input_items(self, message: Message) -> list[dict[str, Any]]:
        """Provider-specific mapping from one normalized message to input items."""

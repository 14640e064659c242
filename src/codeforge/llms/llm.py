from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.
"""

import asyncio
import inspect
import socket
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Awaitable, Callable, TypeVar, cast

from .config import LLMConfig
from .errors import (
    LLMCapabilityError,
    LLMError,
    LLMRetryableError,
    LLMTimeoutError,
)
from .middleware import LLMChatNext, MiddlewareStack
from .observability import LLMLifecycleEvent, LLMObserver
from .types import LLMCapabilities, LLMRequest, LLMResponse, Message, Usage

ReturnT = TypeVar("ReturnT")


class LLM(ABC):
    """
    Base class for provider-agnostic LLM interactions.

    Concrete adapters implement `_chat_core`; this class owns request
    validation, middleware, timeout/retry behavior and lifecycle observers.
    """

    def __init__(
        self,
        *,
        config: LLMConfig | None = None,
        middlewares: MiddlewareStack | None = None,
        observers: list[LLMObserver] | None = None,
    ) -> None:
        self.config = config or LLMConfig.from_env()
        self.middlewares = middlewares or MiddlewareStack()
        self._observers = list(observers or [])

    def add_observer(self, observer: LLMObserver) -> None:
        """Register `observer` unless an equal one is already registered."""
        if observer not in self._observers:
            self._observers.append(observer)

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Stable provider id (e.g. 'litellm')."""

    @property
    @abstractmethod
    def capabilities(self) -> LLMCapabilities:
        """Capability flags for the concrete adapter."""

    @classmethod
    def from_env(
        cls,
        *,
        middlewares: MiddlewareStack | None = None,
        observers: list[LLMObserver] | None = None,
    ) -> "LLM":
        """
        Build an LLM client from environment configuration.

        If called on the abstract base class, this delegates to the adapter
        factory (`CODEFORGE_LLM_ADAPTER`).
        """
        if cls is LLM:
            from .factory import create_llm_from_env

            return create_llm_from_env(middlewares=middlewares, observers=observers)

        return cls(
            config=LLMConfig.from_env(),
            middlewares=middlewares,
            observers=observers,
        )

    async def chat(self, req: LLMRequest) -> LLMResponse:
        """
        Execute a non-streaming chat completion.

        Applies request validation, capability checks, middleware, retry/timeout
        behavior and request-id correlation.
        """
        req = self._ensure_request_id(req)
        if not self.capabilities.chat:
            raise LLMCapabilityError(
                f"Provider '{self.provider_id}' does not support capability 'chat'"
            )
        self._validate_chat_request(req)

        if req.tools is not None and not self.capabilities.tool_calling:
            raise LLMCapabilityError(
                f"Provider '{self.provider_id}' does not support tool calling"
            )

        async def _base_handler(current_req: LLMRequest) -> LLMResponse:
            return await self._chat_core_with_safety(current_req)

        call_next: LLMChatNext = _base_handler
        for middleware in reversed(self.middlewares.chat):
            previous = call_next

            async def _wrapped(
                current_req: LLMRequest,
                *,
                _mw=middleware,
                _next=previous,
            ) -> LLMResponse:
                return await _mw(_next, current_req)

            call_next = _wrapped

        response = await call_next(req)
        return self._apply_response_context(req, response)

    async def _chat_core_with_safety(self, req: LLMRequest) -> LLMResponse:
        """Run provider chat call under timeout/retry."""
        timeout = req.timeout_s if req.timeout_s is not None else self.config.timeout_s
        retries = self.config.max_retries if self._can_retry_request(req) else 0

        async def _provider_call() -> LLMResponse:
            if timeout is None:
                return await self._chat_core(req)
            try:
                return await asyncio.wait_for(self._chat_core(req), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise LLMTimeoutError(
                    f"Provider '{self.provider_id}' exceeded timeout of {timeout} seconds"
                ) from e

        return await self._call_with_retries(
            _provider_call,
            request_id=req.request_id or self._new_request_id(),
            model=req.model,
            max_retries=retries,
            metadata=req.metadata,
        )

    def _validate_chat_request(self, req: LLMRequest) -> None:
        """Validate chat request structure and enforce global input limits."""
        if not req.model or not req.model.strip():
            raise LLMError("LLMRequest.model must be a non-empty string")

        if not req.messages:
            raise LLMError("LLMRequest.messages must contain at least one message")

        if req.max_tokens is not None and req.max_tokens <= 0:
            raise LLMError("LLMRequest.max_tokens must be greater than 0")

        if req.timeout_s is not None and req.timeout_s <= 0:
            raise LLMError("LLMRequest.timeout_s must be greater than 0")

        if req.temperature is not None and req.temperature < 0:
            raise LLMError("LLMRequest.temperature must be >= 0")

        total_chars = 0
        for idx, message in enumerate(req.messages):
            self._validate_message(message, idx)
            total_chars += self._message_char_count(message)

        if total_chars > self.config.max_input_chars:
            raise LLMError(
                f"LLMRequest exceeds max input chars ({self.config.max_input_chars})"
            )

        if req.tools is not None:
            for idx, tool in enumerate(req.tools):
                if tool.get("type") != "function":
                    raise LLMError(f"LLMRequest.tools[{idx}] must have type='function'")
                function = tool.get("function")
                if not isinstance(function, dict) or not function.get("name"):
                    raise LLMError(f"LLMRequest.tools[{idx}].function.name must be set")

    def _validate_message(self, message: Message, idx: int) -> None:
        """Validate one normalized message and its content parts."""
        if message.role not in ("user", "assistant", "system", "tool"):
            raise LLMError(f"LLMRequest.messages[{idx}] has unsupported role")

        content = message.content
        if isinstance(content, str):
            return

        if not isinstance(content, list):
            raise LLMError(
                f"LLMRequest.messages[{idx}].content must be a string or list of parts"
            )

        for p_idx, part in enumerate(content):
            p_type = part.get("type") if isinstance(part, dict) else None
            if p_type == "text" and isinstance(part.get("text"), str):
                continue
            if (
                p_type == "tool_use"
                and isinstance(part.get("id"), str)
                and isinstance(part.get("name"), str)
                and isinstance(part.get("input"), dict)
            ):
                continue
            if (
                p_type == "tool_result"
                and isinstance(part.get("tool_use_id"), str)
                and isinstance(part.get("content"), str)
            ):
                continue
            raise LLMError(
                f"LLMRequest.messages[{idx}].content[{p_idx}] is not a valid content part"
            )

    def _message_char_count(self, message: Message) -> int:
        if isinstance(message.content, str):
            return len(message.content)
        total = 0
        for part in message.content:
            for key in ("text", "content"):
                value = part.get(key)
                if isinstance(value, str):
                    total += len(value)
        return total

    def _ensure_request_id(self, req: LLMRequest) -> LLMRequest:
        """Ensure every request has a correlation id."""
        request_id = req.request_id
        if isinstance(request_id, str) and request_id.strip():
            return req
        return replace(req, request_id=self._new_request_id())

    def _new_request_id(self) -> str:
        """Generate a new opaque correlation id."""
        return uuid.uuid4().hex

    def _apply_response_context(self, req: LLMRequest, response: LLMResponse) -> LLMResponse:
        return replace(response, request_id=response.request_id or req.request_id)

    def _can_retry_request(self, req: LLMRequest) -> bool:
        """
        Model calls in the agent loop run inside durable steps, so a retried
        call never duplicates a committed side effect. Providers that support
        idempotency keys also get them propagated.
        """
        if req.idempotency_key and not self.capabilities.idempotency:
            return False
        return True

    async def _call_with_retries(
        self,
        fn: Callable[[], Awaitable[ReturnT]],
        *,
        request_id: str,
        model: str | None,
        max_retries: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ReturnT:
        """Execute a callable with retry-on-transient-error semantics."""
        retries = self.config.max_retries if max_retries is None else max_retries
        last: Exception | None = None

        await self._emit_lifecycle_event(
            event_type="request_start",
            request_id=request_id,
            model=model,
            attempt=1,
            metadata=metadata,
        )

        for attempt in range(retries + 1):
            started_at = time.monotonic()
            try:
                result = await fn()
                latency_ms = (time.monotonic() - started_at) * 1000.0
                await self._emit_lifecycle_event(
                    event_type="request_success",
                    request_id=request_id,
                    model=model,
                    attempt=attempt + 1,
                    latency_ms=latency_ms,
                    usage=result.usage if isinstance(result, LLMResponse) else None,
                    metadata=metadata,
                )
                return result
            except Exception as e:
                classified = e if isinstance(e, LLMError) else self._classify_error(e)
                last = classified
                latency_ms = (time.monotonic() - started_at) * 1000.0

                retryable = isinstance(classified, (LLMRetryableError, LLMTimeoutError))
                if retryable and attempt < retries:
                    await self._emit_lifecycle_event(
                        event_type="retry",
                        request_id=request_id,
                        model=model,
                        attempt=attempt + 1,
                        latency_ms=latency_ms,
                        error=classified,
                        metadata=metadata,
                    )
                    from .utils import backoff_delay

                    await asyncio.sleep(
                        backoff_delay(
                            attempt,
                            self.config.backoff_base_s,
                            self.config.backoff_jitter_s,
                        )
                    )
                    continue

                await self._emit_lifecycle_event(
                    event_type="request_error",
                    request_id=request_id,
                    model=model,
                    attempt=attempt + 1,
                    latency_ms=latency_ms,
                    error=classified,
                    metadata=metadata,
                )
                if classified is e:
                    raise
                raise classified from e

        raise LLMError(f"LLM call failed after {retries} retries") from last

    def _classify_error(self, e: Exception) -> LLMError:
        """Map arbitrary exceptions into retryable vs non-retryable LLM errors."""
        msg = str(e) or repr(e)
        m = msg.lower()
        status = None

        for attr in ("status_code", "status", "code"):
            val = getattr(e, attr, None)
            if isinstance(val, int):
                status = val
                break
            if isinstance(val, str) and val.isdigit():
                status = int(val)
                break

        if status is not None:
            if status == 429 or status == 408 or 500 <= status < 600:
                return LLMRetryableError(msg)
            if 400 <= status < 500:
                return LLMError(msg)

        transient_types = (
            asyncio.TimeoutError,
            TimeoutError,
            socket.timeout,
            ConnectionError,
        )
        if isinstance(e, transient_types):
            return LLMRetryableError(msg)

        retry_phrases = (
            "rate limit",
            "rate_limit",
            "overloaded",
            "temporarily unavailable",
            "service unavailable",
            "try again",
            "timed out",
            "timeout",
            "connection reset",
            "connection refused",
            "connection error",
            "502",
            "503",
            "504",
            "429",
        )
        if any(phrase in m for phrase in retry_phrases):
            return LLMRetryableError(msg)

        return LLMError(msg)

    async def _emit_lifecycle_event(
        self,
        *,
        event_type: str,
        request_id: str,
        model: str | None,
        attempt: int | None = None,
        latency_ms: float | None = None,
        usage: Usage | None = None,
        error: Exception | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Emit one lifecycle event to observers; observer failures are dropped."""
        if not self._observers:
            return

        event = LLMLifecycleEvent(
            event_type=cast(Any, event_type),
            request_id=request_id,
            provider_id=self.provider_id,
            model=model,
            attempt=attempt,
            latency_ms=latency_ms,
            usage=usage,
            error_class=type(error).__name__ if error is not None else None,
            error_message=str(error) if error is not None else None,
            metadata=dict(metadata or {}),
        )

        for observer in self._observers:
            try:
                result = observer(event)
                if inspect.isawaitable(result):
                    await cast(Awaitable[Any], result)
            except Exception:
                continue

    @abstractmethod
    async def _chat_core(self, req: LLMRequest) -> LLMResponse:
        """Provider-specific chat implementation."""

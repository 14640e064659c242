from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

LLM lifecycle events and the observer that forwards them to a telemetry sink.

The base `LLM` emits `request_start`, `retry`, `request_success` and
`request_error` for every chat call. Events carry the request's metadata, so
an observer can attribute a retry or failure to the workflow run that made
the call.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Literal, Protocol

from ..core.telemetry import TelemetrySink, emit
from .types import Usage


LLMLifecycleEventType = Literal[
    "request_start",
    "retry",
    "request_success",
    "request_error",
]


@dataclass(frozen=True, slots=True)
class LLMLifecycleEvent:
    event_type: LLMLifecycleEventType
    request_id: str
    provider_id: str
    model: str | None = None
    attempt: int | None = None
    latency_ms: float | None = None
    usage: Usage | None = None
    error_class: str | None = None
    error_message: str | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class LLMObserver(Protocol):
    """Callback invoked for each lifecycle event; its failures are dropped."""

    def __call__(self, event: LLMLifecycleEvent) -> None | Awaitable[None]:
        ...


LLMObserverCallback = Callable[[LLMLifecycleEvent], None | Awaitable[None]]


class TelemetryLLMObserver:
    """
    Reports LLM retries and failures as `llm.retry` / `llm.error` events and
    counts successful requests in `codeforge.llm_requests`.

    Two observers are equal when they write to the same sink, so registering
    one per workflow on a shared client does not double-report.
    """

    def __init__(self, telemetry: TelemetrySink) -> None:
        self.telemetry = telemetry

    def __eq__(self, other: object) -> bool:
        return isinstance(other, TelemetryLLMObserver) and other.telemetry is self.telemetry

    def __hash__(self) -> int:
        return id(self.telemetry)

    def __call__(self, event: LLMLifecycleEvent) -> None:
        if event.event_type == "request_success":
            self.telemetry.increment_counter(
                "codeforge.llm_requests",
                attributes={"provider": event.provider_id, "model": event.model},
            )
            return
        if event.event_type == "request_start":
            return

        run_id = event.metadata.get("run_id")
        emit(
            self.telemetry,
            "llm.retry" if event.event_type == "retry" else "llm.error",
            run_id=run_id if isinstance(run_id, str) else None,
            request_id=event.request_id,
            provider=event.provider_id,
            model=event.model,
            attempt=event.attempt,
            error_class=event.error_class,
            error=event.error_message,
        )

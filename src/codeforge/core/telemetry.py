"""
Telemetry sinks for workflow observability.

Workflow components report through a `TelemetrySink` rather than printing.
The default sink is a no-op; `InMemoryTelemetrySink` captures everything for
tests and `OpenTelemetrySink` forwards to the global OTel providers when
`opentelemetry-api` and `opentelemetry-sdk` are installed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..llms.types import JSONValue


@dataclass(frozen=True, slots=True)
class TelemetryEvent:
    """
    Point-in-time telemetry event.

    Attributes:
        name: Event name (e.g. `step.replayed`).
        timestamp_ms: Epoch milliseconds at emission time.
        attributes: JSON-safe event attributes.
    """

    name: str
    timestamp_ms: int
    attributes: dict[str, JSONValue] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TelemetrySpan:
    name: str
    started_at_ms: int
    attributes: dict[str, JSONValue] = field(default_factory=dict)
    native_span: Any = None


class TelemetrySink(Protocol):
    """Protocol implemented by telemetry backends."""

    def record_event(self, event: TelemetryEvent) -> None: ...

    def start_span(
        self, name: str, *, attributes: dict[str, JSONValue] | None = None
    ) -> TelemetrySpan | None: ...

    def end_span(
        self,
        span: TelemetrySpan | None,
        *,
        status: str,
        error: str | None = None,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None: ...

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None: ...


@dataclass(slots=True)
class NullTelemetrySink:
    """No-op telemetry sink used as safe default."""

    def record_event(self, event: TelemetryEvent) -> None:
        return None

    def start_span(
        self, name: str, *, attributes: dict[str, JSONValue] | None = None
    ) -> TelemetrySpan | None:
        return None

    def end_span(
        self,
        span: TelemetrySpan | None,
        *,
        status: str,
        error: str | None = None,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        return None

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        return None


@dataclass(slots=True)
class InMemoryTelemetrySink:
    """Test/debug telemetry sink that stores emitted measurements."""

    _events: list[TelemetryEvent] = field(default_factory=list)
    _spans_closed: list[dict[str, Any]] = field(default_factory=list)
    _counters: list[dict[str, Any]] = field(default_factory=list)

    def record_event(self, event: TelemetryEvent) -> None:
        self._events.append(event)

    def start_span(
        self, name: str, *, attributes: dict[str, JSONValue] | None = None
    ) -> TelemetrySpan:
        return TelemetrySpan(name=name, started_at_ms=now_ms(), attributes=dict(attributes or {}))

    def end_span(
        self,
        span: TelemetrySpan | None,
        *,
        status: str,
        error: str | None = None,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        if span is None:
            return None
        self._spans_closed.append(
            {
                "name": span.name,
                "started_at_ms": span.started_at_ms,
                "ended_at_ms": now_ms(),
                "status": status,
                "error": error,
                "attributes": {**span.attributes, **dict(attributes or {})},
            }
        )
        return None

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        self._counters.append(
            {
                "name": name,
                "value": int(value),
                "attributes": dict(attributes or {}),
                "timestamp_ms": now_ms(),
            }
        )

    def events(self, name: str | None = None) -> list[TelemetryEvent]:
        """Return captured events, optionally filtered by event name."""
        if name is None:
            return list(self._events)
        return [event for event in self._events if event.name == name]

    def spans(self) -> list[dict[str, Any]]:
        return list(self._spans_closed)

    def counters(self) -> list[dict[str, Any]]:
        return list(self._counters)


@dataclass(slots=True)
class OpenTelemetrySink:
    """
    OpenTelemetry sink using the global tracer/meter providers.

    This class performs lazy imports so codeforge can run without OTel installed.
    """

    tracer_name: str = "codeforge.workflow"
    meter_name: str = "codeforge.workflow"

    _tracer: Any = field(default=None, init=False, repr=False)
    _meter: Any = field(default=None, init=False, repr=False)
    _counters: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def _ensure_clients(self) -> None:
        if self._tracer is not None and self._meter is not None:
            return
        try:
            from opentelemetry import metrics, trace
        except Exception as e:
            raise RuntimeError(
                "OpenTelemetrySink requires 'opentelemetry-api'/'opentelemetry-sdk'"
            ) from e

        self._tracer = trace.get_tracer(self.tracer_name)
        self._meter = metrics.get_meter(self.meter_name)

    def _attr(self, value: dict[str, JSONValue] | None) -> dict[str, Any]:
        return {str(key): _to_attr(item) for key, item in (value or {}).items()}

    def record_event(self, event: TelemetryEvent) -> None:
        """Record event as an `codeforge.events` counter data point."""
        self.increment_counter(
            "codeforge.events",
            value=1,
            attributes={"event_name": event.name, **event.attributes},
        )

    def start_span(
        self, name: str, *, attributes: dict[str, JSONValue] | None = None
    ) -> TelemetrySpan | None:
        try:
            self._ensure_clients()
            span = self._tracer.start_span(name=name)
            attr = self._attr(attributes)
            if attr:
                span.set_attributes(attr)
            return TelemetrySpan(
                name=name,
                started_at_ms=now_ms(),
                attributes=dict(attributes or {}),
                native_span=span,
            )
        except Exception:
            return None

    def end_span(
        self,
        span: TelemetrySpan | None,
        *,
        status: str,
        error: str | None = None,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        if span is None or span.native_span is None:
            return None
        try:
            from opentelemetry.trace import Status, StatusCode

            native = span.native_span
            attr = self._attr({**span.attributes, **dict(attributes or {})})
            if attr:
                native.set_attributes(attr)
            if error:
                native.record_exception(Exception(error))
            if status == "ok":
                native.set_status(Status(StatusCode.OK))
            else:
                native.set_status(Status(StatusCode.ERROR, error or status))
            native.end()
        except Exception:
            return None

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        try:
            self._ensure_clients()
            counter = self._counters.get(name)
            if counter is None:
                counter = self._meter.create_counter(name)
                self._counters[name] = counter
            counter.add(int(value), attributes=self._attr(attributes))
        except Exception:
            return None


def emit(sink: TelemetrySink, name: str, **attributes: JSONValue) -> None:
    """Record one named event on `sink` stamped with the current time."""
    sink.record_event(TelemetryEvent(name=name, timestamp_ms=now_ms(), attributes=attributes))


def now_ms() -> int:
    """Return current Unix epoch time in milliseconds."""
    return int(time.time() * 1000)


def _to_attr(value: JSONValue) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, list):
        return tuple(_to_attr(item) for item in value)
    return str(value)

from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module implements the durable step executor.

A step is a named side-effecting unit of work whose JSON result is
checkpointed in a `StateStore` under the run's thread. When a run is resumed
with the same `run_id`, steps that already completed return their recorded
value without executing again.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..core.telemetry import NullTelemetrySink, TelemetrySink, emit
from ..llms.utils import backoff_delay
from ..memory.models import JsonValue, StoreEvent, json_dumps, json_loads, new_id, now_ms
from ..memory.store.base import StateStore
from .errors import StepFailedError, StepSerializationError

StepFn = Callable[[], Union[Awaitable[Any], Any]]
RetryPredicate = Callable[[Exception], bool]


@dataclass(frozen=True, slots=True)
class StepRetryPolicy:
    """
    Retry settings applied to every step body.

    Attributes:
        max_attempts: Total executions allowed before the step fails.
        backoff_base_s: Base delay of the exponential backoff.
        backoff_jitter_s: Upper bound of the random jitter added to each delay.
    """

    max_attempts: int = 3
    backoff_base_s: float = 0.5
    backoff_jitter_s: float = 0.25


def step_state_key(step_id: str) -> str:
    """Build the state key holding the checkpoint of one step."""
    return f"step:{step_id}"


class DurableStepExecutor:
    """
    Runs named steps at most once per run and replays their results.

    Step ids derive only from call order: the first `run("x", ...)` is step
    `x`, the second is `x:2`, and so on. A resumed run that makes the same
    calls in the same order therefore maps each call to the same checkpoint.
    """

    def __init__(
        self,
        store: StateStore,
        run_id: str,
        *,
        policy: StepRetryPolicy | None = None,
        telemetry: TelemetrySink | None = None,
    ) -> None:
        self.store = store
        self.run_id = run_id
        self.policy = policy or StepRetryPolicy()
        self.telemetry = telemetry or NullTelemetrySink()
        self._name_counts: Dict[str, int] = {}
        self.replayed_steps: List[str] = []
        self.executed_steps: List[str] = []

    def _next_step_id(self, name: str) -> str:
        count = self._name_counts.get(name, 0) + 1
        self._name_counts[name] = count
        return name if count == 1 else f"{name}:{count}"

    async def run(
        self,
        name: str,
        fn: StepFn,
        *,
        retry_if: Optional[RetryPredicate] = None,
    ) -> JsonValue:
        """
        Execute `fn` as the durable step `name`, or replay its checkpoint.

        Args:
            name: Base step name; repeated names are numbered by call order.
            fn: Zero-argument callable (sync or async) returning a
                JSON-compatible value.
            retry_if: Decides whether an exception is worth another attempt.
                When it returns False the step fails immediately.

        Returns:
            The step's JSON value. Executed and replayed steps both return a
            value decoded from its serialized form, so callers see identical
            shapes either way.

        Raises:
            StepSerializationError: `fn` returned a value that is not JSON.
            StepFailedError: `fn` raised on every attempt, or raised an
                exception `retry_if` rejects.
        """
        step_id = self._next_step_id(name)
        key = step_state_key(step_id)

        checkpoint = await self.store.get_state(self.run_id, key)
        if isinstance(checkpoint, dict) and "value" in checkpoint:
            self.replayed_steps.append(step_id)
            emit(self.telemetry, "step.replayed", run_id=self.run_id, step_id=step_id)
            return json_loads(json_dumps(checkpoint["value"]))

        value = await self._execute_with_retries(step_id, fn, retry_if)
        try:
            encoded = json_dumps(value)
        except (TypeError, ValueError) as e:
            raise StepSerializationError(
                f"Step '{step_id}' returned a value that is not JSON-serializable: {e}"
            ) from e
        decoded = json_loads(encoded)

        completed_at = now_ms()
        await self.store.put_state(
            self.run_id,
            key,
            {"value": decoded, "completed_at": completed_at},
        )
        await self.store.append_event(
            StoreEvent(
                id=new_id("step"),
                thread_id=self.run_id,
                type="step",
                timestamp=completed_at,
                payload={"step_id": step_id, "name": name},
            )
        )
        self.executed_steps.append(step_id)
        return decoded

    async def _execute_with_retries(
        self,
        step_id: str,
        fn: StepFn,
        retry_if: Optional[RetryPredicate],
    ) -> Any:
        max_attempts = max(1, self.policy.max_attempts)
        attempts = 0
        last_error: Optional[Exception] = None

        for attempt in range(max_attempts):
            attempts = attempt + 1
            try:
                out = fn()
                if inspect.isawaitable(out):
                    out = await out
                return out
            except Exception as e:
                last_error = e
                if attempts >= max_attempts:
                    break
                if retry_if is not None and not retry_if(e):
                    break
                emit(
                    self.telemetry,
                    "step.retry",
                    run_id=self.run_id,
                    step_id=step_id,
                    attempt=attempt + 1,
                    error=str(e),
                )
                await asyncio.sleep(
                    backoff_delay(
                        attempt,
                        self.policy.backoff_base_s,
                        self.policy.backoff_jitter_s,
                    )
                )

        raise StepFailedError(step_id, attempts, last_error) from last_error

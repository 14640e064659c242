from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module implements the agent loop and its router.

Each iteration makes one model call, runs the completion hook on the
response, then dispatches the requested tool calls one at a time in the order
the model issued them. The router stops the loop as soon as a summary is
recorded, and `max_iterations` bounds the number of model calls.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..core.telemetry import NullTelemetrySink, TelemetrySink, emit
from ..llms.llm import LLM
from ..llms.types import LLMRequest, Message, MessagePart
from ..llms.utils import is_retryable_error
from ..tools.base import ToolContext
from ..tools.registry import ToolRegistry
from .completion import CompletionPredicate, last_assistant_text, marker_predicate
from .config import WorkflowConfig
from .context import ConversationTurn
from .errors import StepFailedError
from .output import OutputItem, output_items_from_response
from .prompts import PROMPT
from .state import AgentState
from .steps import DurableStepExecutor


class LoopStatus(str, Enum):
    RUNNING = "running"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class LoopResult:
    """
    Final loop state.

    `stopped_by` is `"completion"` when a summary was recorded,
    `"max_iterations"` when the cap ended the loop first and `"model_error"`
    when the model rejected a turn with a non-retryable error.
    """

    status: LoopStatus
    iterations: int
    messages: List[Message] = field(default_factory=list)
    stopped_by: str = "completion"


@dataclass(frozen=True, slots=True)
class _PlannedCall:
    id: str
    name: str
    arguments: Dict[str, Any]


@dataclass(frozen=True, slots=True)
class _ModelTurn:
    text: str
    items: List[OutputItem]
    tool_calls: List[_PlannedCall]

    def to_json(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "items": list(self.items),
            "tool_calls": [
                {"id": c.id, "name": c.name, "arguments": c.arguments} for c in self.tool_calls
            ],
        }

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "_ModelTurn":
        return _ModelTurn(
            text=str(data.get("text") or ""),
            items=list(data.get("items") or []),
            tool_calls=[
                _PlannedCall(
                    id=str(row["id"]),
                    name=str(row["name"]),
                    arguments=dict(row.get("arguments") or {}),
                )
                for row in data.get("tool_calls") or []
            ],
        )


class AgentLoop:
    """Drives the coding agent until it declares completion or runs out of turns."""

    def __init__(
        self,
        *,
        llm: LLM,
        registry: ToolRegistry,
        steps: DurableStepExecutor,
        config: WorkflowConfig,
        predicate: Optional[CompletionPredicate] = None,
        telemetry: Optional[TelemetrySink] = None,
        system_prompt: str = PROMPT,
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.steps = steps
        self.config = config
        self.predicate = predicate or marker_predicate(config.completion_marker)
        self.telemetry = telemetry or NullTelemetrySink()
        self.system_prompt = system_prompt

    async def run(
        self,
        task_value: str,
        state: AgentState,
        context: Sequence[ConversationTurn] = (),
    ) -> LoopResult:
        history: List[Message] = [Message(role="system", content=self.system_prompt)]
        history.extend(turn.to_message() for turn in context)
        history.append(Message(role="user", content=task_value))

        iterations = 0
        while True:
            # Router: a recorded summary ends the loop without another model call.
            if state.done:
                return LoopResult(
                    status=LoopStatus.DONE,
                    iterations=iterations,
                    messages=history,
                    stopped_by="completion",
                )
            if iterations >= self.config.max_iterations:
                emit(
                    self.telemetry,
                    "agent.max_iterations",
                    run_id=self.steps.run_id,
                    iterations=iterations,
                )
                return LoopResult(
                    status=LoopStatus.DONE,
                    iterations=iterations,
                    messages=history,
                    stopped_by="max_iterations",
                )

            try:
                turn = await self._model_turn(history, iterations)
            except StepFailedError as e:
                if e.cause is None or is_retryable_error(e.cause):
                    raise
                emit(
                    self.telemetry,
                    "agent.model_error",
                    run_id=self.steps.run_id,
                    iterations=iterations,
                    error=str(e.cause),
                )
                return LoopResult(
                    status=LoopStatus.DONE,
                    iterations=iterations,
                    messages=history,
                    stopped_by="model_error",
                )
            iterations += 1
            self._on_response(turn, state)

            history.append(self._assistant_message(turn))
            if turn.tool_calls:
                history.append(await self._dispatch(turn.tool_calls, state))

    async def _model_turn(self, history: List[Message], iteration: int) -> _ModelTurn:
        tools = self.registry.to_litellm_tools()

        async def _invoke() -> Dict[str, Any]:
            resp = await self.llm.chat(
                LLMRequest(
                    model=self.config.agent_model,
                    idempotency_key=f"{self.steps.run_id}:model-turn:{iteration}",
                    messages=list(history),
                    tools=tools or None,
                    temperature=self.config.agent_temperature,
                    metadata={"run_id": self.steps.run_id, "iteration": str(iteration)},
                )
            )
            calls = [
                _PlannedCall(
                    id=tc.id or f"call_{iteration}_{index}",
                    name=tc.tool_name,
                    arguments=dict(tc.arguments),
                )
                for index, tc in enumerate(resp.tool_calls)
            ]
            return _ModelTurn(
                text=resp.text,
                items=output_items_from_response(resp),
                tool_calls=calls,
            ).to_json()

        raw = await self.steps.run("model-turn", _invoke, retry_if=is_retryable_error)
        self.telemetry.increment_counter(
            "codeforge.model_turns",
            attributes={"model": self.config.agent_model},
        )
        return _ModelTurn.from_json(raw)  # type: ignore[arg-type]

    def _on_response(self, turn: _ModelTurn, state: AgentState) -> None:
        text = last_assistant_text(turn.items)
        if text and self.predicate(text):
            if state.set_summary(text):
                emit(self.telemetry, "agent.completed", run_id=self.steps.run_id)

    def _assistant_message(self, turn: _ModelTurn) -> Message:
        parts: List[MessagePart] = []
        if turn.text:
            parts.append({"type": "text", "text": turn.text})
        for call in turn.tool_calls:
            parts.append(
                {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments}
            )
        return Message(role="assistant", content=parts if parts else "")

    async def _dispatch(self, calls: List[_PlannedCall], state: AgentState) -> Message:
        ctx = ToolContext(run_id=self.steps.run_id, state=state, steps=self.steps)
        parts: List[MessagePart] = []
        for call in calls:
            result = await self.registry.call(
                call.name,
                call.arguments,
                ctx=ctx,
                tool_call_id=call.id,
            )
            part: MessagePart = {
                "type": "tool_result",
                "tool_use_id": call.id,
                "content": result.to_model_text(),
            }
            if not result.success:
                part["is_error"] = True
            parts.append(part)
        return Message(role="tool", content=parts)

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from codeforge.core.telemetry import InMemoryTelemetrySink
from codeforge.llms import LLM, LLMCapabilities, LLMConfig, LLMRequest, LLMResponse, ToolCall
from codeforge.llms.errors import LLMRetryableError
from codeforge.memory.store import InMemoryStateStore
from codeforge.sandbox import InMemorySandboxProvider
from codeforge.workflow import (
    AgentLoop,
    AgentState,
    ConversationTurn,
    DurableStepExecutor,
    LoopStatus,
    StepFailedError,
    StepRetryPolicy,
    WorkflowConfig,
    build_registry,
    ensure_sandbox,
)

NO_WAIT = StepRetryPolicy(max_attempts=1, backoff_base_s=0.0, backoff_jitter_s=0.0)
CONFIG = WorkflowConfig()


def run_async(coro):
    return asyncio.run(coro)


def say(text: str) -> LLMResponse:
    return LLMResponse(text=text, text_parts=[text])


def call_tool(name: str, arguments: dict, call_id: str | None = None) -> LLMResponse:
    return LLMResponse(text="", tool_calls=[ToolCall(id=call_id, tool_name=name, arguments=arguments)])


class ScriptedLLM(LLM):
    """Returns scripted responses in order and repeats the last one; exceptions are raised."""

    def __init__(self, script: list[LLMResponse | Exception]) -> None:
        super().__init__(
            config=LLMConfig(
                default_model="test",
                timeout_s=5.0,
                max_retries=0,
                backoff_base_s=0.0,
                backoff_jitter_s=0.0,
                max_input_chars=1_000_000,
            )
        )
        self.script = script
        self.requests: list[LLMRequest] = []

    @property
    def provider_id(self) -> str:
        return "scripted"

    @property
    def capabilities(self) -> LLMCapabilities:
        return LLMCapabilities(chat=True, tool_calling=True, idempotency=True)

    async def _chat_core(self, req: LLMRequest) -> LLMResponse:
        self.requests.append(req)
        item = self.script[min(len(self.requests) - 1, len(self.script) - 1)]
        if isinstance(item, Exception):
            raise item
        return item


class ExplodingLLM(ScriptedLLM):
    def __init__(self) -> None:
        super().__init__([say("unused")])

    async def _chat_core(self, req: LLMRequest) -> LLMResponse:
        raise AssertionError("model must not be called")


async def _run_loop(
    llm: LLM,
    store: InMemoryStateStore,
    *,
    state: AgentState | None = None,
    context=(),
    config: WorkflowConfig = CONFIG,
    predicate=None,
    telemetry=None,
    provider: InMemorySandboxProvider | None = None,
):
    provider = provider or InMemorySandboxProvider()
    telemetry = telemetry or InMemoryTelemetrySink()
    steps = DurableStepExecutor(store, "run-1", policy=NO_WAIT, telemetry=telemetry)
    sandbox_id = await ensure_sandbox(steps, provider, config)
    registry = build_registry(provider, sandbox_id, config, telemetry=telemetry, run_id="run-1")
    loop = AgentLoop(
        llm=llm,
        registry=registry,
        steps=steps,
        config=config,
        predicate=predicate,
        telemetry=telemetry,
    )
    state = state or AgentState()
    result = await loop.run("add a README", state, context)
    return result, state, steps


def test_loop_stops_at_completion_marker():
    llm = ScriptedLLM(
        [
            call_tool("write-files", {"files": [{"path": "README.md", "content": "# Demo"}]}, "call_a"),
            say("All done <task_summary>Added README</task_summary>"),
            say("should never be requested"),
        ]
    )

    async def scenario():
        async with InMemoryStateStore() as store:
            return await _run_loop(llm, store)

    result, state, steps = run_async(scenario())
    assert result.status == LoopStatus.DONE
    assert result.stopped_by == "completion"
    assert result.iterations == 2
    assert len(llm.requests) == 2
    assert state.summary == "All done <task_summary>Added README</task_summary>"
    assert state.files == {"README.md": "# Demo"}
    assert steps.executed_steps == ["get-sandbox-id", "model-turn", "write-files", "model-turn:2"]


def test_loop_is_capped_at_max_iterations():
    llm = ScriptedLLM([call_tool("run-command", {"command": "ls"})])
    telemetry = InMemoryTelemetrySink()

    async def scenario():
        async with InMemoryStateStore() as store:
            return await _run_loop(llm, store, telemetry=telemetry)

    result, state, _ = run_async(scenario())
    assert result.iterations == 15
    assert result.stopped_by == "max_iterations"
    assert len(llm.requests) == 15
    assert state.summary == ""
    assert len(telemetry.events("agent.max_iterations")) == 1
    model_turns = [c for c in telemetry.counters() if c["name"] == "codeforge.model_turns"]
    assert len(model_turns) == 15


def test_cap_is_configurable():
    llm = ScriptedLLM([say("thinking")])

    async def scenario():
        async with InMemoryStateStore() as store:
            return await _run_loop(llm, store, config=replace(CONFIG, max_iterations=3))

    result, _, _ = run_async(scenario())
    assert result.iterations == 3
    assert len(llm.requests) == 3


def test_router_makes_no_model_call_once_summary_is_set():
    state = AgentState(summary="<task_summary>earlier</task_summary>")

    async def scenario():
        async with InMemoryStateStore() as store:
            return await _run_loop(ExplodingLLM(), store, state=state)

    result, state, _ = run_async(scenario())
    assert result.iterations == 0
    assert result.status == LoopStatus.DONE
    assert result.stopped_by == "completion"
    assert state.summary == "<task_summary>earlier</task_summary>"


def test_tool_calls_in_completing_turn_still_run():
    response = LLMResponse(
        text="<task_summary>Wrote it</task_summary>",
        text_parts=["<task_summary>Wrote it</task_summary>"],
        tool_calls=[
            ToolCall(
                id="call_1",
                tool_name="write-files",
                arguments={"files": [{"path": "a.txt", "content": "1"}]},
            )
        ],
    )
    llm = ScriptedLLM([response])

    async def scenario():
        async with InMemoryStateStore() as store:
            return await _run_loop(llm, store)

    result, state, _ = run_async(scenario())
    assert result.iterations == 1
    assert state.files == {"a.txt": "1"}
    assert state.summary == "<task_summary>Wrote it</task_summary>"


def test_unknown_tools_and_failures_are_fed_back_to_the_model():
    llm = ScriptedLLM(
        [
            call_tool("deploy", {"target": "prod"}, "call_x"),
            say("<task_summary>gave up</task_summary>"),
        ]
    )

    async def scenario():
        async with InMemoryStateStore() as store:
            return await _run_loop(llm, store)

    result, _, _ = run_async(scenario())
    second = llm.requests[1]
    tool_message = second.messages[-1]
    assert tool_message.role == "tool"
    part = tool_message.content[0]
    assert part["tool_use_id"] == "call_x"
    assert part["is_error"] is True
    assert part["content"].startswith("Unknown tool: deploy.")
    assistant = second.messages[-2]
    assert assistant.role == "assistant"
    assert assistant.content == [
        {"type": "tool_use", "id": "call_x", "name": "deploy", "input": {"target": "prod"}}
    ]
    assert result.iterations == 2


def test_history_starts_with_prompt_context_then_task():
    llm = ScriptedLLM([say("<task_summary>ok</task_summary>")])
    context = [
        ConversationTurn(role="user", content="build a landing page"),
        ConversationTurn(role="assistant", content="Here is your landing page"),
    ]

    async def scenario():
        async with InMemoryStateStore() as store:
            return await _run_loop(llm, store, context=context)

    run_async(scenario())
    req = llm.requests[0]
    assert [m.role for m in req.messages] == ["system", "user", "assistant", "user"]
    assert req.messages[1].content == "build a landing page"
    assert req.messages[3].content == "add a README"
    assert req.model == "gpt-4.1"
    assert req.temperature == 0.1
    assert {t["function"]["name"] for t in req.tools} == {"run-command", "write-files", "read-files"}
    assert req.idempotency_key == "run-1:model-turn:0"


def test_missing_tool_call_ids_are_deterministic():
    llm = ScriptedLLM(
        [
            LLMResponse(
                text="",
                tool_calls=[
                    ToolCall(id=None, tool_name="run-command", arguments={"command": "ls"}),
                    ToolCall(id=None, tool_name="run-command", arguments={"command": "pwd"}),
                ],
            ),
            say("<task_summary>ok</task_summary>"),
        ]
    )

    async def scenario():
        async with InMemoryStateStore() as store:
            return await _run_loop(llm, store)

    run_async(scenario())
    parts = llm.requests[1].messages[-1].content
    assert [p["tool_use_id"] for p in parts] == ["call_0_0", "call_0_1"]


def test_custom_completion_predicate():
    llm = ScriptedLLM([say("still going"), say("FINISHED: added README")])

    async def scenario():
        async with InMemoryStateStore() as store:
            return await _run_loop(llm, store, predicate=lambda text: text.startswith("FINISHED"))

    result, state, _ = run_async(scenario())
    assert result.iterations == 2
    assert state.summary == "FINISHED: added README"


def test_resumed_loop_replays_model_turns_and_tools():
    script = [
        call_tool("write-files", {"files": [{"path": "README.md", "content": "# Demo"}]}, "call_a"),
        say("<task_summary>Added README</task_summary>"),
    ]
    provider = InMemorySandboxProvider()

    async def scenario():
        async with InMemoryStateStore() as store:
            await _run_loop(ScriptedLLM(script), store, provider=provider)
            return await _run_loop(ExplodingLLM(), store, provider=provider)

    result, state, steps = run_async(scenario())
    assert result.iterations == 2
    assert state.files == {"README.md": "# Demo"}
    assert state.summary == "<task_summary>Added README</task_summary>"
    assert steps.executed_steps == []
    assert provider.create_calls == 1


def test_rejected_model_call_ends_the_loop():
    class BadRequest(Exception):
        status_code = 400

    llm = ScriptedLLM(
        [
            call_tool("write-files", {"files": [{"path": "a.txt", "content": "1"}]}, "call_a"),
            BadRequest("context_length_exceeded"),
        ]
    )
    telemetry = InMemoryTelemetrySink()

    async def scenario():
        async with InMemoryStateStore() as store:
            result, state, steps = await _run_loop(llm, store, telemetry=telemetry)
            checkpoint = await store.get_state("run-1", "step:model-turn:2")
            return result, state, steps, checkpoint

    result, state, steps, checkpoint = run_async(scenario())
    assert result.status == LoopStatus.DONE
    assert result.stopped_by == "model_error"
    assert result.iterations == 1
    assert len(llm.requests) == 2
    assert state.files == {"a.txt": "1"}
    assert state.summary == ""
    assert checkpoint is None
    assert steps.executed_steps == ["get-sandbox-id", "model-turn", "write-files"]
    errors = telemetry.events("agent.model_error")
    assert len(errors) == 1
    assert errors[0].attributes["iterations"] == 1
    assert "context_length_exceeded" in errors[0].attributes["error"]


def test_transient_model_failure_still_fails_the_step():
    llm = ScriptedLLM([ConnectionError("connection reset")])

    async def scenario():
        async with InMemoryStateStore() as store:
            await _run_loop(llm, store)

    with pytest.raises(StepFailedError) as info:
        run_async(scenario())
    assert info.value.step_id == "model-turn"
    assert isinstance(info.value.cause, LLMRetryableError)

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from codeforge.core.telemetry import InMemoryTelemetrySink
from codeforge.llms import LLM, LLMCapabilities, LLMConfig, LLMRequest, LLMResponse, ToolCall
from codeforge.memory.store import InMemoryStateStore, SQLiteStateStore
from codeforge.messages import MessageRole, MessageType, StoreMessageRepository
from codeforge.sandbox import InMemorySandboxProvider
from codeforge.workflow import (
    ERROR_MESSAGE,
    CodeAgentEvent,
    CodeAgentWorkflow,
    InvalidEventError,
    StepFailedError,
    WorkflowConfig,
    load_context,
    submit_user_message,
)
from codeforge.workflow.steps import DurableStepExecutor

FAST = WorkflowConfig(step_backoff_base_s=0.0, step_backoff_jitter_s=0.0)


def run_async(coro):
    return asyncio.run(coro)


def say(text: str) -> LLMResponse:
    return LLMResponse(text=text, text_parts=[text])


def write(path: str, content: str, call_id: str = "call_1") -> LLMResponse:
    return LLMResponse(
        text="",
        tool_calls=[
            ToolCall(
                id=call_id,
                tool_name="write-files",
                arguments={"files": [{"path": path, "content": content}]},
            )
        ],
    )


class ScriptedLLM(LLM):
    """Plays `script` in order, repeating the last entry; exceptions are raised."""

    def __init__(
        self,
        script: list[LLMResponse | Exception],
        *,
        max_retries: int = 0,
        max_input_chars: int = 1_000_000,
    ) -> None:
        super().__init__(
            config=LLMConfig(
                default_model="test",
                timeout_s=5.0,
                max_retries=max_retries,
                backoff_base_s=0.0,
                backoff_jitter_s=0.0,
                max_input_chars=max_input_chars,
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


class FinalizerLLM(ScriptedLLM):
    """Answers the title prompt with a title and the response prompt with a sentence."""

    def __init__(self, title: LLMResponse | None = None) -> None:
        super().__init__([])
        self.title = title or say("README Added")

    async def _chat_core(self, req: LLMRequest) -> LLMResponse:
        self.requests.append(req)
        if "title" in str(req.messages[0].content):
            return self.title
        return say("I added a README to your project.")


def make_workflow(store, provider, agent, finalizer, *, repository=None, telemetry=None, config=FAST):
    return CodeAgentWorkflow(
        llm=agent,
        finalizer_llm=finalizer,
        store=store,
        sandbox_provider=provider,
        repository=repository or StoreMessageRepository(store),
        config=config,
        telemetry=telemetry,
    )


def test_add_readme_end_to_end():
    agent = ScriptedLLM(
        [
            write("README.md", "# Demo\n"),
            say("Added README <task_summary>Added README</task_summary>"),
        ]
    )
    finalizer = FinalizerLLM()
    provider = InMemorySandboxProvider()
    telemetry = InMemoryTelemetrySink()

    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            wf = make_workflow(store, provider, agent, finalizer, repository=repo, telemetry=telemetry)
            result = await wf.run(
                {"taskValue": "add a README", "conversationId": "c1"}, run_id="run-1"
            )
            return result, await repo.list_messages("c1")

    result, messages = run_async(scenario())

    assert result.is_error is False
    assert result.files == {"README.md": "# Demo\n"}
    assert result.title == "README Added"
    assert result.url == "https://3000-sbx-1.sandbox.local"
    assert "Added README" in result.summary
    assert result.to_dict() == {
        "url": "https://3000-sbx-1.sandbox.local",
        "title": "README Added",
        "files": {"README.md": "# Demo\n"},
        "summary": result.summary,
    }

    assert len(messages) == 1
    saved = messages[0]
    assert saved.type == MessageType.RESULT
    assert saved.role == MessageRole.ASSISTANT
    assert saved.content == "I added a README to your project."
    assert saved.fragment.files == {"README.md": "# Demo\n"}
    assert saved.fragment.title == "README Added"
    assert saved.fragment.sandbox_url == result.url

    title_req = finalizer.requests[0]
    assert title_req.model == "gpt-4o"
    assert title_req.messages[1].content == result.summary
    assert provider.sandbox("sbx-1").files == {"README.md": "# Demo\n"}

    names = [e.name for e in telemetry.events()]
    assert names[0] == "workflow.started"
    assert "agent.completed" in names
    assert names[-1] == "workflow.completed"
    assert telemetry.spans()[0]["status"] == "ok"


def test_non_text_title_falls_back_to_fragment():
    agent = ScriptedLLM([write("a.txt", "1"), say("<task_summary>done</task_summary>")])
    finalizer = FinalizerLLM(
        title=LLMResponse(
            text="",
            tool_calls=[ToolCall(id="c", tool_name="run-command", arguments={"command": "ls"})],
        )
    )

    async def scenario():
        async with InMemoryStateStore() as store:
            return await make_workflow(store, InMemorySandboxProvider(), agent, finalizer).run(
                CodeAgentEvent(value="x", conversation_id="c1"), run_id="run-1"
            )

    assert run_async(scenario()).title == "Fragment"


def test_no_completion_marker_persists_single_error_message():
    agent = ScriptedLLM([write("a.txt", "1")])

    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            wf = make_workflow(store, InMemorySandboxProvider(), agent, FinalizerLLM(), repository=repo)
            result = await wf.run(CodeAgentEvent(value="x", conversation_id="c1"), run_id="run-1")
            return result, await repo.list_messages("c1")

    result, messages = run_async(scenario())
    assert result.is_error is True
    assert result.summary == ""
    assert len(agent.requests) == 15
    assert [m.type for m in messages] == [MessageType.ERROR]
    assert messages[0].content == ERROR_MESSAGE
    assert messages[0].fragment is None


def test_completion_without_files_is_an_error():
    agent = ScriptedLLM([say("Nothing to do <task_summary>no changes</task_summary>")])

    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            wf = make_workflow(store, InMemorySandboxProvider(), agent, FinalizerLLM(), repository=repo)
            result = await wf.run(CodeAgentEvent(value="x", conversation_id="c1"), run_id="run-1")
            return result, await repo.list_messages("c1")

    result, messages = run_async(scenario())
    assert result.is_error is True
    assert result.url == "https://3000-sbx-1.sandbox.local"
    assert len(agent.requests) == 1
    assert [m.type for m in messages] == [MessageType.ERROR]


class BadRequest(Exception):
    status_code = 400


def test_rejected_model_turn_ends_run_with_single_error_message():
    agent = ScriptedLLM([write("a.txt", "1"), BadRequest("invalid tool schema")])
    telemetry = InMemoryTelemetrySink()

    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            wf = make_workflow(
                store, InMemorySandboxProvider(), agent, FinalizerLLM(),
                repository=repo, telemetry=telemetry,
            )
            result = await wf.run(CodeAgentEvent(value="x", conversation_id="c1"), run_id="run-1")
            return result, await repo.list_messages("c1")

    result, messages = run_async(scenario())
    assert result.is_error is True
    assert result.files == {"a.txt": "1"}
    assert len(agent.requests) == 2
    assert [m.type for m in messages] == [MessageType.ERROR]
    assert messages[0].content == ERROR_MESSAGE

    errors = telemetry.events("llm.error")
    assert [e.attributes["run_id"] for e in errors] == ["run-1"]
    assert errors[0].attributes["error_class"] == "LLMError"
    assert len(telemetry.events("agent.model_error")) == 1
    assert telemetry.events("step.retry") == []
    assert telemetry.spans()[0]["status"] == "ok"


def test_history_over_input_limit_persists_error_instead_of_aborting():
    agent = ScriptedLLM([say("unused")], max_input_chars=100)

    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            wf = make_workflow(store, InMemorySandboxProvider(), agent, FinalizerLLM(), repository=repo)
            result = await wf.run(CodeAgentEvent(value="x", conversation_id="c1"), run_id="run-1")
            return result, await repo.list_messages("c1")

    result, messages = run_async(scenario())
    assert result.is_error is True
    assert agent.requests == []
    assert [m.type for m in messages] == [MessageType.ERROR]


def test_repeated_writes_keep_history_small():
    body = "x" * 1500
    agent = ScriptedLLM(
        [
            write("a.txt", body, "call_a"),
            write("b.txt", body, "call_b"),
            say("<task_summary>Wrote two files</task_summary>"),
        ],
        max_input_chars=4000,
    )

    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            wf = make_workflow(store, InMemorySandboxProvider(), agent, FinalizerLLM(), repository=repo)
            result = await wf.run(CodeAgentEvent(value="x", conversation_id="c1"), run_id="run-1")
            return result, await repo.list_messages("c1")

    result, messages = run_async(scenario())
    assert result.is_error is False
    assert result.files == {"a.txt": body, "b.txt": body}
    assert len(agent.requests) == 3
    assert [m.type for m in messages] == [MessageType.RESULT]
    last_tool_result = agent.requests[2].messages[-1].content[0]["content"]
    assert body not in last_tool_result


def test_rejected_finalizer_falls_back_to_fragment():
    agent = ScriptedLLM([write("a.txt", "1"), say("<task_summary>done</task_summary>")])
    finalizer = ScriptedLLM([BadRequest("unsupported model")])

    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            wf = make_workflow(store, InMemorySandboxProvider(), agent, finalizer, repository=repo)
            result = await wf.run(CodeAgentEvent(value="x", conversation_id="c1"), run_id="run-1")
            return result, await repo.list_messages("c1")

    result, messages = run_async(scenario())
    assert result.is_error is False
    assert result.title == "Fragment"
    assert len(finalizer.requests) == 2
    assert messages[0].content == "Fragment"
    assert messages[0].fragment.title == "Fragment"


def test_llm_retries_are_reported_against_the_run():
    agent = ScriptedLLM(
        [
            ConnectionError("connection reset"),
            write("a.txt", "1"),
            say("<task_summary>done</task_summary>"),
        ],
        max_retries=1,
    )
    finalizer = FinalizerLLM()
    telemetry = InMemoryTelemetrySink()

    async def scenario():
        async with InMemoryStateStore() as store:
            wf = make_workflow(
                store, InMemorySandboxProvider(), agent, finalizer, telemetry=telemetry
            )
            # A second workflow on the same clients must not double-report.
            make_workflow(store, InMemorySandboxProvider(), agent, finalizer, telemetry=telemetry)
            return await wf.run(CodeAgentEvent(value="x", conversation_id="c1"), run_id="run-7")

    result = run_async(scenario())
    assert result.is_error is False
    retries = telemetry.events("llm.retry")
    assert len(retries) == 1
    assert retries[0].attributes["run_id"] == "run-7"
    assert retries[0].attributes["error_class"] == "LLMRetryableError"
    assert telemetry.events("llm.error") == []
    llm_counters = [c for c in telemetry.counters() if c["name"] == "codeforge.llm_requests"]
    assert len(llm_counters) == 4


def test_rerunning_a_finished_run_replays_everything(tmp_path):
    agent = ScriptedLLM([write("README.md", "# Demo"), say("<task_summary>Added README</task_summary>")])
    finalizer = FinalizerLLM()
    provider = InMemorySandboxProvider()

    async def scenario():
        async with SQLiteStateStore(path=str(tmp_path / "wf.sqlite3")) as store:
            repo = StoreMessageRepository(store)
            first = await make_workflow(store, provider, agent, finalizer, repository=repo).run(
                CodeAgentEvent(value="add a README", conversation_id="c1"), run_id="run-1"
            )
            calls_after_first = (len(agent.requests), len(finalizer.requests))
            second = await make_workflow(store, provider, agent, finalizer, repository=repo).run(
                CodeAgentEvent(value="add a README", conversation_id="c1"), run_id="run-1"
            )
            return first, second, calls_after_first, await repo.list_messages("c1")

    first, second, calls_after_first, messages = run_async(scenario())
    assert second == first
    assert (len(agent.requests), len(finalizer.requests)) == calls_after_first
    assert provider.create_calls == 1
    assert len(messages) == 1


def test_crash_before_save_resumes_without_second_sandbox():
    agent = ScriptedLLM([write("README.md", "# Demo"), say("<task_summary>Added README</task_summary>")])
    provider = InMemorySandboxProvider()

    class CrashingFinalizer(FinalizerLLM):
        async def _chat_core(self, req: LLMRequest) -> LLMResponse:
            raise ConnectionError("worker lost")

    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            crashed = make_workflow(store, provider, agent, CrashingFinalizer(), repository=repo)
            with pytest.raises(StepFailedError):
                await crashed.run(CodeAgentEvent(value="add a README", conversation_id="c1"), run_id="run-1")
            assert await repo.list_messages("c1") == []
            model_calls = len(agent.requests)

            resumed = make_workflow(store, provider, agent, FinalizerLLM(), repository=repo)
            result = await resumed.run(
                CodeAgentEvent(value="add a README", conversation_id="c1"), run_id="run-1"
            )
            return result, model_calls, await repo.list_messages("c1")

    result, model_calls, messages = run_async(scenario())
    assert provider.create_calls == 1
    assert len(agent.requests) == model_calls
    assert result.files == {"README.md": "# Demo"}
    assert result.is_error is False
    assert len(messages) == 1


def test_sandbox_provisioning_failure_propagates():
    class BrokenProvider(InMemorySandboxProvider):
        async def create(self, template: str, *, timeout_s: int):
            raise ConnectionError("provider down")

    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            telemetry = InMemoryTelemetrySink()
            wf = make_workflow(
                store, BrokenProvider(), ScriptedLLM([say("x")]), FinalizerLLM(),
                repository=repo, telemetry=telemetry,
            )
            with pytest.raises(StepFailedError) as info:
                await wf.run(CodeAgentEvent(value="x", conversation_id="c1"), run_id="run-1")
            return info.value, telemetry, await repo.list_messages("c1")

    error, telemetry, messages = run_async(scenario())
    assert error.step_id == "get-sandbox-id"
    assert messages == []
    assert telemetry.spans()[0]["status"] == "error"


def test_context_is_loaded_oldest_first():
    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            for content, role in [("t1", MessageRole.USER), ("t2", MessageRole.ASSISTANT), ("t3", MessageRole.USER)]:
                await repo.create_message(
                    conversation_id="c1", content=content, role=role, type=MessageType.RESULT
                )
            steps = DurableStepExecutor(store, "run-1")
            turns = await load_context(steps, repo, CodeAgentEvent(value="x", conversation_id="c1"), limit=5)
            none = await load_context(
                DurableStepExecutor(store, "run-2"), repo, CodeAgentEvent(value="x"), limit=5
            )
            return turns, none

    turns, none = run_async(scenario())
    assert [t.content for t in turns] == ["t1", "t2", "t3"]
    assert [t.role for t in turns] == ["user", "assistant", "user"]
    assert none == []


def test_context_window_keeps_only_newest_turns():
    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            for i in range(1, 8):
                await repo.create_message(
                    conversation_id="c1", content=f"t{i}", role=MessageRole.USER, type=MessageType.RESULT
                )
            steps = DurableStepExecutor(store, "run-1")
            return await load_context(steps, repo, CodeAgentEvent(value="x", conversation_id="c1"), limit=5)

    assert [t.content for t in run_async(scenario())] == ["t3", "t4", "t5", "t6", "t7"]


def test_submit_user_message_persists_turn_then_runs():
    agent = ScriptedLLM([write("README.md", "# Demo"), say("<task_summary>Added README</task_summary>")])

    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            wf = make_workflow(store, InMemorySandboxProvider(), agent, FinalizerLLM(), repository=repo)
            result = await submit_user_message(repo, wf, "add a README", "c1", run_id="run-1")
            return result, await repo.list_messages("c1")

    result, messages = run_async(scenario())
    assert result.is_error is False
    assert [(m.role, m.type) for m in messages] == [
        (MessageRole.USER, MessageType.RESULT),
        (MessageRole.ASSISTANT, MessageType.RESULT),
    ]
    first_request = agent.requests[0]
    assert first_request.messages[-1].content == "add a README"


def test_submit_user_message_validates_input():
    async def scenario(value: str, conversation_id: str):
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            wf = make_workflow(store, InMemorySandboxProvider(), ScriptedLLM([say("x")]), FinalizerLLM(), repository=repo)
            await submit_user_message(repo, wf, value, conversation_id)

    with pytest.raises(InvalidEventError):
        run_async(scenario("", "c1"))
    with pytest.raises(InvalidEventError):
        run_async(scenario("x" * 10001, "c1"))
    with pytest.raises(InvalidEventError):
        run_async(scenario("hi", ""))


def test_workflow_config_from_env(monkeypatch):
    monkeypatch.setenv("CODEFORGE_MAX_ITERATIONS", "7")
    monkeypatch.setenv("CODEFORGE_CONTEXT_LIMIT", "3")
    monkeypatch.setenv("CODEFORGE_SANDBOX_TEMPLATE", "custom-template")
    cfg = WorkflowConfig.from_env()
    assert cfg.max_iterations == 7
    assert cfg.context_limit == 3
    assert cfg.sandbox_template == "custom-template"
    assert cfg.finalizer_model == "gpt-4o"
    assert replace(cfg, max_iterations=15).max_iterations == 15

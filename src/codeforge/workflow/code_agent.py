from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the code-agent workflow entrypoint.

One `run` call handles one task end to end: provision a sandbox, load the
conversation context, drive the agent loop, finalize the title and response,
and persist exactly one outcome message. Every side effect runs as a durable
step, so calling `run` again with the same `run_id` after a crash resumes
from the last checkpoint.
"""

from typing import Any, Mapping, Optional, Union

from ..core.telemetry import NullTelemetrySink, TelemetrySink, emit
from ..llms.llm import LLM
from ..llms.observability import TelemetryLLMObserver
from ..memory.store.base import StateStore
from ..messages.repository import MessageRepository
from ..sandbox.base import SandboxProvider
from .completion import CompletionPredicate
from .config import WorkflowConfig
from .context import load_context
from .events import CodeAgentEvent
from .finalizers import generate_fragment_title, generate_response
from .loop import AgentLoop
from .outcome import WorkflowResult, is_error_outcome, save_result
from .sandbox import ensure_sandbox, resolve_sandbox_url
from .state import AgentState
from .steps import DurableStepExecutor
from .toolset import build_registry


class CodeAgentWorkflow:
    """
    Durable code-agent workflow.

    Args:
        llm: Client for the agent loop.
        store: Checkpoint store for durable steps.
        sandbox_provider: Creates and re-attaches sandboxes.
        repository: Message persistence for context and outcomes.
        config: Workflow settings; defaults to `WorkflowConfig()`.
        telemetry: Sink for events, spans and counters. When given, both LLM
            clients also report their retries and failures to it.
        finalizer_llm: Client for the title/response calls; defaults to `llm`.
        predicate: Completion check; defaults to the configured marker.
    """

    def __init__(
        self,
        *,
        llm: LLM,
        store: StateStore,
        sandbox_provider: SandboxProvider,
        repository: MessageRepository,
        config: Optional[WorkflowConfig] = None,
        telemetry: Optional[TelemetrySink] = None,
        finalizer_llm: Optional[LLM] = None,
        predicate: Optional[CompletionPredicate] = None,
    ) -> None:
        self.llm = llm
        self.store = store
        self.sandbox_provider = sandbox_provider
        self.repository = repository
        self.config = config or WorkflowConfig()
        self.telemetry = telemetry or NullTelemetrySink()
        self.finalizer_llm = finalizer_llm or llm
        self.predicate = predicate

        if telemetry is not None:
            observer = TelemetryLLMObserver(telemetry)
            self.llm.add_observer(observer)
            self.finalizer_llm.add_observer(observer)

    async def run(
        self,
        event: Union[CodeAgentEvent, Mapping[str, Any]],
        *,
        run_id: str,
    ) -> WorkflowResult:
        """
        Execute (or resume) the run identified by `run_id`.

        Raises:
            InvalidEventError: `event` does not describe a task.
            StepFailedError: A step exhausted its retries; no outcome is persisted.
        """
        task = event if isinstance(event, CodeAgentEvent) else CodeAgentEvent.from_payload(event)
        steps = DurableStepExecutor(
            self.store,
            run_id,
            policy=self.config.step_policy(),
            telemetry=self.telemetry,
        )

        span = self.telemetry.start_span(
            "codeforge.workflow.run",
            attributes={"run_id": run_id, "conversation_id": task.conversation_id},
        )
        emit(self.telemetry, "workflow.started", run_id=run_id)
        try:
            result = await self._run(task, steps)
        except Exception as e:
            self.telemetry.end_span(span, status="error", error=str(e))
            raise

        emit(
            self.telemetry,
            "workflow.completed",
            run_id=run_id,
            is_error=result.is_error,
            replayed_steps=len(steps.replayed_steps),
            executed_steps=len(steps.executed_steps),
        )
        self.telemetry.end_span(span, status="ok", attributes={"is_error": result.is_error})
        return result

    async def _run(self, task: CodeAgentEvent, steps: DurableStepExecutor) -> WorkflowResult:
        config = self.config
        sandbox_id = await ensure_sandbox(steps, self.sandbox_provider, config)
        context = await load_context(steps, self.repository, task, limit=config.context_limit)

        state = AgentState()
        registry = build_registry(
            self.sandbox_provider,
            sandbox_id,
            config,
            telemetry=self.telemetry,
            run_id=steps.run_id,
        )
        loop = AgentLoop(
            llm=self.llm,
            registry=registry,
            steps=steps,
            config=config,
            predicate=self.predicate,
            telemetry=self.telemetry,
        )
        await loop.run(task.value, state, context)

        title = await generate_fragment_title(steps, self.finalizer_llm, config, state.summary)
        response = await generate_response(steps, self.finalizer_llm, config, state.summary)

        # Resolved on both outcome paths so step ids do not depend on the outcome.
        url = await resolve_sandbox_url(steps, self.sandbox_provider, sandbox_id, config)

        await save_result(
            steps,
            self.repository,
            conversation_id=task.conversation_id,
            state=state,
            response=response,
            title=title,
            sandbox_url=url,
        )
        return WorkflowResult(
            url=url,
            title=title,
            files=dict(state.files),
            summary=state.summary,
            is_error=is_error_outcome(state),
        )

from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module runs the post-loop finalizers: a fragment title and a
user-facing response, each produced by one single-turn model call.
"""

from typing import List

from ..llms.llm import LLM
from ..llms.types import LLMRequest, Message
from ..llms.utils import is_retryable_error
from .config import WorkflowConfig
from .errors import StepFailedError
from .output import OutputItem, output_items_from_response, parse_agent_output
from .prompts import FRAGMENT_TITLE_PROMPT, RESPONSE_PROMPT
from .steps import DurableStepExecutor


async def _single_turn(
    steps: DurableStepExecutor,
    llm: LLM,
    config: WorkflowConfig,
    *,
    step_name: str,
    system_prompt: str,
    summary: str,
) -> List[OutputItem]:
    async def _invoke() -> List[OutputItem]:
        resp = await llm.chat(
            LLMRequest(
                model=config.finalizer_model,
                idempotency_key=f"{steps.run_id}:{step_name}",
                messages=[
                    Message(role="system", content=system_prompt),
                    Message(role="user", content=summary),
                ],
                metadata={"run_id": steps.run_id, "step": step_name},
            )
        )
        return output_items_from_response(resp)

    try:
        return await steps.run(step_name, _invoke, retry_if=is_retryable_error)  # type: ignore[return-value]
    except StepFailedError as e:
        if e.cause is None or is_retryable_error(e.cause):
            raise
        # A rejected request parses to the "Fragment" fallback.
        return []


async def generate_fragment_title(
    steps: DurableStepExecutor,
    llm: LLM,
    config: WorkflowConfig,
    summary: str,
) -> str:
    """Short title for the run's fragment; `"Fragment"` when unusable."""
    items = await _single_turn(
        steps,
        llm,
        config,
        step_name="generate-fragment-title",
        system_prompt=FRAGMENT_TITLE_PROMPT,
        summary=summary,
    )
    return parse_agent_output(items)


async def generate_response(
    steps: DurableStepExecutor,
    llm: LLM,
    config: WorkflowConfig,
    summary: str,
) -> str:
    items = await _single_turn(
        steps,
        llm,
        config,
        step_name="generate-response",
        system_prompt=RESPONSE_PROMPT,
        summary=summary,
    )
    return parse_agent_output(items)


__all__ = [
    "OutputItem",
    "output_items_from_response",
    "parse_agent_output",
    "generate_fragment_title",
    "generate_response",
]

from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Workflow-level settings: loop bounds, sandbox provisioning, models and step retries.
"""

import os
from dataclasses import dataclass

from .steps import StepRetryPolicy


@dataclass(frozen=True, slots=True)
class WorkflowConfig:
    # Loop bounds
    max_iterations: int = 15
    context_limit: int = 5
    completion_marker: str = "<task_summary>"

    # Sandbox
    sandbox_template: str = "vibe-nextjs-prod"
    sandbox_timeout_s: int = 1800
    sandbox_port: int = 3000

    # Models
    agent_model: str = "gpt-4.1"
    agent_temperature: float = 0.1
    finalizer_model: str = "gpt-4o"

    # Durable steps
    step_max_attempts: int = 3
    step_backoff_base_s: float = 0.5
    step_backoff_jitter_s: float = 0.25

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be >= 1")
        if self.context_limit < 0:
            raise ValueError("context_limit must be >= 0")
        if self.step_max_attempts < 1:
            raise ValueError("step_max_attempts must be >= 1")

    def step_policy(self) -> StepRetryPolicy:
        return StepRetryPolicy(
            max_attempts=self.step_max_attempts,
            backoff_base_s=self.step_backoff_base_s,
            backoff_jitter_s=self.step_backoff_jitter_s,
        )

    @staticmethod
    def from_env() -> "WorkflowConfig":
        return WorkflowConfig(
            max_iterations=int(os.getenv("CODEFORGE_MAX_ITERATIONS", "15")),
            context_limit=int(os.getenv("CODEFORGE_CONTEXT_LIMIT", "5")),
            completion_marker=os.getenv("CODEFORGE_COMPLETION_MARKER", "<task_summary>"),
            sandbox_template=os.getenv("CODEFORGE_SANDBOX_TEMPLATE", "vibe-nextjs-prod"),
            sandbox_timeout_s=int(os.getenv("CODEFORGE_SANDBOX_TIMEOUT_S", "1800")),
            sandbox_port=int(os.getenv("CODEFORGE_SANDBOX_PORT", "3000")),
            agent_model=os.getenv("CODEFORGE_AGENT_MODEL", "gpt-4.1"),
            agent_temperature=float(os.getenv("CODEFORGE_AGENT_TEMPERATURE", "0.1")),
            finalizer_model=os.getenv("CODEFORGE_FINALIZER_MODEL", "gpt-4o"),
            step_max_attempts=int(os.getenv("CODEFORGE_STEP_MAX_ATTEMPTS", "3")),
            step_backoff_base_s=float(os.getenv("CODEFORGE_STEP_BACKOFF_BASE_S", "0.5")),
            step_backoff_jitter_s=float(os.getenv("CODEFORGE_STEP_BACKOFF_JITTER_S", "0.25")),
        )

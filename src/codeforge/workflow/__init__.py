"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Durable code-agent workflow: step executor, agent loop, tools, finalizers and outcome.
"""

from .code_agent import CodeAgentWorkflow
from .completion import CompletionPredicate, last_assistant_text, marker_predicate
from .config import WorkflowConfig
from .context import ConversationTurn, load_context
from .errors import InvalidEventError, StepFailedError, StepSerializationError, WorkflowError
from .events import CodeAgentEvent
from .finalizers import generate_fragment_title, generate_response
from .intake import submit_user_message
from .loop import AgentLoop, LoopResult, LoopStatus
from .outcome import ERROR_MESSAGE, WorkflowResult, is_error_outcome, save_result
from .output import FALLBACK_TITLE, OutputItem, output_items_from_response, parse_agent_output
from .sandbox import ensure_sandbox, reconnect, resolve_sandbox_url
from .state import AgentState, FileEdit, apply_edits
from .steps import DurableStepExecutor, StepRetryPolicy
from .toolset import build_registry, build_toolset

__all__ = [
    "CodeAgentWorkflow",
    "CodeAgentEvent",
    "WorkflowConfig",
    "WorkflowResult",
    "DurableStepExecutor",
    "StepRetryPolicy",
    "AgentState",
    "FileEdit",
    "apply_edits",
    "AgentLoop",
    "LoopResult",
    "LoopStatus",
    "CompletionPredicate",
    "marker_predicate",
    "last_assistant_text",
    "ConversationTurn",
    "load_context",
    "ensure_sandbox",
    "reconnect",
    "resolve_sandbox_url",
    "build_toolset",
    "build_registry",
    "OutputItem",
    "FALLBACK_TITLE",
    "output_items_from_response",
    "parse_agent_output",
    "generate_fragment_title",
    "generate_response",
    "ERROR_MESSAGE",
    "is_error_outcome",
    "save_result",
    "submit_user_message",
    "WorkflowError",
    "StepFailedError",
    "StepSerializationError",
    "InvalidEventError",
]

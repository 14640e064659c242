"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

codeforge runs an LLM coding agent against a remote sandbox as a durable,
resumable workflow.
"""

from .workflow import CodeAgentEvent, CodeAgentWorkflow, WorkflowConfig, WorkflowResult

__version__ = "0.1.0"

__all__ = [
    "CodeAgentEvent",
    "CodeAgentWorkflow",
    "WorkflowConfig",
    "WorkflowResult",
    "__version__",
]

"""
Sandbox contracts and backends.
"""

from .base import CommandResult, OutputCallback, SandboxHandle, SandboxProvider
from .errors import (
    CommandFailedError,
    SandboxConfigurationError,
    SandboxError,
    SandboxUnavailableError,
)
from .e2b import E2BSandbox, E2BSandboxProvider
from .in_memory import InMemorySandbox, InMemorySandboxProvider

__all__ = [
    "CommandResult",
    "OutputCallback",
    "SandboxHandle",
    "SandboxProvider",
    "SandboxError",
    "SandboxConfigurationError",
    "SandboxUnavailableError",
    "CommandFailedError",
    "E2BSandbox",
    "E2BSandboxProvider",
    "InMemorySandbox",
    "InMemorySandboxProvider",
]

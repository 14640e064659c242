from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module provisions the run's sandbox and re-attaches to it by id.
"""

from ..sandbox.base import SandboxHandle, SandboxProvider
from .config import WorkflowConfig
from .steps import DurableStepExecutor


async def ensure_sandbox(
    steps: DurableStepExecutor,
    provider: SandboxProvider,
    config: WorkflowConfig,
) -> str:
    """Create the run's sandbox once (step `get-sandbox-id`) and return its id."""

    async def _create() -> str:
        handle = await provider.create(
            config.sandbox_template, timeout_s=config.sandbox_timeout_s
        )
        await handle.set_timeout(config.sandbox_timeout_s)
        return handle.sandbox_id

    return str(await steps.run("get-sandbox-id", _create))


async def reconnect(
    provider: SandboxProvider,
    sandbox_id: str,
    config: WorkflowConfig,
) -> SandboxHandle:
    """
    Attach to an existing sandbox and re-apply its timeout.

    Called before every sandbox use; handles are never cached across steps.
    """
    handle = await provider.connect(sandbox_id)
    await handle.set_timeout(config.sandbox_timeout_s)
    return handle


async def resolve_sandbox_url(
    steps: DurableStepExecutor,
    provider: SandboxProvider,
    sandbox_id: str,
    config: WorkflowConfig,
) -> str:
    """Return the public URL of the sandbox's app port (step `get-sandbox-url`)."""

    async def _resolve() -> str:
        handle = await reconnect(provider, sandbox_id, config)
        return f"https://{handle.get_host(config.sandbox_port)}"

    return str(await steps.run("get-sandbox-url", _resolve))

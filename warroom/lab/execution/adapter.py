"""Agent run executor boundary.

The orchestrator never runs an agent itself.  It asks an injected
``AgentExecutor`` for one ``AgentExecution`` per run and then either streams
its progress events or awaits its result.  Everything about prompts
reaching a model, tool permissions and model fallback lives behind this
protocol.
"""

from __future__ import annotations

import importlib
from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from warroom.lab.models.execution import AgentConfig, ExecutionResult, ExecutorEvent


@runtime_checkable
class AgentExecution(Protocol):
    """One cancellable agent run."""

    def stream(self) -> AsyncIterator[ExecutorEvent]:
        """Run the agent, yielding progress events and ending with ``complete``."""
        ...

    async def run(self) -> ExecutionResult:
        """Run the agent to completion without progress events."""
        ...

    def abort(self) -> None:
        """Stop the run.  Must be idempotent and must not block."""
        ...


@runtime_checkable
class AgentExecutor(Protocol):
    def create(self, config: AgentConfig) -> AgentExecution: ...


def load_executor(path: str) -> AgentExecutor:
    """Import an executor from a ``module:attr`` path.

    ``attr`` may be an executor instance or a zero-argument factory
    returning one.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        msg = f"Executor path must look like 'package.module:attr', got {path!r}"
        raise ValueError(msg)

    target = getattr(importlib.import_module(module_name), attr)
    is_instance = isinstance(target, AgentExecutor) and not isinstance(target, type)
    executor = target if is_instance else target()
    if not isinstance(executor, AgentExecutor):
        msg = f"{path!r} did not produce an AgentExecutor"
        raise TypeError(msg)
    return executor

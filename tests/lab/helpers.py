"""Scripted executors, a simulated clock and record builders for lab tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import anyio

from warroom.lab.models import (
    AgentConfig,
    CompleteEvent,
    ExecutionResult,
    ExecutionUsage,
    ExecutorEvent,
    Persona,
    Project,
    TextDeltaEvent,
)


def reply(text: str, *, input_tokens: int = 100, output_tokens: int = 50, cost: float = 0.01) -> list[ExecutorEvent]:
    """Events of a run that streams ``text`` and completes successfully."""
    return [
        TextDeltaEvent(text=text),
        CompleteEvent(
            result=ExecutionResult(
                success=True,
                response=text,
                usage=ExecutionUsage(input_tokens=input_tokens, output_tokens=output_tokens, cost_usd=cost),
            )
        ),
    ]


def fail(message: str) -> list[ExecutorEvent]:
    return [CompleteEvent(result=ExecutionResult.failure(message))]


class ScriptedExecution:
    """Yields a fixed event list.  With ``hang=True`` it then waits until aborted."""

    def __init__(
        self,
        config: AgentConfig | None = None,
        events: Sequence[ExecutorEvent] = (),
        *,
        hang: bool = False,
        error: Exception | None = None,
    ) -> None:
        self.config = config
        self.events = list(events)
        self.hang = hang
        self.error = error
        self.abort_calls = 0
        self._aborted = anyio.Event()

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    async def stream(self):
        for event in self.events:
            if self.aborted:
                return
            await anyio.sleep(0)
            yield event
        if self.error is not None:
            raise self.error
        if self.hang:
            await self._aborted.wait()

    async def run(self) -> ExecutionResult:
        if self.error is not None:
            raise self.error
        if self.hang:
            await self._aborted.wait()
            return ExecutionResult.failure("aborted")
        for event in self.events:
            if isinstance(event, CompleteEvent):
                return event.result
        return ExecutionResult.failure("no result")

    def abort(self) -> None:
        self.abort_calls += 1
        self._aborted.set()


Script = Callable[[AgentConfig], ScriptedExecution | Sequence[ExecutorEvent]]


class FakeExecutor:
    """Builds executions from ``script(config)`` and records every config it saw."""

    def __init__(self, script: Script) -> None:
        self._script = script
        self.configs: list[AgentConfig] = []
        self.executions: list[ScriptedExecution] = []

    def create(self, config: AgentConfig) -> ScriptedExecution:
        self.configs.append(config)
        scripted = self._script(config)
        execution = scripted if isinstance(scripted, ScriptedExecution) else ScriptedExecution(config, scripted)
        execution.config = config
        self.executions.append(execution)
        return execution

    def prompts_for(self, persona_id: str) -> list[str]:
        return [c.prompt for c in self.configs if c.persona_id == persona_id]


class FakeClock:
    """Simulated monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds
        await anyio.sleep(0)


def make_personas(count: int) -> list[Persona]:
    names = ["Ada", "Grace", "Linus", "Barbara", "Ken", "Margaret"]
    return [
        Persona(
            id=f"persona-{i}",
            name=names[i % len(names)],
            role=f"Role {i}",
            icon="🧪",
            mindset=f"Mindset {i}",
            knowledge=f"Knowledge {i}",
            evaluation_criteria=f"- Criterion {i}",
        )
        for i in range(count)
    ]


def make_project(personas: Sequence[Persona]) -> Project:
    return Project(
        id="todo-app",
        name="Todo App",
        description="A small todo list service",
        goals=["Ship an MVP", "Keep it simple"],
        working_directory="/tmp/todo",
        persona_ids=[p.id for p in personas],
    )

"""Single-writer pipeline recorder.

Parallel runs in one phase finish concurrently, and each wants to update the
same ``Pipeline`` document.  Every mutation therefore goes through
``PipelineRecorder.apply``: one lock, one mutation, one whole-document write,
in that order.  The next mutation starts only after the previous write
returned, so a reader of the store always sees a monotonically advancing
snapshot, and two near-simultaneous completions cannot lose each other's
update.

Transitions are validated here.  An illegal status change is a programming
error and raises ``InvalidTransitionError``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

import anyio
from loguru import logger

from warroom.lab.models.enums import AgentRunStatus, PhaseStatus, PhaseType, PipelineStatus
from warroom.lab.models.lab import utcnow
from warroom.lab.models.pipeline import AgentRun, Phase, Pipeline, TokenUsage

if TYPE_CHECKING:
    from warroom.lab.store.base import LabStore

T = TypeVar("T")


class InvalidTransitionError(RuntimeError):
    """Raised when a status change would move a record backwards or sideways."""


_PIPELINE_TRANSITIONS: dict[PipelineStatus, frozenset[PipelineStatus]] = {
    PipelineStatus.PENDING: frozenset({PipelineStatus.THINKING, PipelineStatus.FAILED, PipelineStatus.CANCELLED}),
    PipelineStatus.THINKING: frozenset(
        {PipelineStatus.SYNTHESIZING, PipelineStatus.BUILDING, PipelineStatus.FAILED, PipelineStatus.CANCELLED}
    ),
    PipelineStatus.SYNTHESIZING: frozenset({PipelineStatus.BUILDING, PipelineStatus.FAILED, PipelineStatus.CANCELLED}),
    PipelineStatus.BUILDING: frozenset({PipelineStatus.REVIEWING, PipelineStatus.FAILED, PipelineStatus.CANCELLED}),
    PipelineStatus.ITERATING: frozenset({PipelineStatus.REVIEWING, PipelineStatus.FAILED, PipelineStatus.CANCELLED}),
    PipelineStatus.REVIEWING: frozenset(
        {PipelineStatus.ITERATING, PipelineStatus.COMPLETED, PipelineStatus.FAILED, PipelineStatus.CANCELLED}
    ),
    PipelineStatus.COMPLETED: frozenset(),
    PipelineStatus.FAILED: frozenset(),
    PipelineStatus.CANCELLED: frozenset(),
}

_PHASE_TRANSITIONS: dict[PhaseStatus, frozenset[PhaseStatus]] = {
    PhaseStatus.PENDING: frozenset({PhaseStatus.RUNNING, PhaseStatus.SKIPPED}),
    PhaseStatus.RUNNING: frozenset({PhaseStatus.COMPLETED, PhaseStatus.FAILED}),
    PhaseStatus.COMPLETED: frozenset(),
    PhaseStatus.FAILED: frozenset(),
    PhaseStatus.SKIPPED: frozenset(),
}

_RUN_TRANSITIONS: dict[AgentRunStatus, frozenset[AgentRunStatus]] = {
    AgentRunStatus.PENDING: frozenset({AgentRunStatus.RUNNING, AgentRunStatus.FAILED}),
    AgentRunStatus.RUNNING: frozenset({AgentRunStatus.COMPLETED, AgentRunStatus.FAILED}),
    AgentRunStatus.COMPLETED: frozenset(),
    AgentRunStatus.FAILED: frozenset(),
}


def _check(kind: str, table: dict, current: object, target: object) -> None:
    if target not in table[current]:
        msg = f"Illegal {kind} transition {current} -> {target}"
        raise InvalidTransitionError(msg)


class PipelineRecorder:
    """Owns the live ``Pipeline`` object for the duration of one run."""

    def __init__(self, pipeline: Pipeline, store: LabStore) -> None:
        self._pipeline = pipeline
        self._store = store
        self._lock = anyio.Lock()

    @property
    def pipeline(self) -> Pipeline:
        """The live object.  Read it; never mutate it outside ``apply``."""
        return self._pipeline

    def snapshot(self) -> Pipeline:
        return self._pipeline.model_copy(deep=True)

    # -- Core ------------------------------------------------------------------

    async def apply(self, mutate: Callable[[Pipeline], T]) -> T:
        """Run ``mutate`` and persist the result before releasing the writer lock."""
        async with self._lock:
            result = mutate(self._pipeline)
            self._pipeline.updated_at = utcnow()
            await self._store.write_pipeline(self._pipeline)
            return result

    # -- Pipeline --------------------------------------------------------------

    async def transition(
        self,
        status: PipelineStatus,
        *,
        iteration: int | None = None,
        error: str | None = None,
    ) -> None:
        def mutate(p: Pipeline) -> None:
            if p.status != status:
                _check("pipeline", _PIPELINE_TRANSITIONS, p.status, status)
            p.status = status
            if iteration is not None:
                p.iteration = iteration
            if error is not None:
                p.error = error
            if status.is_terminal:
                p.completed_at = utcnow()

        await self.apply(mutate)
        logger.debug("Pipeline {} -> {}", self._pipeline.id, status)

    # -- Phases ----------------------------------------------------------------

    async def start_phase(self, phase_type: PhaseType) -> tuple[int, Phase]:
        """Append a running phase; returns its index and a copy."""

        def mutate(p: Pipeline) -> tuple[int, Phase]:
            phase = Phase(type=phase_type, status=PhaseStatus.RUNNING, started_at=utcnow())
            p.phases.append(phase)
            return len(p.phases) - 1, phase.model_copy(deep=True)

        return await self.apply(mutate)

    async def finish_phase(self, phase_index: int, status: PhaseStatus) -> None:
        def mutate(p: Pipeline) -> None:
            phase = p.phases[phase_index]
            _check("phase", _PHASE_TRANSITIONS, phase.status, status)
            phase.status = status
            phase.completed_at = utcnow()

        await self.apply(mutate)

    # -- Runs ------------------------------------------------------------------

    async def start_run(self, phase_index: int, run: AgentRun) -> AgentRun:
        """Record a run as running in the given phase."""

        def mutate(p: Pipeline) -> AgentRun:
            _check("agent run", _RUN_TRANSITIONS, run.status, AgentRunStatus.RUNNING)
            recorded = run.model_copy(update={"status": AgentRunStatus.RUNNING, "started_at": utcnow()})
            p.phases[phase_index].agents.append(recorded)
            return recorded.model_copy(deep=True)

        return await self.apply(mutate)

    async def finish_run(
        self,
        phase_index: int,
        run_id: str,
        *,
        output: str | None = None,
        usage: TokenUsage | None = None,
        error: str | None = None,
    ) -> AgentRun:
        """Settle a run: ``completed`` when ``error`` is None, else ``failed``.

        Usage counts toward the pipeline totals as soon as it is recorded,
        so observers see running totals before the pipeline ends.
        """
        status = AgentRunStatus.FAILED if error is not None else AgentRunStatus.COMPLETED

        def mutate(p: Pipeline) -> AgentRun:
            run = p.phases[phase_index].find_run(run_id)
            _check("agent run", _RUN_TRANSITIONS, run.status, status)
            run.status = status
            run.output = output
            run.error = error
            run.token_usage = usage
            run.completed_at = utcnow()
            if usage is not None:
                p.total_tokens += usage.total_tokens
                p.total_cost_usd += usage.cost_usd
            return run.model_copy(deep=True)

        return await self.apply(mutate)

"""Pipeline state machine -- the War Room run loop.

Lifecycle::

    pending -> thinking -> building -> reviewing -> (iterating -> reviewing)* -> completed
                   \\            \\           \\              \\
                    +------------+-----------+--------------+--> failed | cancelled

1. **Think**: every persona writes a brief in parallel.  Individual failures
   are tolerated; if no brief succeeds the pipeline fails.
2. **Build / Iterate** (iteration ``0..max_iterations``): one builder run.
   Iteration 0 synthesizes the briefs; later iterations fix what the previous
   review flagged.  A failed build fails the pipeline.
3. **Review**: every persona reviews in parallel.  If no completed review
   contains ``MAJOR_ISSUES``, or the iteration budget is spent, the pipeline
   completes; otherwise the completed reviews feed the next iteration.

``start`` resolves with the pipeline for every domain outcome (completed,
failed, cancelled).  Only programming errors and store failures raise.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

import anyio
from loguru import logger

from warroom.lab.cancellation import CancellationToken
from warroom.lab.execution.adapter import AgentExecutor
from warroom.lab.execution.emitter import EventCallback, EventEmitter
from warroom.lab.execution.phases import PhaseCoordinator
from warroom.lab.execution.prompts import (
    Contribution,
    build_build_prompt,
    build_iterate_prompt,
    build_review_prompt,
    build_think_prompt,
    has_major_issues,
)
from warroom.lab.execution.recorder import PipelineRecorder
from warroom.lab.execution.streaming import StreamConfig
from warroom.lab.models.enums import AgentRole, AgentRunStatus, PhaseType, PipelineStatus
from warroom.lab.models.events import PipelineCancelled, PipelineCompleted, PipelineError, PipelineStarted
from warroom.lab.models.execution import AgentConfig
from warroom.lab.models.lab import Persona, Project
from warroom.lab.models.pipeline import AgentRun, Pipeline
from warroom.lab.settings import WarRoomSettings, get_settings
from warroom.lab.store.base import LabStore

BUILDER_ID = "manager"
BUILDER_NAME = "Project Manager"
BUILDER_ICON = "👨‍💻"

ALL_BRIEFS_FAILED = "All persona briefs failed. No viable input to build phase."
DEFAULT_ROLE = "Team Member"


@dataclass
class _Run:
    """Per-execution state shared by the state machine's steps."""

    recorder: PipelineRecorder
    phases: PhaseCoordinator
    emitter: EventEmitter
    project: Project
    personas: tuple[Persona, ...]
    token: CancellationToken

    @property
    def pipeline(self) -> Pipeline:
        return self.recorder.pipeline

    def role_of(self, persona_id: str) -> str:
        for persona in self.personas:
            if persona.id == persona_id:
                return persona.role
        return DEFAULT_ROLE

    def contributions(self, runs: Sequence[AgentRun]) -> list[Contribution]:
        return [
            Contribution(persona_name=run.persona_name, persona_role=self.role_of(run.persona_id), output=run.output)
            for run in runs
            if run.status == AgentRunStatus.COMPLETED and run.output
        ]


class PipelineStateMachine:
    """Drives pipelines to a terminal state.

    One instance may run several pipelines; all per-pipeline state lives in
    the ``_Run`` built by ``start``.
    """

    def __init__(
        self,
        store: LabStore,
        executor: AgentExecutor,
        *,
        settings: WarRoomSettings | None = None,
        on_event: EventCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self._store = store
        self._executor = executor
        self._settings = settings or get_settings()
        self._on_event = on_event
        self._clock = clock
        self._sleep = sleep

    async def start(
        self,
        pipeline: Pipeline,
        project: Project,
        personas: Sequence[Persona],
        token: CancellationToken | None = None,
    ) -> Pipeline:
        """Run ``pipeline`` to completion, failure or cancellation.

        The pipeline object is mutated in place (and persisted after every
        mutation) and returned.  Personas are snapshotted so edits made
        while the pipeline runs cannot change its prompts.
        """
        if pipeline.status != PipelineStatus.PENDING:
            msg = f"Pipeline {pipeline.id} is {pipeline.status}, only pending pipelines can start"
            raise ValueError(msg)

        emitter = EventEmitter(self._on_event)
        recorder = PipelineRecorder(pipeline, self._store)
        run = _Run(
            recorder=recorder,
            phases=PhaseCoordinator(
                recorder,
                self._executor,
                emitter,
                stream_config=StreamConfig.from_settings(self._settings),
                stream_progress=self._settings.stream_progress,
                clock=self._clock,
                sleep=self._sleep,
            ),
            emitter=emitter,
            project=project.model_copy(deep=True),
            personas=tuple(p.model_copy(deep=True) for p in personas),
            token=token or CancellationToken(),
        )
        with logger.contextualize(pipeline_id=pipeline.id):
            return await self._execute(run)

    # -- Steps -----------------------------------------------------------------

    async def _execute(self, run: _Run) -> Pipeline:
        pipeline = run.pipeline
        logger.info(
            "Pipeline {} started: project={}, personas={}, max_iterations={}",
            pipeline.id,
            pipeline.project_id,
            len(run.personas),
            pipeline.max_iterations,
        )
        run.emitter.emit(PipelineStarted(pipeline_id=pipeline.id))
        if run.token.cancelled:
            return await self._cancel(run)

        # -- Think -----------------------------------------------------------------
        await run.recorder.transition(PipelineStatus.THINKING)
        think_runs = await run.phases.run_phase(PhaseType.THINK, self._think_configs(run), run.token)
        if run.token.cancelled:
            return await self._cancel(run)

        briefs = run.contributions(think_runs)
        if not briefs:
            return await self._fail(run, ALL_BRIEFS_FAILED)

        # -- Build / review loop ---------------------------------------------------
        feedback: list[Contribution] = []
        for iteration in range(pipeline.max_iterations + 1):
            first = iteration == 0
            await run.recorder.transition(
                PipelineStatus.BUILDING if first else PipelineStatus.ITERATING,
                iteration=iteration,
            )
            prompt = (
                build_build_prompt(run.project, pipeline.prompt, briefs)
                if first
                else build_iterate_prompt(run.project, pipeline.prompt, feedback, iteration)
            )
            build_runs = await run.phases.run_phase(
                PhaseType.BUILD if first else PhaseType.ITERATE,
                [self._builder_config(prompt)],
                run.token,
            )
            if run.token.cancelled:
                return await self._cancel(run)

            build = build_runs[0] if build_runs else None
            if build is None or build.status != AgentRunStatus.COMPLETED:
                error = build.error if build is not None and build.error else "no build run recorded"
                return await self._fail(run, f"Build phase failed: {error}")

            await run.recorder.transition(PipelineStatus.REVIEWING)
            review_runs = await run.phases.run_phase(PhaseType.REVIEW, self._review_configs(run), run.token)
            if run.token.cancelled:
                return await self._cancel(run)

            reviews = run.contributions(review_runs)
            if not any(has_major_issues(r.output) for r in reviews):
                logger.info("Pipeline {}: reviews passed at iteration {}", pipeline.id, iteration)
                break
            if iteration >= pipeline.max_iterations:
                logger.info("Pipeline {}: major issues remain, iteration budget exhausted", pipeline.id)
                break
            feedback = reviews
            logger.info("Pipeline {}: major issues found, starting iteration {}", pipeline.id, iteration + 1)

        return await self._complete(run)

    # -- Configs ---------------------------------------------------------------

    def _think_configs(self, run: _Run) -> list[AgentConfig]:
        return [
            _persona_config(persona, build_think_prompt(persona, run.project, run.pipeline.prompt))
            for persona in run.personas
        ]

    def _review_configs(self, run: _Run) -> list[AgentConfig]:
        return [
            _persona_config(persona, build_review_prompt(persona, run.project, run.pipeline.prompt))
            for persona in run.personas
        ]

    def _builder_config(self, prompt: str) -> AgentConfig:
        return AgentConfig(
            role=AgentRole.BUILDER,
            prompt=prompt,
            persona_id=BUILDER_ID,
            persona_name=BUILDER_NAME,
            persona_icon=BUILDER_ICON,
            model=self._settings.builder_model,
            read_only=False,
        )

    # -- Terminal outcomes -----------------------------------------------------

    async def _complete(self, run: _Run) -> Pipeline:
        pipeline = run.pipeline
        await run.recorder.transition(PipelineStatus.COMPLETED)
        run.emitter.emit(
            PipelineCompleted(
                pipeline_id=pipeline.id,
                status=PipelineStatus.COMPLETED,
                total_cost_usd=pipeline.total_cost_usd,
                total_tokens=pipeline.total_tokens,
            )
        )
        logger.info(
            "Pipeline {} completed. Cost: ${:.2f}, Tokens: {}",
            pipeline.id,
            pipeline.total_cost_usd,
            pipeline.total_tokens,
        )
        return pipeline

    async def _fail(self, run: _Run, error: str) -> Pipeline:
        pipeline = run.pipeline
        await run.recorder.transition(PipelineStatus.FAILED, error=error)
        run.emitter.emit(PipelineError(pipeline_id=pipeline.id, error=error))
        logger.warning("Pipeline {} failed: {}", pipeline.id, error)
        return pipeline

    async def _cancel(self, run: _Run) -> Pipeline:
        pipeline = run.pipeline
        reason = run.token.reason or "Pipeline was stopped by user"
        await run.recorder.transition(PipelineStatus.CANCELLED, error=reason)
        run.emitter.emit(PipelineCancelled(pipeline_id=pipeline.id, error=reason))
        logger.info("Pipeline {} cancelled: {}", pipeline.id, reason)
        return pipeline


def _persona_config(persona: Persona, prompt: str) -> AgentConfig:
    return AgentConfig(
        role=AgentRole.PERSONA,
        prompt=prompt,
        persona_id=persona.id,
        persona_name=persona.name,
        persona_icon=persona.icon,
        model=persona.model,
        read_only=True,
    )


async def run_pipeline(
    *,
    store: LabStore,
    executor: AgentExecutor,
    project: Project,
    personas: Sequence[Persona],
    pipeline: Pipeline,
    on_event: EventCallback | None = None,
    cancel_token: CancellationToken | None = None,
    settings: WarRoomSettings | None = None,
) -> Pipeline:
    """Run one War Room pipeline.  The single entry point for callers.

    Parameters
    ----------
    store:
        Where the pipeline record is persisted after every mutation.
    executor:
        Creates one agent execution per run.
    project, personas:
        Frozen inputs for the whole run.
    pipeline:
        A ``pending`` pipeline (see ``managers.pipelines.create_pipeline``).
    on_event:
        Synchronous, non-blocking observer.  Use ``BufferedEventSink`` to
        consume events asynchronously.
    cancel_token:
        Fire ``cancel_token.cancel()`` from anywhere to stop the pipeline.

    Returns
    -------
    Pipeline
        The same object, in a terminal status.
    """
    machine = PipelineStateMachine(store, executor, settings=settings, on_event=on_event)
    return await machine.start(pipeline, project, personas, cancel_token)

"""Phase coordinator -- runs one phase's agent runs to a terminal state.

A phase is either *parallel* (think, review: one run per persona, all at
once) or *single* (build, iterate: runs one after another, normally just
the builder).  Each run is isolated: an executor exception becomes a failed
``AgentRun`` and never touches its siblings.  Store errors are not caught
here; they are collaborator contract violations and propagate.

Cancellation is checked before the phase starts (nothing is appended) and
before each run starts (the run is never recorded).  Runs already in flight
are aborted through the token's registry and then allowed to settle into
whatever terminal state they reach.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

import anyio
from loguru import logger

from warroom.lab.execution.streaming import ProgressSnapshot, StreamAggregator, StreamConfig
from warroom.lab.models.enums import AgentRunStatus, ExecutionErrorCode, PhaseStatus, PhaseType
from warroom.lab.models.events import (
    AgentCompleted,
    AgentFailed,
    AgentProgress,
    AgentStarted,
    EventUsage,
    PhaseCompleted,
    PhaseStarted,
)
from warroom.lab.models.execution import AgentConfig, ExecutionResult, ExecutionUsage
from warroom.lab.models.pipeline import AgentRun, TokenUsage

if TYPE_CHECKING:
    from warroom.lab.cancellation import CancellationToken
    from warroom.lab.execution.adapter import AgentExecution, AgentExecutor
    from warroom.lab.execution.emitter import EventEmitter
    from warroom.lab.execution.recorder import PipelineRecorder

CANCELLED_RUN_ERROR = "Cancelled by user"
NO_OUTPUT_ERROR = "Agent returned no output"


def to_token_usage(usage: ExecutionUsage | None) -> TokenUsage | None:
    if usage is None:
        return None
    return TokenUsage(
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        total_tokens=usage.input_tokens + usage.output_tokens,
        cost_usd=usage.cost_usd,
    )


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class PhaseCoordinator:
    """Executes phases for one pipeline, recording through its ``PipelineRecorder``."""

    def __init__(
        self,
        recorder: PipelineRecorder,
        executor: AgentExecutor,
        emitter: EventEmitter,
        *,
        stream_config: StreamConfig | None = None,
        stream_progress: bool = True,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self._recorder = recorder
        self._executor = executor
        self._emitter = emitter
        self._stream_config = stream_config or StreamConfig()
        self._stream_progress = stream_progress
        self._clock = clock
        self._sleep = sleep

    @property
    def pipeline_id(self) -> str:
        return self._recorder.pipeline.id

    # -- Phase -----------------------------------------------------------------

    async def run_phase(
        self,
        phase_type: PhaseType,
        configs: Sequence[AgentConfig],
        token: CancellationToken,
    ) -> list[AgentRun]:
        """Run every config under the phase type's concurrency mode.

        Returns the recorded runs in config order (runs skipped because of
        cancellation are absent).  Returns ``[]`` without appending a phase if
        cancellation already fired.
        """
        if token.cancelled:
            logger.info("Pipeline {}: cancelled before {} phase, not starting it", self.pipeline_id, phase_type)
            return []

        phase_index, phase = await self._recorder.start_phase(phase_type)
        self._emitter.emit(
            PhaseStarted(
                pipeline_id=self.pipeline_id,
                phase_id=phase.id,
                phase_type=phase_type.value,
                phase_index=phase_index,
            )
        )
        logger.info(
            "Pipeline {}: phase {} ({}) started with {} run(s)",
            self.pipeline_id,
            phase_index,
            phase_type,
            len(configs),
        )

        slots: list[AgentRun | None] = [None] * len(configs)

        async def run_slot(slot: int, config: AgentConfig) -> None:
            slots[slot] = await self._run_agent(phase_index, config, token)

        if phase_type.is_parallel:
            async with anyio.create_task_group() as tg:
                for slot, config in enumerate(configs):
                    tg.start_soon(run_slot, slot, config)
        else:
            for slot, config in enumerate(configs):
                await run_slot(slot, config)

        runs = [run for run in slots if run is not None]
        status = _phase_status(phase_type, runs, expected=len(configs), cancelled=token.cancelled)
        await self._recorder.finish_phase(phase_index, status)

        if status == PhaseStatus.COMPLETED:
            self._emitter.emit(
                PhaseCompleted(pipeline_id=self.pipeline_id, phase_index=phase_index, phase_type=phase_type.value)
            )
        logger.info("Pipeline {}: phase {} ({}) {}", self.pipeline_id, phase_index, phase_type, status)
        return runs

    # -- Run -------------------------------------------------------------------

    async def _run_agent(self, phase_index: int, config: AgentConfig, token: CancellationToken) -> AgentRun | None:
        if token.cancelled:
            logger.debug("Pipeline {}: cancelled, not starting run for {}", self.pipeline_id, config.persona_id)
            return None

        run = await self._recorder.start_run(
            phase_index,
            AgentRun(
                persona_id=config.persona_id,
                persona_name=config.persona_name,
                persona_icon=config.persona_icon,
            ),
        )
        self._emitter.emit(
            AgentStarted(
                pipeline_id=self.pipeline_id,
                phase_index=phase_index,
                agent_run_id=run.id,
                persona_id=config.persona_id,
                persona_name=config.persona_name,
                persona_icon=config.persona_icon,
            )
        )

        result = await self._execute(phase_index, run, config, token)

        if result.success and result.response:
            usage = to_token_usage(result.usage)
            settled = await self._recorder.finish_run(phase_index, run.id, output=result.response, usage=usage)
            self._emitter.emit(
                AgentCompleted(
                    pipeline_id=self.pipeline_id,
                    phase_index=phase_index,
                    agent_run_id=run.id,
                    persona_id=config.persona_id,
                    output=result.response,
                    token_usage=EventUsage.from_usage(usage),
                )
            )
            logger.debug("Pipeline {}: run {} ({}) completed", self.pipeline_id, run.id, config.persona_id)
            return settled

        error = result.error.message if result.error is not None else NO_OUTPUT_ERROR
        settled = await self._recorder.finish_run(phase_index, run.id, error=error)
        self._emitter.emit(
            AgentFailed(
                pipeline_id=self.pipeline_id,
                phase_index=phase_index,
                agent_run_id=run.id,
                persona_id=config.persona_id,
                error=error,
            )
        )
        logger.warning("Pipeline {}: run {} ({}) failed: {}", self.pipeline_id, run.id, config.persona_id, error)
        return settled

    async def _execute(
        self,
        phase_index: int,
        run: AgentRun,
        config: AgentConfig,
        token: CancellationToken,
    ) -> ExecutionResult:
        """Run one execution; executor failures come back as a failed result.

        A run that ends unsuccessfully after cancellation fired reports
        ``cancelled`` whatever the executor said.
        """
        result = await self._attempt(phase_index, run, config, token)
        if token.cancelled and not (result.success and result.response):
            return ExecutionResult.failure(CANCELLED_RUN_ERROR, ExecutionErrorCode.CANCELLED)
        return result

    async def _attempt(
        self,
        phase_index: int,
        run: AgentRun,
        config: AgentConfig,
        token: CancellationToken,
    ) -> ExecutionResult:
        try:
            execution = self._executor.create(config)
        except Exception as exc:
            logger.exception("Pipeline {}: executor could not start run {}", self.pipeline_id, run.id)
            return ExecutionResult.failure(_describe(exc))

        token.register(execution)
        try:
            if self._stream_progress:
                return await self._stream(execution, phase_index, run, config)
            return await execution.run()
        except Exception as exc:
            logger.exception("Pipeline {}: run {} raised", self.pipeline_id, run.id)
            return ExecutionResult.failure(_describe(exc))
        finally:
            token.unregister(execution)

    async def _stream(
        self,
        execution: AgentExecution,
        phase_index: int,
        run: AgentRun,
        config: AgentConfig,
    ) -> ExecutionResult:
        def on_progress(snapshot: ProgressSnapshot) -> None:
            self._emitter.emit(
                AgentProgress(
                    pipeline_id=self.pipeline_id,
                    phase_index=phase_index,
                    agent_run_id=run.id,
                    persona_id=config.persona_id,
                    text=snapshot.text,
                    active_tool=snapshot.active_tool,
                    tool_call_count=snapshot.tool_call_count,
                )
            )

        aggregator = StreamAggregator(
            execution,
            on_progress,
            config=self._stream_config,
            clock=self._clock,
            sleep=self._sleep,
            label=f"{config.persona_id}/{run.id[:8]}",
        )
        return await aggregator.run()


def _phase_status(
    phase_type: PhaseType,
    runs: Sequence[AgentRun],
    *,
    expected: int,
    cancelled: bool,
) -> PhaseStatus:
    """Terminal status for a phase whose runs have all settled.

    Parallel phases complete once every run settles, whatever the outcome;
    the caller decides what zero successes means.  Single phases mirror
    their runs.  A phase cut short by cancellation is failed.
    """
    any_failed = any(run.status == AgentRunStatus.FAILED for run in runs)
    if cancelled and (len(runs) < expected or any_failed):
        return PhaseStatus.FAILED
    if phase_type.is_parallel:
        return PhaseStatus.COMPLETED
    return PhaseStatus.FAILED if any_failed or not runs else PhaseStatus.COMPLETED

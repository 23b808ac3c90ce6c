"""Unit tests for PipelineRecorder."""

from __future__ import annotations

import anyio
import pytest

from warroom.lab.execution.recorder import InvalidTransitionError, PipelineRecorder
from warroom.lab.models import (
    AgentRun,
    AgentRunStatus,
    PhaseStatus,
    PhaseType,
    Pipeline,
    PipelineStatus,
    TokenUsage,
)


def _run(persona_id: str) -> AgentRun:
    return AgentRun(persona_id=persona_id, persona_name=persona_id.title(), persona_icon="🧪")


@pytest.fixture
def recorder(store) -> PipelineRecorder:
    return PipelineRecorder(Pipeline(project_id="todo-app", prompt="Add due dates"), store)


@pytest.mark.anyio
async def test_every_mutation_is_persisted(recorder: PipelineRecorder, store) -> None:
    pipeline = recorder.pipeline

    await recorder.transition(PipelineStatus.THINKING)
    assert (await store.read_pipeline("todo-app", pipeline.id)).status == PipelineStatus.THINKING

    index, phase = await recorder.start_phase(PhaseType.THINK)
    stored = await store.read_pipeline("todo-app", pipeline.id)
    assert index == 0
    assert stored.phases[0].id == phase.id
    assert stored.phases[0].status == PhaseStatus.RUNNING
    assert stored == recorder.pipeline


@pytest.mark.anyio
async def test_illegal_pipeline_transition_raises(recorder: PipelineRecorder) -> None:
    with pytest.raises(InvalidTransitionError):
        await recorder.transition(PipelineStatus.COMPLETED)

    await recorder.transition(PipelineStatus.CANCELLED, error="stopped")
    with pytest.raises(InvalidTransitionError):
        await recorder.transition(PipelineStatus.THINKING)


@pytest.mark.anyio
async def test_terminal_transition_sets_completed_at(recorder: PipelineRecorder) -> None:
    await recorder.transition(PipelineStatus.THINKING)
    assert recorder.pipeline.completed_at is None

    await recorder.transition(PipelineStatus.FAILED, error="boom")
    assert recorder.pipeline.completed_at is not None
    assert recorder.pipeline.error == "boom"


@pytest.mark.anyio
async def test_same_status_with_new_iteration_is_allowed(recorder: PipelineRecorder) -> None:
    await recorder.transition(PipelineStatus.THINKING)
    await recorder.transition(PipelineStatus.BUILDING, iteration=0)
    await recorder.transition(PipelineStatus.REVIEWING)
    await recorder.transition(PipelineStatus.ITERATING, iteration=1)
    await recorder.transition(PipelineStatus.ITERATING, iteration=1)
    assert recorder.pipeline.iteration == 1


@pytest.mark.anyio
async def test_phase_cannot_go_backwards(recorder: PipelineRecorder) -> None:
    index, _ = await recorder.start_phase(PhaseType.BUILD)
    await recorder.finish_phase(index, PhaseStatus.COMPLETED)

    with pytest.raises(InvalidTransitionError):
        await recorder.finish_phase(index, PhaseStatus.FAILED)


@pytest.mark.anyio
async def test_runs_settle_once_and_accumulate_totals(recorder: PipelineRecorder) -> None:
    index, _ = await recorder.start_phase(PhaseType.THINK)
    ada = await recorder.start_run(index, _run("ada"))
    ken = await recorder.start_run(index, _run("ken"))
    assert ada.status == AgentRunStatus.RUNNING
    assert ada.started_at is not None

    usage = TokenUsage(input_tokens=10, output_tokens=5, total_tokens=15, cost_usd=0.25)
    done = await recorder.finish_run(index, ada.id, output="brief", usage=usage)
    failed = await recorder.finish_run(index, ken.id, error="crashed")

    assert done.status == AgentRunStatus.COMPLETED
    assert failed.status == AgentRunStatus.FAILED
    assert failed.error == "crashed"
    assert recorder.pipeline.total_tokens == 15
    assert recorder.pipeline.total_cost_usd == pytest.approx(0.25)

    with pytest.raises(InvalidTransitionError):
        await recorder.finish_run(index, ada.id, error="late")


@pytest.mark.anyio
async def test_concurrent_finishes_are_not_lost(recorder: PipelineRecorder, store) -> None:
    index, _ = await recorder.start_phase(PhaseType.REVIEW)
    runs = [await recorder.start_run(index, _run(f"p{i}")) for i in range(8)]
    usage = TokenUsage(input_tokens=1, output_tokens=1, total_tokens=2, cost_usd=0.01)

    async with anyio.create_task_group() as tg:
        for run in runs:
            tg.start_soon(lambda r=run: recorder.finish_run(index, r.id, output="ok", usage=usage))

    stored = await store.read_pipeline("todo-app", recorder.pipeline.id)
    assert all(r.status == AgentRunStatus.COMPLETED for r in stored.phases[index].agents)
    assert stored.total_tokens == 16
    assert stored == recorder.pipeline


@pytest.mark.anyio
async def test_snapshot_is_detached(recorder: PipelineRecorder) -> None:
    snapshot = recorder.snapshot()
    await recorder.transition(PipelineStatus.THINKING)
    assert snapshot.status == PipelineStatus.PENDING

"""Unit tests for event emission and the buffered sink."""

from __future__ import annotations

import anyio
import pytest

from warroom.lab.execution.emitter import BufferedEventSink, EventEmitter
from warroom.lab.models import AgentProgress, PipelineCompleted, PipelineStarted, PipelineStatus


def _progress(i: int) -> AgentProgress:
    return AgentProgress(pipeline_id="p", phase_index=0, agent_run_id="r", persona_id="a", text=f"t{i}")


def test_emitter_calls_callback() -> None:
    seen = []
    emitter = EventEmitter(seen.append)
    emitter.emit(PipelineStarted(pipeline_id="p"))

    assert [e.type for e in seen] == ["pipeline_started"]
    assert emitter.emitted == 1


def test_emitter_contains_callback_errors() -> None:
    def broken(event) -> None:
        raise ValueError("observer bug")

    emitter = EventEmitter(broken)
    emitter.emit(PipelineStarted(pipeline_id="p"))
    emitter.emit(PipelineStarted(pipeline_id="p"))

    assert emitter.emitted == 2


def test_emitter_without_callback() -> None:
    emitter = EventEmitter()
    emitter.emit(PipelineStarted(pipeline_id="p"))
    assert emitter.emitted == 1


@pytest.mark.anyio
async def test_sink_delivers_in_order_and_ends_on_close() -> None:
    sink = BufferedEventSink(max_buffer=10)
    sink(PipelineStarted(pipeline_id="p"))
    sink(_progress(1))
    sink(PipelineCompleted(pipeline_id="p", status=PipelineStatus.COMPLETED))
    sink.close()

    received = [event async for event in sink]
    assert [e.type for e in received] == ["pipeline_started", "agent_progress", "pipeline_completed"]


@pytest.mark.anyio
async def test_sink_drops_instead_of_blocking() -> None:
    sink = BufferedEventSink(max_buffer=2)
    for i in range(5):
        sink(_progress(i))
    sink.close()

    received = [event async for event in sink]
    assert [e.text for e in received] == ["t0", "t1"]
    assert sink.dropped == 3


@pytest.mark.anyio
async def test_sink_after_close_drops() -> None:
    sink = BufferedEventSink()
    sink.close()
    sink(PipelineStarted(pipeline_id="p"))
    assert sink.dropped == 1


@pytest.mark.anyio
async def test_sink_feeds_concurrent_consumer() -> None:
    sink = BufferedEventSink(max_buffer=1)
    received = []

    async def consume() -> None:
        async for event in sink:
            received.append(event.text)

    async with anyio.create_task_group() as tg:
        tg.start_soon(consume)
        for i in range(3):
            sink(_progress(i))
            await anyio.sleep(0.01)
        sink.close()

    assert received == ["t0", "t1", "t2"]

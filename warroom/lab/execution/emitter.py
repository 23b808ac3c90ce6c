"""Event delivery to observers.

The state machine must never wait on an observer.  ``EventEmitter`` calls a
synchronous callback inline and contains its failures; observers that need
to consume events asynchronously (SSE handlers, the CLI) pass a
``BufferedEventSink`` as the callback, which queues into a bounded memory
stream and drops events instead of blocking when the consumer falls behind.
"""

from __future__ import annotations

import math
from collections.abc import AsyncIterator, Callable

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from loguru import logger

from warroom.lab.models.events import AgentProgress, PipelineEvent

EventCallback = Callable[[PipelineEvent], None]


class EventEmitter:
    """Non-blocking fan-out of pipeline events to an optional callback."""

    def __init__(self, callback: EventCallback | None = None) -> None:
        self._callback = callback
        self._emitted = 0

    @property
    def emitted(self) -> int:
        return self._emitted

    def emit(self, event: PipelineEvent) -> None:
        self._emitted += 1
        if self._callback is None:
            return
        try:
            self._callback(event)
        except Exception:
            # An observer bug must not change the pipeline outcome.
            logger.exception("Event callback raised on {} for pipeline {}", event.type, event.pipeline_id)


class BufferedEventSink:
    """Bounded, lossy event queue usable as an ``on_event`` callback.

    Iterate it (``async for event in sink``) to consume; ``close`` ends the
    iteration once the buffer drains.  When the buffer is full, progress
    events are dropped quietly and lifecycle events are dropped with a
    warning.
    """

    def __init__(self, max_buffer: int = 256) -> None:
        size = math.inf if max_buffer <= 0 else max_buffer
        send, receive = anyio.create_memory_object_stream(size)
        self._send: MemoryObjectSendStream[PipelineEvent] = send
        self._receive: MemoryObjectReceiveStream[PipelineEvent] = receive
        self._dropped = 0

    @property
    def dropped(self) -> int:
        return self._dropped

    def __call__(self, event: PipelineEvent) -> None:
        try:
            self._send.send_nowait(event)
        except anyio.WouldBlock:
            self._dropped += 1
            if isinstance(event, AgentProgress):
                logger.debug("Event sink full, dropping progress for run {}", event.agent_run_id)
            else:
                logger.warning("Event sink full, dropping {} for pipeline {}", event.type, event.pipeline_id)
        except anyio.ClosedResourceError:
            self._dropped += 1
            logger.debug("Event sink closed, dropping {}", event.type)

    def close(self) -> None:
        self._send.close()

    async def __aiter__(self) -> AsyncIterator[PipelineEvent]:
        async with self._receive:
            async for event in self._receive:
                yield event

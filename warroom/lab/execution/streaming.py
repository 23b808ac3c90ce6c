"""Streaming aggregator -- per-run progress projection and watchdog.

Consumes the raw event stream of one agent execution and turns it into
bounded, throttled progress snapshots for observers:

- The progress log is capped at ``max_log_length`` characters.  When it
  overflows, the oldest text is dropped at a paragraph boundary.
- Snapshots are throttled to one per ``throttle`` seconds, except for
  significant events (status, tool start/end, errors, completion, watchdog
  ticks), which are emitted immediately.
- A watchdog ticks every ``watchdog_interval`` seconds.  Until the first
  content arrives it rewrites the log as a "starting" message with the
  elapsed time.  After ``silence_timeout`` seconds without any event it
  aborts the execution: prolonged silence is treated as a stuck subprocess.

The aggregator returns the execution's final result.  A stream that ends
without a ``complete`` event yields a synthesized failure whose code tells
a watchdog abort (``unresponsive``) apart from a plain early end
(``stream_ended``).
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import anyio
from loguru import logger

from warroom.lab.execution.tools import DEFAULT_COMMAND_BUDGET, format_tool_entry
from warroom.lab.models.enums import ExecutionErrorCode
from warroom.lab.models.execution import (
    CompleteEvent,
    ErrorEvent,
    ExecutionResult,
    ExecutorEvent,
    StatusEvent,
    TextDeltaEvent,
    ToolResultEvent,
    ToolStartEvent,
)

if TYPE_CHECKING:
    from anyio import CancelScope

    from warroom.lab.execution.adapter import AgentExecution
    from warroom.lab.settings import WarRoomSettings

UNRESPONSIVE_MESSAGE = "Agent was unresponsive and was aborted"
STREAM_ENDED_MESSAGE = "No completion event received"

# ---------------------------------------------------------------------------
# Config and snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StreamConfig:
    throttle: float = 0.2
    max_log_length: int = 4000
    watchdog_interval: float = 3.0
    silence_timeout: float = 120.0
    command_budget: int = DEFAULT_COMMAND_BUDGET

    @classmethod
    def from_settings(cls, settings: WarRoomSettings) -> StreamConfig:
        return cls(
            throttle=settings.progress_throttle_ms / 1000,
            max_log_length=settings.max_log_length,
            watchdog_interval=settings.watchdog_interval,
            silence_timeout=settings.silence_timeout,
            command_budget=settings.command_preview_chars,
        )


@dataclass(frozen=True)
class ProgressSnapshot:
    text: str
    active_tool: str | None = None
    tool_call_count: int = 0


ProgressCallback = Callable[[ProgressSnapshot], None]


def trim_log(log: str, limit: int) -> str:
    """Drop the oldest text so that ``len(result) <= limit``.

    Cuts at the first paragraph break past the overflow; falls back to a line
    break, then a word break, and only then to the raw offset.
    """
    if len(log) <= limit:
        return log
    excess = len(log) - limit
    for sep in ("\n\n", "\n", " "):
        cut = log.find(sep, excess)
        if cut != -1:
            return log[cut + len(sep) :]
    return log[excess:]


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class StreamAggregator:
    """Drive one execution's progress stream to a final result.

    ``clock`` and ``sleep`` are injectable so the watchdog can run against
    simulated time in tests.
    """

    def __init__(
        self,
        execution: AgentExecution,
        on_progress: ProgressCallback,
        *,
        config: StreamConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
        label: str = "agent",
    ) -> None:
        self._execution = execution
        self._on_progress = on_progress
        self._config = config or StreamConfig()
        self._clock = clock
        self._sleep = sleep
        self._label = label

        self._log = ""
        self._active_tool: str | None = None
        self._tool_calls = 0
        self._has_content = False
        self._aborted = False
        self._started = 0.0
        self._last_event = 0.0
        self._last_emit = float("-inf")

    # -- Read-only state -------------------------------------------------------

    @property
    def log(self) -> str:
        return self._log

    @property
    def tool_call_count(self) -> int:
        return self._tool_calls

    @property
    def aborted(self) -> bool:
        """True once the watchdog has aborted the execution."""
        return self._aborted

    # -- Run -------------------------------------------------------------------

    async def run(self) -> ExecutionResult:
        self._started = self._last_event = self._clock()
        logger.debug("Streaming {}: started", self._label)

        result: ExecutionResult | None = None
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._watchdog, tg.cancel_scope)
            result = await self._consume()
            tg.cancel_scope.cancel()

        if result is not None:
            return result
        if self._aborted:
            return ExecutionResult.failure(UNRESPONSIVE_MESSAGE, ExecutionErrorCode.UNRESPONSIVE)
        logger.warning("Streaming {}: stream ended without a completion event", self._label)
        return ExecutionResult.failure(STREAM_ENDED_MESSAGE, ExecutionErrorCode.STREAM_ENDED)

    async def _consume(self) -> ExecutionResult | None:
        stream: AsyncIterator[ExecutorEvent] | None = None
        try:
            stream = self._execution.stream()
            async for event in stream:
                self._last_event = self._clock()
                result = self._handle(event)
                if result is not None:
                    return result
        except Exception as exc:
            logger.opt(exception=exc).warning("Streaming {}: stream raised", self._label)
            return ExecutionResult.failure(str(exc) or type(exc).__name__)
        finally:
            if stream is not None:
                await _aclose(stream)
        return None

    async def _watchdog(self, scope: CancelScope) -> None:
        while True:
            await self._sleep(self._config.watchdog_interval)
            now = self._clock()
            silent = now - self._last_event

            if silent >= self._config.silence_timeout:
                self._aborted = True
                logger.warning("Streaming {}: unresponsive for {:.0f}s, aborting", self._label, silent)
                self._append("\n\n**Agent unresponsive — aborting...**\n")
                self._emit(force=True)
                self._execution.abort()
                scope.cancel()
                return

            if not self._has_content:
                self._log = f"*Starting agent... ({round(now - self._started)}s elapsed)*"
            # Heartbeat keeps elapsed-time displays moving even without new text.
            self._emit(force=True)

    # -- Event handling --------------------------------------------------------

    def _handle(self, event: ExecutorEvent) -> ExecutionResult | None:
        if isinstance(event, StatusEvent):
            if self._has_content:
                self._append(f"\n\n*{event.message}*")
            else:
                self._log = f"*{event.message}*"
            self._emit(force=True)

        elif isinstance(event, TextDeltaEvent):
            self._begin_content()
            self._append(event.text)
            self._emit()

        elif isinstance(event, ToolStartEvent):
            self._begin_content()
            self._active_tool = event.name
            entry = format_tool_entry(event.name, event.input, command_budget=self._config.command_budget)
            self._append(f"\n\n{entry}\n\n")
            self._emit(force=True)

        elif isinstance(event, ToolResultEvent):
            self._active_tool = None
            self._tool_calls += 1
            self._emit(force=True)

        elif isinstance(event, ErrorEvent):
            logger.warning("Streaming {}: agent error: {}", self._label, event.message)
            self._append(f"\n\n**Error:** {event.message}\n\n")
            self._emit(force=True)

        elif isinstance(event, CompleteEvent):
            if self._log or self._tool_calls:
                self._emit(force=True)
            logger.debug(
                "Streaming {}: completed ({} tool calls, {:.0f}s)",
                self._label,
                self._tool_calls,
                self._clock() - self._started,
            )
            return event.result

        return None

    def _begin_content(self) -> None:
        if not self._has_content:
            # First real content replaces the "starting" status line.
            self._log = ""
            self._has_content = True

    def _append(self, text: str) -> None:
        self._log = trim_log(self._log + text, self._config.max_log_length)

    def _emit(self, *, force: bool = False) -> None:
        now = self._clock()
        if not force and now - self._last_emit < self._config.throttle:
            return
        self._last_emit = now
        self._on_progress(
            ProgressSnapshot(text=self._log, active_tool=self._active_tool, tool_call_count=self._tool_calls)
        )


async def _aclose(stream: AsyncIterator[ExecutorEvent]) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is None:
        return
    with anyio.CancelScope(shield=True):
        await aclose()

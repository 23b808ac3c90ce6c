"""Pipeline-wide cancellation.

A ``CancellationToken`` is a single signal shared by every phase and run of
one pipeline, plus a registry of the executions currently in flight.  Code
polls ``cancelled`` before starting new work; ``cancel`` actively aborts
whatever is registered.  Ephemeral -- nothing here is persisted.
"""

from __future__ import annotations

from typing import Protocol

import anyio
from loguru import logger


class Abortable(Protocol):
    def abort(self) -> None: ...


class CancellationToken:
    """One-shot cancellation signal with an abort registry.

    ``cancel`` is idempotent: the second and later calls are no-ops.
    Handles registered after cancellation are aborted immediately, so a run
    that raced the signal cannot slip through.
    """

    def __init__(self) -> None:
        self._handles: set[Abortable] = set()
        self._cancelled = False
        self._event: anyio.Event | None = None
        self._reason: str | None = None

    # -- Query -----------------------------------------------------------------

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def active_count(self) -> int:
        return len(self._handles)

    # -- Registry --------------------------------------------------------------

    def register(self, handle: Abortable) -> None:
        if self.cancelled:
            logger.debug("Cancellation: handle registered after cancel, aborting it")
            handle.abort()
            return
        self._handles.add(handle)

    def unregister(self, handle: Abortable) -> None:
        self._handles.discard(handle)

    # -- Control ---------------------------------------------------------------

    def cancel(self, reason: str = "Pipeline was stopped by user") -> int:
        """Fire the signal and abort every registered handle.

        Returns the number of handles aborted (0 on repeat calls).
        """
        if self.cancelled:
            return 0
        self._reason = reason
        self._cancelled = True
        if self._event is not None:
            self._event.set()

        handles = list(self._handles)
        self._handles.clear()
        for handle in handles:
            try:
                handle.abort()
            except Exception:
                logger.exception("Cancellation: abort raised, continuing with remaining handles")
        logger.info("Cancellation: signal fired, aborted {} active runs", len(handles))
        return len(handles)

    async def wait(self) -> None:
        if self._cancelled:
            return
        # Created lazily so the token itself can be built outside an event loop.
        if self._event is None:
            self._event = anyio.Event()
        await self._event.wait()

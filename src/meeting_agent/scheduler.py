"""Decides when accumulated transcript segments become a model turn."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Literal

from .types import Segment

LOG = logging.getLogger("meeting_agent.scheduler")

SchedulePolicy = Literal["debounce", "immediate"]
BatchHandler = Callable[[list[Segment]], Awaitable[None]]


class TurnScheduler:
    """Collects new segments and hands them to *handler* in batches.

    ``debounce`` waits until no segment has arrived for *delay* seconds,
    restarting the timer on every arrival. ``immediate`` flushes on every
    arrival. Flushed batches are queued and handled one at a time by a
    single worker, so a batch flushed while a cycle runs waits for it.
    """

    def __init__(
        self,
        handler: BatchHandler,
        *,
        policy: SchedulePolicy = "debounce",
        delay: float = 1.0,
    ) -> None:
        if policy not in ("debounce", "immediate"):
            raise ValueError(f"Unknown schedule policy: {policy!r}")
        self.handler = handler
        self.policy = policy
        self.delay = delay
        self.flush_count = 0
        self._buffer: list[Segment] = []
        self._timer: asyncio.TimerHandle | None = None
        self._queue: asyncio.Queue[list[Segment]] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    @property
    def buffered(self) -> list[Segment]:
        return list(self._buffer)

    def start(self) -> None:
        if self._worker is None and not self._closed:
            self._worker = asyncio.create_task(self._run(), name="turn-scheduler")

    def submit(self, segments: list[Segment]) -> None:
        if self._closed or not segments:
            return
        self._buffer.extend(segments)
        if self.policy == "immediate":
            self.flush()
            return
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self.flush()

    def flush(self) -> None:
        """Queue everything buffered so far as one batch."""
        if self._closed or not self._buffer:
            return
        batch, self._buffer = self._buffer, []
        self.flush_count += 1
        self._queue.put_nowait(batch)

    async def join(self) -> None:
        """Wait until every queued batch has been handled."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            batch = await self._queue.get()
            try:
                await self.handler(batch)
            except Exception:
                LOG.exception("Error handling transcript batch")
            finally:
                self._queue.task_done()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def close(self) -> None:
        """Cancel the pending timer and the worker, dropping queued batches."""
        self._closed = True
        self._cancel_timer()
        self._buffer.clear()
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker

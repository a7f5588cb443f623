"""Background jobs whose results come back into the loop as callbacks.

A job is any awaitable.  When it finishes, its result is converted into
at most one callback which is pushed onto a bounded channel; the
compositor merges that channel into its event sources and applies the
callback after an otherwise empty dispatch cycle.  Jobs must only capture
owned data and ids, never components or state, because all mutation has
to happen inside the callback.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stratum.context import Callback

__all__ = ["JobResult", "Jobs", "JobsClosedError"]

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 12


class JobsClosedError(RuntimeError):
    """Raised when spawning a job after the run loop has shut down."""


@dataclass(frozen=True, slots=True)
class JobResult:
    """A finished job's callback, waiting to be applied by the loop."""

    callback: Callback


def _into_callback(result: Any) -> Callback | None:
    """Convert a job's return value into an optional callback."""
    if result is None:
        return None
    if callable(result):
        return result
    raise TypeError(
        f"job returned {type(result).__name__!r}; expected None or a callable"
    )


class Jobs:
    """Spawns jobs and collects their callbacks on a bounded channel.

    Jobs spawned before :meth:`start` are held and scheduled once the loop
    is running.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("job channel capacity must be at least 1")
        self.capacity = capacity
        self._queue: asyncio.Queue[JobResult] | None = None
        self._tasks: set[asyncio.Future[None]] = set()
        self._held: list[Awaitable[Any]] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._queue is not None and not self._closed

    @property
    def in_flight(self) -> int:
        """Number of jobs scheduled but not yet finished."""
        return len(self._tasks) + len(self._held)

    def start(self) -> None:
        """Open the result channel; must be called from the running loop."""
        self._queue = asyncio.Queue(maxsize=self.capacity)
        self._closed = False
        held, self._held = self._held, []
        for job in held:
            self._schedule(job)

    async def close(self) -> None:
        """Stop accepting jobs, cancel in-flight ones and wait for them."""
        self._closed = True
        for job in self._held:
            if inspect.iscoroutine(job):
                job.close()
        self._held.clear()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug("jobs closed, %d in-flight job(s) abandoned", len(tasks))

    # ------------------------------------------------------------------
    # Spawning
    # ------------------------------------------------------------------

    def spawn(self, job: Awaitable[Any]) -> None:
        """Run *job* concurrently with the loop.

        The awaitable may return ``None`` (nothing to apply) or a callable
        taking the compositor, which is applied by the loop once delivered.
        """
        if self._closed:
            if inspect.iscoroutine(job):
                job.close()
            raise JobsClosedError("the run loop has shut down")
        if self._queue is None:
            self._held.append(job)
            return
        self._schedule(job)

    def spawn_blocking(self, func: Callable[..., Any], *args: Any) -> None:
        """Run a blocking *func* on the default thread pool as a job."""

        async def _in_executor() -> Any:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, functools.partial(func, *args))

        self.spawn(_in_executor())

    def _schedule(self, job: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(self._deliver(job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, job: Awaitable[Any]) -> None:
        try:
            callback = _into_callback(await job)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("job %r failed", job)
            return

        if callback is None:
            return
        if self._closed or self._queue is None:
            logger.debug("dropping job result after shutdown: %r", callback)
            return
        await self._queue.put(JobResult(callback))

    # ------------------------------------------------------------------
    # Receiving
    # ------------------------------------------------------------------

    async def results(self) -> AsyncIterator[JobResult]:
        """Yield delivered results in the order they were delivered."""
        if self._queue is None:
            raise RuntimeError("Jobs.start() has not been called")
        queue = self._queue
        while True:
            yield await queue.get()

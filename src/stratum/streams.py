"""Event sources and the primitive that merges them into one stream.

Every source is an async iterable.  :class:`EventMerger` runs one pump
task per source that feeds a shared queue with capacity one, so items
come out in arrival order and a busy source waits its turn behind the
others instead of starving them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable
from typing import Any

from stratum.events import Event

__all__ = ["EventMerger", "from_queue", "on_shutdown", "once", "ticks"]

logger = logging.getLogger(__name__)


class _SourceDone:
    __slots__ = ()


class _SourceFailed:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


_DONE = _SourceDone()


class EventMerger[T]:
    """Merges async iterables into a single async iterator.

    Sources may be added before or during iteration.  Iteration ends once
    every added source is exhausted; an exception raised by a source is
    re-raised to the consumer.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[T | _SourceDone | _SourceFailed] = asyncio.Queue(maxsize=1)
        self._pumps: set[asyncio.Future[None]] = set()
        self._active = 0
        self._closed = False

    @property
    def active(self) -> int:
        """Number of sources that have not finished yet."""
        return self._active

    def add(self, source: AsyncIterable[T]) -> None:
        """Start pulling from *source*; requires a running event loop."""
        if self._closed:
            raise RuntimeError("cannot add a source to a closed merger")
        task = asyncio.ensure_future(self._pump(source))
        self._pumps.add(task)
        task.add_done_callback(self._pumps.discard)
        self._active += 1

    async def _pump(self, source: AsyncIterable[T]) -> None:
        try:
            async for item in source:
                await self._queue.put(item)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            await self._queue.put(_SourceFailed(exc))
            return
        await self._queue.put(_DONE)

    async def __aiter__(self) -> AsyncIterator[T]:
        while self._active > 0:
            item = await self._queue.get()
            if isinstance(item, _SourceDone):
                self._active -= 1
                continue
            if isinstance(item, _SourceFailed):
                self._active -= 1
                raise item.error
            yield item

    async def close(self) -> None:
        """Cancel every pump and wait for them to finish."""
        self._closed = True
        pumps = list(self._pumps)
        for pump in pumps:
            pump.cancel()
        if pumps:
            await asyncio.gather(*pumps, return_exceptions=True)
        self._active = 0


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


async def ticks(interval: float) -> AsyncIterator[Event]:
    """Yield ``Event.TICK`` every *interval* seconds; nothing if it is zero.

    The wait starts when the consumer asks for the next tick, so two ticks
    are never closer together than *interval*.
    """
    if interval <= 0:
        return
    loop = asyncio.get_running_loop()
    while True:
        deadline = loop.time() + interval
        while (remaining := deadline - loop.time()) > 0:
            await asyncio.sleep(remaining)
        yield Event.TICK


async def once(event: Event) -> AsyncIterator[Event]:
    """Yield *event* a single time."""
    yield event


async def from_queue(queue: asyncio.Queue[Any]) -> AsyncIterator[Event]:
    """Wrap every item put on *queue* as ``Event.user(item)``."""
    while True:
        yield Event.user(await queue.get())


async def on_shutdown(trigger: Awaitable[Any]) -> AsyncIterator[Event]:
    """Yield ``Event.EXIT`` once *trigger* resolves."""
    await trigger
    logger.debug("shutdown trigger resolved")
    yield Event.EXIT

"""Tests for event sources and the stream merger."""

from __future__ import annotations

import asyncio

import pytest

from stratum.events import Event
from stratum.streams import EventMerger, from_queue, on_shutdown, once, ticks


async def _items(*values: object, delay: float = 0.0):
    for value in values:
        await asyncio.sleep(delay)
        yield value


async def _collect(merger: EventMerger, limit: int | None = None, timeout: float = 1.0) -> list:
    out: list = []

    async def _drain() -> None:
        async for item in merger:
            out.append(item)
            if limit is not None and len(out) >= limit:
                return

    await asyncio.wait_for(_drain(), timeout)
    return out


class TestEventMerger:
    @pytest.mark.asyncio
    async def test_merges_all_items_and_ends(self) -> None:
        merger: EventMerger[object] = EventMerger()
        merger.add(_items("a1", "a2", "a3"))
        merger.add(_items("b1", "b2"))
        out = await _collect(merger)
        assert sorted(out) == ["a1", "a2", "a3", "b1", "b2"]
        assert [x for x in out if x.startswith("a")] == ["a1", "a2", "a3"]
        assert merger.active == 0

    @pytest.mark.asyncio
    async def test_busy_source_does_not_starve_others(self) -> None:
        async def endless():
            n = 0
            while True:
                n += 1
                yield f"busy{n}"

        merger: EventMerger[object] = EventMerger()
        merger.add(endless())
        merger.add(_items("quiet"))
        out = await _collect(merger, limit=10)
        assert "quiet" in out
        await merger.close()

    @pytest.mark.asyncio
    async def test_source_error_is_reraised(self) -> None:
        async def broken():
            yield "ok"
            raise OSError("input backend failed")

        merger: EventMerger[object] = EventMerger()
        merger.add(broken())
        seen: list = []
        with pytest.raises(OSError, match="input backend failed"):
            async for item in merger:
                seen.append(item)
        assert seen == ["ok"]
        await merger.close()

    @pytest.mark.asyncio
    async def test_sources_can_be_added_while_iterating(self) -> None:
        merger: EventMerger[object] = EventMerger()
        merger.add(_items("first"))
        out: list = []
        async for item in merger:
            out.append(item)
            if item == "first":
                merger.add(_items("second"))
        assert out == ["first", "second"]

    @pytest.mark.asyncio
    async def test_close_cancels_pumps(self) -> None:
        cancelled = asyncio.Event()

        async def hanging():
            try:
                await asyncio.sleep(3600)
                yield "never"
            finally:
                cancelled.set()

        merger: EventMerger[object] = EventMerger()
        merger.add(hanging())
        await asyncio.sleep(0)
        await merger.close()
        assert cancelled.is_set()
        with pytest.raises(RuntimeError):
            merger.add(_items("late"))


class TestSources:
    @pytest.mark.asyncio
    async def test_once(self) -> None:
        assert [e async for e in once(Event.TICK)] == [Event.TICK]

    @pytest.mark.asyncio
    async def test_zero_interval_produces_no_ticks(self) -> None:
        assert [e async for e in ticks(0)] == []

    @pytest.mark.asyncio
    async def test_ticks_are_at_least_interval_apart(self) -> None:
        interval = 0.02
        loop = asyncio.get_running_loop()
        stamps: list[float] = []
        async for event in ticks(interval):
            assert event.is_tick()
            stamps.append(loop.time())
            if len(stamps) == 5:
                break
        gaps = [b - a for a, b in zip(stamps, stamps[1:])]
        # float rounding only
        assert all(gap >= interval - 1e-9 for gap in gaps)

    @pytest.mark.asyncio
    async def test_from_queue_wraps_user_events(self) -> None:
        queue: asyncio.Queue[int] = asyncio.Queue()
        await queue.put(1)
        await queue.put(2)
        stream = from_queue(queue)
        assert await anext(stream) == Event.user(1)
        assert await anext(stream) == Event.user(2)
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_on_shutdown_emits_exit_after_trigger(self) -> None:
        trigger: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        stream = on_shutdown(trigger)
        pending = asyncio.ensure_future(anext(stream))
        await asyncio.sleep(0.01)
        assert not pending.done()
        trigger.set_result(None)
        assert await pending == Event.EXIT
        await stream.aclose()

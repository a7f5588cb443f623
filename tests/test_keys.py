"""Tests for stratum.keys: splitting raw input into single keys."""

from __future__ import annotations

import asyncio

import pytest

from stratum.events import Event
from stratum.keys import ESC, KeySplitter, split_keys
from stratum.terminal import KeyInput, terminal_events

from .virtual_terminal import VirtualTerminal

# ---------------------------------------------------------------------------
# split_keys
# ---------------------------------------------------------------------------


class TestSplitKeys:
    def test_plain_characters_are_separate_keys(self) -> None:
        assert split_keys("ab\r") == (["a", "b", "\r"], "")

    def test_csi_sequences_stay_whole(self) -> None:
        assert split_keys(f"x{ESC}[Ay") == (["x", f"{ESC}[A", "y"], "")

    def test_csi_with_parameters(self) -> None:
        assert split_keys(f"{ESC}[1;5C") == ([f"{ESC}[1;5C"], "")

    def test_sgr_mouse_report(self) -> None:
        report = f"{ESC}[<0;10;5M"
        assert split_keys(report + "q") == ([report, "q"], "")

    def test_x10_mouse_report(self) -> None:
        report = f"{ESC}[M !!"
        assert split_keys(report + "z") == ([report, "z"], "")

    def test_ss3_sequence(self) -> None:
        assert split_keys(f"{ESC}OPk") == ([f"{ESC}OP", "k"], "")

    def test_osc_sequence_terminated_by_bel_or_st(self) -> None:
        assert split_keys(f"{ESC}]11;rgb:0/0/0\x07a") == ([f"{ESC}]11;rgb:0/0/0\x07", "a"], "")
        assert split_keys(f"{ESC}]0;t{ESC}\\b") == ([f"{ESC}]0;t{ESC}\\", "b"], "")

    def test_meta_key(self) -> None:
        assert split_keys(f"{ESC}x") == ([f"{ESC}x"], "")

    def test_incomplete_sequences_are_held(self) -> None:
        assert split_keys(f"a{ESC}") == (["a"], ESC)
        assert split_keys(f"a{ESC}[1;") == (["a"], f"{ESC}[1;")
        assert split_keys(f"{ESC}[<0;1") == ([], f"{ESC}[<0;1")


# ---------------------------------------------------------------------------
# KeySplitter
# ---------------------------------------------------------------------------


class TestKeySplitter:
    def test_sequence_split_across_chunks(self) -> None:
        splitter = KeySplitter()
        assert splitter.feed(f"{ESC}[<0;") == []
        assert splitter.pending == f"{ESC}[<0;"
        assert splitter.feed("3;4m") == [f"{ESC}[<0;3;4m"]
        assert splitter.pending == ""

    def test_flush_releases_lone_escape(self) -> None:
        splitter = KeySplitter()
        assert splitter.feed(ESC) == []
        assert splitter.flush() == [ESC]
        assert splitter.flush() == []


# ---------------------------------------------------------------------------
# terminal_events
# ---------------------------------------------------------------------------


async def _take(stream, count: int) -> list[Event]:
    return [await asyncio.wait_for(anext(stream), 1.0) for _ in range(count)]


class TestTerminalEvents:
    @pytest.mark.asyncio
    async def test_one_event_per_key(self) -> None:
        terminal = VirtualTerminal()
        stream = terminal_events(terminal)
        first = asyncio.ensure_future(anext(stream))
        while not terminal.input_started:
            await asyncio.sleep(0)
        terminal.simulate_input("ab")
        events = [await first] + await _take(stream, 1)
        assert events == [Event.terminal(KeyInput("a")), Event.terminal(KeyInput("b"))]
        await stream.aclose()
        assert "stop_input" in terminal.calls

    @pytest.mark.asyncio
    async def test_lone_escape_arrives_after_timeout(self) -> None:
        terminal = VirtualTerminal()
        stream = terminal_events(terminal, escape_timeout=0.01)
        first = asyncio.ensure_future(anext(stream))
        while not terminal.input_started:
            await asyncio.sleep(0)
        terminal.simulate_input(ESC)
        await asyncio.sleep(0)
        assert not first.done()
        assert await asyncio.wait_for(first, 1.0) == Event.terminal(KeyInput(ESC))
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_split_sequence_is_joined(self) -> None:
        terminal = VirtualTerminal()
        stream = terminal_events(terminal, escape_timeout=1.0)
        first = asyncio.ensure_future(anext(stream))
        while not terminal.input_started:
            await asyncio.sleep(0)
        terminal.simulate_input(f"{ESC}[")
        terminal.simulate_input("B")
        assert await asyncio.wait_for(first, 1.0) == Event.terminal(KeyInput(f"{ESC}[B"))
        await stream.aclose()

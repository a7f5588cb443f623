"""Tests for TerminalBackend's differential drawing."""

from __future__ import annotations

from stratum.backend import TerminalBackend
from stratum.session import TerminalSession
from stratum.surface import Buffer, Rect

from .virtual_terminal import VirtualTerminal


def _writer(rows: dict[int, str]):
    def render(surface: Buffer) -> None:
        for y, text in rows.items():
            surface.set_string(0, y, text)

    return render


class TestTerminalBackend:
    def test_size_follows_terminal(self) -> None:
        backend = TerminalBackend(VirtualTerminal(rows=3, columns=5))
        assert backend.size() == Rect(0, 0, 5, 3)

    def test_first_frame_is_full_redraw(self) -> None:
        terminal = VirtualTerminal(rows=3, columns=5)
        backend = TerminalBackend(terminal)
        backend.draw(_writer({0: "hi"}))
        out = terminal.output
        assert backend.full_redraws == 1
        assert "\x1b[2J" in out
        assert "\x1b[1;1Hhi   \x1b[K" in out
        assert "\x1b[2;1H" in out
        assert "\x1b[3;1H" in out

    def test_unchanged_frame_writes_nothing(self) -> None:
        terminal = VirtualTerminal(rows=3, columns=5)
        backend = TerminalBackend(terminal)
        backend.draw(_writer({0: "hi"}))
        terminal.clear_buffer()
        backend.draw(_writer({0: "hi"}))
        assert terminal.output == ""

    def test_only_changed_rows_are_written(self) -> None:
        terminal = VirtualTerminal(rows=3, columns=5)
        backend = TerminalBackend(terminal)
        backend.draw(_writer({0: "hi"}))
        terminal.clear_buffer()
        backend.draw(_writer({0: "hi", 1: "yo"}))
        out = terminal.output
        assert "\x1b[2;1Hyo   \x1b[K" in out
        assert "\x1b[1;1H" not in out
        assert "\x1b[3;1H" not in out
        assert "\x1b[2J" not in out
        assert backend.full_redraws == 1

    def test_resize_forces_full_redraw(self) -> None:
        terminal = VirtualTerminal(rows=3, columns=5)
        backend = TerminalBackend(terminal)
        backend.draw(_writer({0: "hi"}))
        terminal.simulate_resize(rows=4)
        terminal.clear_buffer()
        backend.draw(_writer({0: "hi"}))
        assert backend.full_redraws == 2
        assert "\x1b[2J" in terminal.output
        assert "\x1b[4;1H" in terminal.output

    def test_invalidate_forces_full_redraw(self) -> None:
        terminal = VirtualTerminal(rows=2, columns=4)
        backend = TerminalBackend(terminal)
        backend.draw(_writer({}))
        backend.invalidate()
        backend.draw(_writer({}))
        assert backend.full_redraws == 2

    def test_empty_terminal_draws_nothing(self) -> None:
        terminal = VirtualTerminal(rows=0, columns=0)
        backend = TerminalBackend(terminal)
        called: list[bool] = []
        backend.draw(lambda surface: called.append(True))
        assert called == []
        assert terminal.output == ""

    def test_session_uses_mouse_setting(self) -> None:
        terminal = VirtualTerminal()
        session = TerminalBackend(terminal).session(mouse_capture=False)
        assert isinstance(session, TerminalSession)
        with session:
            assert "\x1b[?1000h" not in terminal.output
        assert not terminal.raw_mode

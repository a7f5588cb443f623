"""Rendering backends: where a frame's :class:`Buffer` ends up.

The compositor only needs three things from a backend: the current size,
a way to draw one frame through a callback, and the session guard to hold
while the loop runs (the compositor passes its ``mouse_capture`` setting
in).  :class:`TerminalBackend` implements them on top of a
:class:`~stratum.terminal.Terminal` with row-level differential updates.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Protocol

from stratum.session import TerminalSession
from stratum.surface import Buffer, Rect
from stratum.terminal import ProcessTerminal, Terminal

__all__ = ["Backend", "TerminalBackend"]

_HIDE_CURSOR = "\x1b[?25l"
_CLEAR_SCREEN = "\x1b[2J"
_CLEAR_TO_EOL = "\x1b[K"


class Backend(Protocol):
    """What :meth:`stratum.compositor.Compositor.run` draws into."""

    def size(self) -> Rect: ...

    def draw(self, render: Callable[[Buffer], None]) -> None: ...

    def session(self, mouse_capture: bool = True) -> AbstractContextManager[object]: ...


class TerminalBackend:
    """Draws frames to a terminal, rewriting only the rows that changed.

    A full redraw happens on the first frame and whenever the terminal size
    changes.
    """

    def __init__(self, terminal: Terminal | None = None) -> None:
        self.terminal: Terminal = terminal if terminal is not None else ProcessTerminal()
        self._previous_lines: list[str] = []
        self._previous_size: Rect | None = None
        self._full_redraw_count = 0

    @property
    def full_redraws(self) -> int:
        """Number of full (non-differential) redraws performed."""
        return self._full_redraw_count

    def size(self) -> Rect:
        return Rect(0, 0, self.terminal.columns, self.terminal.rows)

    def session(self, mouse_capture: bool = True) -> TerminalSession:
        return TerminalSession(self.terminal, mouse_capture=mouse_capture)

    def invalidate(self) -> None:
        """Forget the previous frame so the next draw repaints everything."""
        self._previous_lines = []
        self._previous_size = None

    def draw(self, render: Callable[[Buffer], None]) -> None:
        area = self.size()
        if area.is_empty():
            return

        buffer = Buffer(area)
        render(buffer)
        lines = buffer.lines()

        out: list[str] = [_HIDE_CURSOR]
        force_full = area != self._previous_size
        if force_full:
            self._full_redraw_count += 1
            out.append(_CLEAR_SCREEN)

        for row, line in enumerate(lines):
            old = self._previous_lines[row] if row < len(self._previous_lines) else None
            if force_full or line != old:
                # CUP is 1-based
                out.append(f"\x1b[{row + 1};1H{line}{_CLEAR_TO_EOL}")

        self._previous_lines = lines
        self._previous_size = area
        if len(out) > 1:
            self.terminal.write("".join(out))

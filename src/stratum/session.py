"""Scoped terminal session: raw mode, alternate screen and mouse capture."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stratum.terminal import Terminal

__all__ = ["TerminalSession"]

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_ENTER_ALT_SCREEN = "\x1b[?1049h"
_LEAVE_ALT_SCREEN = "\x1b[?1049l"
# Normal tracking, button-event tracking, SGR extended coordinates
_ENABLE_MOUSE = "\x1b[?1000h\x1b[?1002h\x1b[?1006h"
_DISABLE_MOUSE = "\x1b[?1006l\x1b[?1002l\x1b[?1000l"
_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"
_CLEAR_SCREEN = "\x1b[2J\x1b[H"


class TerminalSession:
    """Puts *terminal* into full-screen interactive mode for a ``with`` block.

    Entering enables raw mode, switches to the alternate screen, turns on
    mouse capture, hides the cursor and clears the screen.  Leaving undoes
    each step in reverse order.  Teardown is best effort: a failing step is
    logged and the remaining steps still run.  Leaving twice is a no-op.
    """

    def __init__(self, terminal: Terminal, mouse_capture: bool = True) -> None:
        self.terminal = terminal
        self.mouse_capture = mouse_capture
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def __enter__(self) -> TerminalSession:
        self.enter()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.restore()

    def enter(self) -> None:
        """Switch the terminal over; setup errors propagate."""
        self.terminal.enable_raw_mode()
        self._active = True
        try:
            out = _ENTER_ALT_SCREEN
            if self.mouse_capture:
                out += _ENABLE_MOUSE
            self.terminal.write(out + _HIDE_CURSOR + _CLEAR_SCREEN)
        except BaseException:
            self.restore()
            raise
        logger.debug("terminal session entered")

    def restore(self) -> None:
        """Undo :meth:`enter`, swallowing (and logging) every failure."""
        if not self._active:
            return
        self._active = False

        steps: list[tuple[str, str]] = [("show cursor", _SHOW_CURSOR)]
        if self.mouse_capture:
            steps.append(("disable mouse capture", _DISABLE_MOUSE))
        steps.append(("leave alternate screen", _LEAVE_ALT_SCREEN))

        for name, sequence in steps:
            try:
                self.terminal.write(sequence)
            except Exception:
                logger.warning("terminal restore step %r failed", name, exc_info=True)
        try:
            self.terminal.disable_raw_mode()
        except Exception:
            logger.warning("terminal restore step 'disable raw mode' failed", exc_info=True)
        logger.debug("terminal session restored")

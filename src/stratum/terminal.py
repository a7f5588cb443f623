"""Raw terminal access for stdin/stdout.

Provides a ``Terminal`` protocol, a concrete ``ProcessTerminal`` backed by
``sys.stdin``/``sys.stdout`` and :func:`terminal_events`, which bridges raw
input into ``Event.terminal`` values.  Input is split into one
:class:`KeyInput` per key (see :mod:`stratum.keys`); interpreting the
keys and escape sequences is left to the components.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import termios
import tty
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Protocol

from stratum.events import Event
from stratum.keys import KeySplitter

__all__ = [
    "KeyInput",
    "ProcessTerminal",
    "Resize",
    "Terminal",
    "TerminalInput",
    "terminal_events",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class KeyInput:
    """One key: a character or a complete escape sequence."""

    data: str


@dataclass(frozen=True, slots=True)
class Resize:
    """The terminal changed size."""

    columns: int
    rows: int


type TerminalInput = KeyInput | Resize


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...

    def write(self, data: str) -> None: ...

    def enable_raw_mode(self) -> None: ...

    def disable_raw_mode(self) -> None: ...

    def start_input(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None: ...

    def stop_input(self) -> None: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Terminal backed by the process's stdin and stdout.

    Raw mode goes through :mod:`tty` / :mod:`termios`; input is read with an
    asyncio reader on stdin and resizes are reported from ``SIGWINCH``.
    """

    def __init__(self) -> None:
        self._original_termios: list | None = None
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._reader_loop: asyncio.AbstractEventLoop | None = None
        self._write_log_path: str = os.environ.get("STRATUM_WRITE_LOG", "")

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).columns
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).lines
        except (ValueError, OSError):
            return 24

    # -- output ---------------------------------------------------------------

    def write(self, data: str) -> None:
        """Write *data* to stdout and flush; errors propagate as ``OSError``."""
        sys.stdout.write(data)
        sys.stdout.flush()

        if self._write_log_path:
            try:
                with open(self._write_log_path, "a", encoding="utf-8") as f:
                    f.write(data)
            except OSError:
                logger.debug("cannot append to write log %s", self._write_log_path)

    # -- raw mode -------------------------------------------------------------

    def enable_raw_mode(self) -> None:
        fd = sys.stdin.fileno()
        self._original_termios = termios.tcgetattr(fd)
        tty.setraw(fd)

    def disable_raw_mode(self) -> None:
        if self._original_termios is None:
            return
        fd = sys.stdin.fileno()
        termios.tcsetattr(fd, termios.TCSADRAIN, self._original_termios)
        self._original_termios = None

    # -- input ----------------------------------------------------------------

    def start_input(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        """Begin reading stdin on the running loop and watching for resizes."""
        self._input_handler = on_input
        self._resize_handler = on_resize

        loop = asyncio.get_running_loop()
        loop.add_reader(sys.stdin.fileno(), self._on_stdin_readable)
        loop.add_signal_handler(signal.SIGWINCH, self._on_sigwinch)
        self._reader_loop = loop

    def stop_input(self) -> None:
        loop = self._reader_loop
        if loop is None:
            return
        self._reader_loop = None
        try:
            loop.remove_reader(sys.stdin.fileno())
            loop.remove_signal_handler(signal.SIGWINCH)
        except (RuntimeError, ValueError):
            logger.debug("input handlers already removed")
        self._input_handler = None
        self._resize_handler = None

    def _on_stdin_readable(self) -> None:
        try:
            raw = os.read(sys.stdin.fileno(), 4096)
        except OSError:
            return
        if raw and self._input_handler is not None:
            self._input_handler(raw.decode("utf-8", errors="replace"))

    def _on_sigwinch(self) -> None:
        if self._resize_handler is not None:
            self._resize_handler()


# ---------------------------------------------------------------------------
# Event bridge
# ---------------------------------------------------------------------------


# Held-back escape prefixes are released after this many seconds of silence
ESCAPE_TIMEOUT = 0.01


async def terminal_events(
    terminal: Terminal, escape_timeout: float = ESCAPE_TIMEOUT
) -> AsyncIterator[Event]:
    """Yield ``Event.terminal(KeyInput | Resize)`` for *terminal*'s input.

    Raw chunks are split into one :class:`KeyInput` per key.  A chunk that
    ends in the middle of an escape sequence (or with a lone ``ESC``) is
    held back for *escape_timeout* seconds waiting for the rest.
    """
    queue: asyncio.Queue[TerminalInput] = asyncio.Queue()
    splitter = KeySplitter()
    loop = asyncio.get_running_loop()
    flush_handle: asyncio.TimerHandle | None = None

    def _emit(keys: list[str]) -> None:
        for key in keys:
            queue.put_nowait(KeyInput(key))

    def _flush() -> None:
        nonlocal flush_handle
        flush_handle = None
        _emit(splitter.flush())

    def _on_input(data: str) -> None:
        nonlocal flush_handle
        if flush_handle is not None:
            flush_handle.cancel()
            flush_handle = None
        _emit(splitter.feed(data))
        if splitter.pending:
            flush_handle = loop.call_later(escape_timeout, _flush)

    def _on_resize() -> None:
        queue.put_nowait(Resize(terminal.columns, terminal.rows))

    terminal.start_input(_on_input, _on_resize)
    try:
        while True:
            yield Event.terminal(await queue.get())
    finally:
        if flush_handle is not None:
            flush_handle.cancel()
        terminal.stop_input()

"""Splits raw terminal input into individual key sequences.

A single read from the terminal can carry several keystrokes (fast typing,
pastes) or only part of an escape sequence (mouse reports split across
reads).  :class:`KeySplitter` accumulates chunks and hands out one string
per key: a plain character, or a complete CSI / SS3 / OSC / DCS / APC
sequence, or an ``ESC``-prefixed meta key.  An incomplete escape sequence
is held back until more input arrives or :meth:`KeySplitter.flush` is
called, which is how a lone ``ESC`` press is eventually delivered.
"""

from __future__ import annotations

__all__ = ["KeySplitter", "split_keys"]

ESC = "\x1b"
_ST = ESC + "\\"
_BEL = "\x07"


# ---------------------------------------------------------------------------
# Sequence boundaries
# ---------------------------------------------------------------------------


def _csi_end(data: str, start: int) -> int | None:
    # X10 mouse: ESC [ M followed by three raw bytes
    if data.startswith("M", start + 2):
        end = start + 6
        return end if end <= len(data) else None
    for i in range(start + 2, len(data)):
        if 0x40 <= ord(data[i]) <= 0x7E:
            return i + 1
    return None


def _terminated_end(data: str, start: int, terminators: tuple[str, ...]) -> int | None:
    ends = [
        found + len(t)
        for t in terminators
        if (found := data.find(t, start + 2)) != -1
    ]
    return min(ends) if ends else None


def _sequence_end(data: str, start: int) -> int | None:
    """Index just past the escape sequence at *start*, or ``None`` if cut off."""
    if start + 1 >= len(data):
        return None
    kind = data[start + 1]
    if kind == "[":
        return _csi_end(data, start)
    if kind == "]":
        return _terminated_end(data, start, (_BEL, _ST))
    if kind in ("P", "_"):
        return _terminated_end(data, start, (_ST,))
    if kind == "O":
        end = start + 3
        return end if end <= len(data) else None
    # meta key: ESC + one character
    return start + 2


def split_keys(data: str) -> tuple[list[str], str]:
    """Split *data* into complete keys; return ``(keys, incomplete_tail)``."""
    keys: list[str] = []
    pos = 0
    while pos < len(data):
        if data[pos] != ESC:
            keys.append(data[pos])
            pos += 1
            continue
        end = _sequence_end(data, pos)
        if end is None:
            return keys, data[pos:]
        keys.append(data[pos:end])
        pos = end
    return keys, ""


# ---------------------------------------------------------------------------
# Incremental splitter
# ---------------------------------------------------------------------------


class KeySplitter:
    """Feeds raw chunks in, gets whole keys out."""

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Input held back because it may be the start of a longer sequence."""
        return self._buffer

    def feed(self, data: str) -> list[str]:
        keys, self._buffer = split_keys(self._buffer + data)
        return keys

    def flush(self) -> list[str]:
        """Give up waiting and release whatever is pending as one key."""
        pending, self._buffer = self._buffer, ""
        return [pending] if pending else []

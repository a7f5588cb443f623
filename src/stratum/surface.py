"""Drawing surface handed to components during a render pass.

A :class:`Buffer` is a grid of cells covering the terminal.  Components
write text into it with :meth:`Buffer.set_string`; the backend turns the
grid into terminal output.  Each cell holds one grapheme plus the SGR
style prefix it should be drawn with; wide graphemes own the cell to their
right, which is left empty.
"""

from __future__ import annotations

from dataclasses import dataclass

from stratum.text import grapheme_width, graphemes

__all__ = ["Buffer", "Cell", "Rect"]

_RESET = "\x1b[0m"


@dataclass(frozen=True, slots=True)
class Rect:
    """A rectangular region measured in cells."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def intersection(self, other: Rect) -> Rect:
        x = max(self.x, other.x)
        y = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        return Rect(x, y, max(0, right - x), max(0, bottom - y))

    def inner(self, margin: int = 1) -> Rect:
        """Shrink by *margin* cells on every side."""
        width = max(0, self.width - 2 * margin)
        height = max(0, self.height - 2 * margin)
        return Rect(self.x + margin, self.y + margin, width, height)


@dataclass(slots=True)
class Cell:
    symbol: str = " "
    style: str = ""


class Buffer:
    """Cell grid for one frame."""

    def __init__(self, area: Rect) -> None:
        self.area = area
        self._cells: list[list[Cell]] = [
            [Cell() for _ in range(area.width)] for _ in range(area.height)
        ]

    def cell(self, x: int, y: int) -> Cell | None:
        """Return the cell at absolute position ``(x, y)``, if inside."""
        if not self.area.contains(x, y):
            return None
        return self._cells[y - self.area.y][x - self.area.x]

    def set_string(self, x: int, y: int, text: str, style: str = "") -> int:
        """Write *text* starting at ``(x, y)``, clipped to the buffer.

        Returns the column just past the last written cell.
        """
        if not self.area.y <= y < self.area.bottom:
            return x
        col = x
        for g in graphemes(text):
            w = grapheme_width(g)
            if w == 0:
                continue
            if col + w > self.area.right:
                break
            if col >= self.area.x:
                self._break_wide(col, y, w)
                target = self.cell(col, y)
                if target is not None:
                    target.symbol = g
                    target.style = style
                for extra in range(1, w):
                    spill = self.cell(col + extra, y)
                    if spill is not None:
                        spill.symbol = ""
                        spill.style = style
            col += w
        return col

    def _break_wide(self, x: int, y: int, width: int) -> None:
        # A wide glyph half covered by cells x .. x+width-1 is replaced by a blank
        head = self.cell(x, y)
        if head is not None and head.symbol == "":
            owner = self.cell(x - 1, y)
            if owner is not None:
                owner.symbol = " "
                owner.style = ""
        tail = self.cell(x + width, y)
        if tail is not None and tail.symbol == "":
            tail.symbol = " "
            tail.style = ""

    def fill(self, area: Rect, symbol: str = " ", style: str = "") -> None:
        """Fill *area* (clipped to the buffer) with *symbol*."""
        clipped = self.area.intersection(area)
        for y in range(clipped.y, clipped.bottom):
            for x in range(clipped.x, clipped.right):
                cell = self._cells[y - self.area.y][x - self.area.x]
                cell.symbol = symbol
                cell.style = style

    def clear(self, area: Rect | None = None) -> None:
        """Blank *area*, or the whole buffer."""
        self.fill(area if area is not None else self.area)

    def lines(self) -> list[str]:
        """Render each row to a string, emitting SGR codes on style changes."""
        out: list[str] = []
        for row in self._cells:
            parts: list[str] = []
            current = ""
            for cell in row:
                if cell.style != current:
                    parts.append(_RESET if not cell.style else _RESET + cell.style)
                    current = cell.style
                parts.append(cell.symbol)
            if current:
                parts.append(_RESET)
            out.append("".join(parts))
        return out

    def text(self) -> list[str]:
        """Row contents without any styling, trailing blanks kept."""
        return ["".join(cell.symbol for cell in row) for row in self._cells]

"""A small interactive demo of the compositor.

Type to edit the text line, Enter increments a counter, Tab opens a popup
(which shows the counter it read by looking the main screen up by id),
Esc closes the popup or quits.  Typing ``clear`` inside the popup clears
it one second later from a background job.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from dataclasses import dataclass, field, replace

from stratum.backend import TerminalBackend
from stratum.component import forward_handle_event
from stratum.compositor import Compositor
from stratum.config import CompositorConfig
from stratum.context import Context
from stratum.events import EventAccess
from stratum.identity import Id, LayerId
from stratum.surface import Buffer, Rect
from stratum.terminal import KeyInput
from stratum.text import visible_width

logger = logging.getLogger(__name__)

ESC = "\x1b"
TAB = "\t"
ENTER = ("\r", "\n")
BACKSPACE = ("\x7f", "\b")

_INVERSE = "\x1b[30;42m"
_BOLD = "\x1b[1m"

CLEAR_DELAY = 1.0


@dataclass
class AppState:
    text: str = "Write to modify the text, press enter to increment"
    start: float = field(default_factory=time.monotonic)


def _key(event: EventAccess) -> str | None:
    raw = event.peek().as_terminal()
    return raw.data if isinstance(raw, KeyInput) else None


def _printable(data: str) -> bool:
    return len(data) == 1 and data.isprintable()


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


class Input:
    """Edits ``AppState.text``."""

    def id(self) -> Id:
        return Id.new("input")

    def view(self, area: Rect, surface: Buffer, state: AppState) -> None:
        x = max(area.x, area.x + (area.width - visible_width(state.text)) // 2)
        surface.set_string(x, area.y, state.text, _INVERSE)

    def handle_event(self, event: EventAccess, cx: Context) -> None:
        data = _key(event)
        if data is None:
            return
        if _printable(data):
            cx.state_mut().text += data
            event.consume()
        elif data in BACKSPACE and cx.state.text:
            cx.state_mut().text = cx.state.text[:-1]
            event.consume()


class MainScreen:
    def __init__(self) -> None:
        self.counter = 0
        self.input = Input()

    def id(self) -> Id:
        return Id.new("main")

    def view(self, area: Rect, surface: Buffer, state: AppState) -> None:
        mid = area.y + area.height // 2
        self.input.view(Rect(area.x, max(area.y, mid - 1), area.width, 1), surface, state)

        elapsed = int(time.monotonic() - state.start)
        text = f"Counter: {self.counter} Passed: {elapsed}"
        surface.set_string(area.x + max(0, (area.width - len(text)) // 2), mid, text)

    def handle_event(self, event: EventAccess, cx: Context) -> None:
        if forward_handle_event(event, cx, self.input):
            return

        data = _key(event)
        if data == ESC:
            cx.add_callback(lambda cc: cc.exit())
        elif data == TAB:
            own_id = self.id()

            def _open_popup(cc: Compositor[AppState]) -> None:
                screen = cc.get_at(LayerId.FOREGROUND, own_id, MainScreen)
                counter = screen.counter if screen is not None else 0
                cc.replace_at(LayerId.POPUP, Popup(title_counter=counter))

            cx.add_callback(_open_popup)
        elif data in ENTER:
            self.counter += 1
            if self.counter == 10:
                cx.add_callback(lambda cc: cc.exit())


class Popup:
    """Captures all key input while open."""

    def __init__(self, title_counter: int = 0) -> None:
        self.title_counter = title_counter
        self.text = ""

    def id(self) -> Id:
        return Id.new("popup")

    def view(self, area: Rect, surface: Buffer, state: object) -> None:
        box = Rect(area.width // 3, area.height // 4, max(area.width // 3, 3), max(area.height // 8, 3))
        surface.clear(box)
        title = f"Popup: {self.title_counter} (read from the main screen)"
        surface.set_string(box.x, box.y, "+" + "-" * (box.width - 2) + "+")
        surface.set_string(box.x + 1, box.y, title[: box.width - 2], _BOLD)
        for y in range(box.y + 1, box.bottom - 1):
            surface.set_string(box.x, y, "|")
            surface.set_string(box.right - 1, y, "|")
        surface.set_string(box.x, box.bottom - 1, "+" + "-" * (box.width - 2) + "+")

        inner = box.inner()
        surface.set_string(inner.x, inner.y, self.text[: inner.width])

    def handle_event(self, event: EventAccess, cx: Context) -> None:
        data = _key(event)
        if data is None:
            return
        if data == ESC:
            own_id = self.id()
            cx.add_callback(lambda cc: cc.remove_all(own_id))
        elif _printable(data):
            self.text += data
            if self.text.endswith("clear"):
                cx.jobs.spawn(clear_popup_later(self.id()))
        elif data in BACKSPACE:
            self.text = self.text[:-1]
        else:
            return
        event.consume()


async def clear_popup_later(popup_id: Id, delay: float = CLEAR_DELAY):
    """Job: wait, then clear the popup's text (if it is still open)."""
    await asyncio.sleep(delay)

    def _clear(cc: Compositor) -> None:
        popup = cc.get_mut_at(LayerId.POPUP, popup_id, Popup)
        if popup is not None:
            popup.text = ""

    return _clear


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_app(config: CompositorConfig | None = None) -> Compositor[AppState]:
    app: Compositor[AppState] = Compositor(AppState(), config).with_terminal_input()
    app.replace_at(LayerId.FOREGROUND, MainScreen())
    return app


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="stratum compositor demo")
    parser.add_argument("--tick", type=float, default=None, help="Tick interval in seconds (0 disables)")
    parser.add_argument("--log-file", default=None, help="Write logs to this file")
    parser.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"])
    args = parser.parse_args(argv)

    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=getattr(logging, args.log_level.upper()),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )

    config = CompositorConfig.from_env()
    if args.tick is not None:
        config = replace(config, tick_interval=args.tick)

    app = build_app(config)
    asyncio.run(app.run(TerminalBackend()))


if __name__ == "__main__":
    main()

"""Tests for the demo components, driven through Compositor.dispatch."""

from __future__ import annotations

import pytest

from stratum.compositor import Compositor
from stratum.config import CompositorConfig
from stratum.demo import AppState, MainScreen, Popup, build_app, clear_popup_later
from stratum.events import Event
from stratum.identity import Id, LayerId
from stratum.surface import Buffer, Rect
from stratum.terminal import KeyInput

POPUP_ID = Id.new("popup")


def _app() -> Compositor[AppState]:
    app = build_app(CompositorConfig(tick_interval=0))
    app.state.text = ""
    return app


def _press(app: Compositor[AppState], *keys: str) -> None:
    for key in keys:
        app.dispatch(Event.terminal(KeyInput(key)))


def _screen(app: Compositor[AppState]) -> MainScreen:
    screen = app.get_at(LayerId.FOREGROUND, Id.new("main"), MainScreen)
    assert screen is not None
    return screen


class TestMainScreen:
    def test_typing_edits_shared_text(self) -> None:
        app = _app()
        _press(app, "h", "i", "!")
        assert app.state.text == "hi!"
        _press(app, "\x7f")
        assert app.state.text == "hi"

    def test_enter_counts_and_exits_at_ten(self) -> None:
        app = _app()
        _press(app, *["\r"] * 9)
        assert _screen(app).counter == 9
        assert not app.exit_requested
        _press(app, "\r")
        assert app.exit_requested

    def test_escape_quits(self) -> None:
        app = _app()
        _press(app, "\x1b")
        assert app.exit_requested

    def test_view_shows_text_and_counter(self) -> None:
        app = _app()
        app.state.text = "abc"
        _press(app, "\r", "\r")
        area = Rect(0, 0, 60, 10)
        buffer = Buffer(area)
        _screen(app).view(area, buffer, app.state)
        rows = buffer.text()
        assert any("abc" in row for row in rows)
        assert any("Counter: 2" in row for row in rows)


class TestPopup:
    def test_tab_opens_popup_with_counter(self) -> None:
        app = _app()
        _press(app, "\r", "\r", "\r", "\t")
        popup = app.get_at(LayerId.POPUP, POPUP_ID, Popup)
        assert popup is not None
        assert popup.title_counter == 3

    def test_popup_captures_keys(self) -> None:
        app = _app()
        _press(app, "\t", "a", "b", "\r")
        popup = app.get_at(LayerId.POPUP, POPUP_ID, Popup)
        assert popup.text == "ab"
        assert app.state.text == ""
        assert _screen(app).counter == 0

    def test_escape_closes_popup_without_exiting(self) -> None:
        app = _app()
        _press(app, "\t", "\x1b")
        assert app.get_at(LayerId.POPUP, POPUP_ID, Popup) is None
        assert not app.exit_requested

    def test_reopening_replaces_popup(self) -> None:
        app = _app()
        _press(app, "\t")
        first = app.get_at(LayerId.POPUP, POPUP_ID, Popup)
        app.remove_at(LayerId.POPUP, POPUP_ID)
        _press(app, "\r", "\t")
        second = app.get_at(LayerId.POPUP, POPUP_ID, Popup)
        assert second is not first
        assert second.title_counter == 1
        assert len(app.layers.components(LayerId.POPUP)) == 1

    @pytest.mark.asyncio
    async def test_typing_clear_spawns_a_job(self) -> None:
        app = _app()
        _press(app, "\t", *"clear")
        assert app.jobs.in_flight == 1
        await app.jobs.close()

    @pytest.mark.asyncio
    async def test_clear_job_empties_popup_text(self) -> None:
        app = _app()
        _press(app, "\t", *"xyz")
        callback = await clear_popup_later(POPUP_ID, delay=0)
        callback(app)
        assert app.get_at(LayerId.POPUP, POPUP_ID, Popup).text == ""

    @pytest.mark.asyncio
    async def test_clear_job_after_popup_closed_is_harmless(self) -> None:
        app = _app()
        callback = await clear_popup_later(POPUP_ID, delay=0)
        callback(app)
        assert app.get_at(LayerId.POPUP, POPUP_ID, Popup) is None

    def test_popup_view_draws_box(self) -> None:
        popup = Popup(title_counter=4)
        popup.text = "hello"
        area = Rect(0, 0, 60, 24)
        buffer = Buffer(area)
        popup.view(area, buffer, None)
        rows = buffer.text()
        assert rows[6].startswith(" " * 20 + "+")
        assert "Popup: 4" in rows[6]
        assert "hello" in rows[7]

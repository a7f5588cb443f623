"""The compositor: owns the layers and the state, and drives the run loop.

One loop iteration:

1.  Wait for the next item from the merged event sources (terminal input,
    ticks, user streams, finished jobs).
2.  Move the state into a fresh :class:`Context` and dispatch the event
    top-down through the layers until it is consumed.
3.  Take the state back and apply the queued callbacks in FIFO order.  A
    job result contributes its callback to this batch after an empty
    dispatch.
4.  Stop if an exit was requested, otherwise draw a frame bottom-up.

Callbacks get the compositor itself and may mount or unmount components,
change the state, spawn jobs or call :meth:`Compositor.exit`.  The batch
is fixed when dispatch ends; work a callback wants to defer further has
to go through a job.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import AsyncIterable, Awaitable
from typing import TYPE_CHECKING, Any

from stratum.config import CompositorConfig
from stratum.context import Context
from stratum.events import Event, EventAccess
from stratum.jobs import JobResult, Jobs
from stratum.layers import LayerRegistry
from stratum.streams import EventMerger, from_queue, on_shutdown, ticks
from stratum.surface import Rect
from stratum.terminal import ProcessTerminal, terminal_events

if TYPE_CHECKING:
    import asyncio

    from stratum.backend import Backend
    from stratum.component import Component
    from stratum.context import Callback
    from stratum.identity import Id, LayerId
    from stratum.surface import Buffer
    from stratum.terminal import Terminal

__all__ = ["Compositor"]

logger = logging.getLogger(__name__)


class _Detached:
    """Marks the state as lent out to a dispatch context."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "<state owned by dispatch context>"


_DETACHED = _Detached()


class Compositor[S]:
    """Draws components and dispatches events to them.

    Build one with an initial state, mount components, register event
    sources with the ``with_*`` methods and ``await run(backend)``.
    """

    def __init__(self, state: S = None, config: CompositorConfig | None = None) -> None:  # type: ignore[assignment]
        self._config = config if config is not None else CompositorConfig()
        self._layers = LayerRegistry()
        self._state: S | _Detached = state
        self._streams: list[AsyncIterable[Event]] = []
        self._input_terminals: list[Terminal | None] = []
        self._jobs = Jobs(self._config.job_channel_capacity)
        self._exit = False
        self._running = False

    # ------------------------------------------------------------------
    # Builder
    # ------------------------------------------------------------------

    def with_config(self, config: CompositorConfig) -> Compositor[S]:
        """Replace the configuration; only allowed before :meth:`run`."""
        if self._running:
            raise RuntimeError("cannot reconfigure a running compositor")
        self._config = config
        self._jobs.capacity = config.job_channel_capacity
        return self

    def with_tick_interval(self, seconds: float) -> Compositor[S]:
        """Emit ``Event.TICK`` every *seconds*; ``0`` disables ticking."""
        self._config = dataclasses.replace(self._config, tick_interval=seconds)
        return self

    def with_stream(self, stream: AsyncIterable[Event]) -> Compositor[S]:
        """Merge *stream* into the event sources; every item is dispatched."""
        self._streams.append(stream)
        return self

    def with_receiver(self, queue: asyncio.Queue[Any]) -> Compositor[S]:
        """Dispatch every item put on *queue* as ``Event.user(item)``."""
        return self.with_stream(from_queue(queue))

    def with_terminal_input(self, terminal: Terminal | None = None) -> Compositor[S]:
        """Dispatch raw terminal input as ``Event.terminal(...)``.

        Without an explicit *terminal* the backend's own terminal is used,
        falling back to the process terminal.
        """
        self._input_terminals.append(terminal)
        return self

    def with_shutdown(self, trigger: Awaitable[Any]) -> Compositor[S]:
        """Exit the loop once *trigger* resolves."""
        return self.with_stream(on_shutdown(trigger))

    @property
    def config(self) -> CompositorConfig:
        return self._config

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def layers(self) -> LayerRegistry:
        return self._layers

    def insert_at(self, layer_id: LayerId, component: Component) -> Component | None:
        """Mount *component*; on an id collision return it un-mounted."""
        return self._layers.insert(layer_id, component)

    def replace_at(self, layer_id: LayerId, component: Component) -> Component | None:
        """Mount *component*, evicting (and returning) any same-id occupant."""
        return self._layers.replace(layer_id, component)

    def remove_at(self, layer_id: LayerId, component_id: Id) -> bool:
        """Unmount a component; return whether anything was removed."""
        return self._layers.remove(layer_id, component_id)

    def remove_all(self, component_id: Id) -> int:
        """Unmount *component_id* from every layer."""
        return self._layers.remove_all(component_id)

    def get_at[C](self, layer_id: LayerId, component_id: Id, cls: type[C]) -> C | None:
        """Look up a mounted component of type *cls*."""
        return self._layers.get(layer_id, component_id, cls)

    def get_mut_at[C](self, layer_id: LayerId, component_id: Id, cls: type[C]) -> C | None:
        """Like :meth:`get_at`; the returned object is live and may be mutated."""
        return self._layers.get(layer_id, component_id, cls)

    def take_at[C](self, layer_id: LayerId, component_id: Id, cls: type[C]) -> C | None:
        """Unmount and return a component of type *cls*.

        A component of another type is left where it is.
        """
        return self._layers.take(layer_id, component_id, cls)

    # ------------------------------------------------------------------
    # State / control
    # ------------------------------------------------------------------

    @property
    def state(self) -> S:
        if self._state is _DETACHED:
            raise RuntimeError("state is owned by the dispatch context")
        return self._state  # type: ignore[return-value]

    @state.setter
    def state(self, value: S) -> None:
        if self._state is _DETACHED:
            raise RuntimeError("state is owned by the dispatch context")
        self._state = value

    def state_mut(self) -> S:
        """Return the state for in-place mutation (same object as ``state``)."""
        return self.state

    @property
    def jobs(self) -> Jobs:
        return self._jobs

    def exit(self) -> None:
        """Stop the loop after the current callback batch; no frame is drawn."""
        logger.debug("exit requested")
        self._exit = True

    @property
    def exit_requested(self) -> bool:
        return self._exit

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # One cycle
    # ------------------------------------------------------------------

    def dispatch(self, event: Event, size: Rect | None = None) -> None:
        """Run one dispatch cycle for *event* and apply its callbacks.

        No frame is drawn; :meth:`run` calls this for every event before
        rendering.
        """
        self._apply(self._dispatch(event, size if size is not None else Rect()))

    def _dispatch(self, event: Event, size: Rect) -> list[Callback]:
        cx = Context(self.state, self._jobs, size)
        self._state = _DETACHED
        try:
            self._layers.dispatch(EventAccess(event), cx)
        finally:
            state, callbacks = cx.into_parts()
            self._state = state
        return callbacks

    def _apply(self, callbacks: list[Callback]) -> None:
        for callback in callbacks:
            callback(self)

    def _render(self, backend: Backend) -> None:
        def _draw(surface: Buffer) -> None:
            self._layers.render(surface.area, surface, self.state)

        backend.draw(_draw)

    def _step(self, backend: Backend, item: Event | JobResult) -> bool:
        """Handle one merged item; return ``False`` when the loop must stop."""
        if isinstance(item, JobResult):
            event, delivered = Event.NONE, [item.callback]
        else:
            event, delivered = item, []

        if event.is_exit():
            logger.debug("exit event received")
            return False

        self._apply(self._dispatch(event, backend.size()) + delivered)
        if self._exit:
            return False

        self._render(backend)
        return True

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def run(self, backend: Backend) -> None:
        """Poll events and draw until ``Event.EXIT`` or :meth:`exit`.

        The backend's session guard is held for the whole call and released
        on every exit path.  ``OSError`` from the backend propagates after
        the terminal has been restored.  Event sources registered with the
        ``with_*`` methods are consumed by this call.
        """
        if self._running:
            raise RuntimeError("compositor is already running")
        self._running = True
        self._exit = False
        logger.debug("run loop starting (tick interval %ss)", self._config.tick_interval)
        try:
            with backend.session(mouse_capture=self._config.mouse_capture):
                await self._loop(backend)
        finally:
            self._running = False
            logger.debug("run loop stopped")

    async def _loop(self, backend: Backend) -> None:
        merger: EventMerger[Event | JobResult] = EventMerger()
        self._jobs.start()
        try:
            streams, self._streams = self._streams, []
            for stream in streams:
                merger.add(stream)
            terminals, self._input_terminals = self._input_terminals, []
            for terminal in terminals:
                merger.add(terminal_events(terminal or self._default_terminal(backend)))
            if self._config.tick_interval > 0:
                merger.add(ticks(self._config.tick_interval))
            merger.add(self._jobs.results())

            # Draw the first frame without waiting for a source.
            if not self._step(backend, Event.TICK):
                return
            async for item in merger:
                if not self._step(backend, item):
                    return
        finally:
            await merger.close()
            await self._jobs.close()

    @staticmethod
    def _default_terminal(backend: Backend) -> Terminal:
        terminal = getattr(backend, "terminal", None)
        return terminal if terminal is not None else ProcessTerminal()

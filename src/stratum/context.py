"""Per-cycle context handed to components during dispatch."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stratum.compositor import Compositor
    from stratum.jobs import Jobs
    from stratum.surface import Rect

__all__ = ["Callback", "Context"]

# Deferred work with full access to the compositor; runs after dispatch.
type Callback = Callable[[Compositor], None]


class Context:
    """Owns the shared state for exactly one dispatch cycle.

    The compositor moves its state into a fresh ``Context`` before
    dispatch and takes it back afterwards together with the queued
    callbacks, so during dispatch this object is the only holder of the
    state.
    """

    __slots__ = ("_callbacks", "_jobs", "_size", "_state")

    def __init__(self, state: Any, jobs: Jobs, size: Rect) -> None:
        self._state = state
        self._jobs = jobs
        self._size = size
        self._callbacks: list[Callback] = []

    @property
    def state(self) -> Any:
        return self._state

    @state.setter
    def state(self, value: Any) -> None:
        self._state = value

    def state_mut(self) -> Any:
        """Return the state for in-place mutation (same object as ``state``)."""
        return self._state

    @property
    def size(self) -> Rect:
        """Terminal area at the start of this cycle."""
        return self._size

    @property
    def jobs(self) -> Jobs:
        return self._jobs

    def add_callback(self, callback: Callback) -> None:
        """Queue *callback* to run after dispatch, in FIFO order."""
        self._callbacks.append(callback)

    @property
    def pending_callbacks(self) -> int:
        return len(self._callbacks)

    def into_parts(self) -> tuple[Any, list[Callback]]:
        """Dismantle the context, returning ``(state, callbacks)``."""
        state, callbacks = self._state, self._callbacks
        self._state = None
        self._callbacks = []
        return state, callbacks

"""Events the run loop reacts to, and the single-use access gate around them."""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass
from typing import Any, ClassVar

__all__ = ["Event", "EventAccess", "EventKind"]


class EventKind(enum.Enum):
    USER = "user"
    TERMINAL = "terminal"
    TICK = "tick"
    EXIT = "exit"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class Event:
    """A tagged event.

    * ``Event.user(payload)`` -- application defined.
    * ``Event.terminal(raw)`` -- input from the terminal backend.
    * ``Event.TICK`` -- the tick interval elapsed.
    * ``Event.EXIT`` -- stops the run loop.
    * ``Event.NONE`` -- placeholder left behind when an event is consumed.
    """

    kind: EventKind
    payload: Any = None

    TICK: ClassVar[Event]
    EXIT: ClassVar[Event]
    NONE: ClassVar[Event]

    @classmethod
    def user(cls, payload: Any) -> Event:
        return cls(EventKind.USER, payload)

    @classmethod
    def terminal(cls, raw: Any) -> Event:
        return cls(EventKind.TERMINAL, raw)

    # -- predicates / accessors ----------------------------------------------

    def is_user(self) -> bool:
        return self.kind is EventKind.USER

    def as_user(self) -> Any | None:
        """Return the user payload, or ``None`` for any other kind."""
        return self.payload if self.kind is EventKind.USER else None

    def is_terminal(self) -> bool:
        return self.kind is EventKind.TERMINAL

    def as_terminal(self) -> Any | None:
        """Return the terminal input, or ``None`` for any other kind."""
        return self.payload if self.kind is EventKind.TERMINAL else None

    def is_tick(self) -> bool:
        return self.kind is EventKind.TICK

    def is_exit(self) -> bool:
        return self.kind is EventKind.EXIT

    def is_none(self) -> bool:
        return self.kind is EventKind.NONE

    def __repr__(self) -> str:
        if self.kind in (EventKind.USER, EventKind.TERMINAL):
            return f"Event.{self.kind.name}({self.payload!r})"
        return f"Event.{self.kind.name}"


Event.TICK = Event(EventKind.TICK)
Event.EXIT = Event(EventKind.EXIT)
Event.NONE = Event(EventKind.NONE)


class EventAccess:
    """Holds the live event for one dispatch cycle.

    The event counts as consumed exactly when the held value is
    ``Event.NONE``.  :meth:`consume` is the usual way to get there;
    :meth:`replace` swaps the event without consuming anything (unless the
    replacement is ``Event.NONE`` itself).
    """

    __slots__ = ("_event",)

    def __init__(self, event: Event) -> None:
        self._event = event

    def peek(self) -> Event:
        return self._event

    def consume(self) -> Event:
        """Mark the event handled and return it."""
        previous, self._event = self._event, Event.NONE
        return previous

    def replace(self, event: Event) -> Event:
        """Substitute *event* and return the previous one."""
        previous, self._event = self._event, event
        return previous

    def is_consumed(self) -> bool:
        return self._event.kind is EventKind.NONE

    def cloned(self) -> Event:
        """Return a deep copy of the held event."""
        return copy.deepcopy(self._event)

    def __repr__(self) -> str:
        return f"EventAccess({self._event!r})"

"""The capability every mounted component provides.

Components are stored behind this protocol in the layer registry and are
otherwise opaque to the loop; typed access goes through
:meth:`stratum.compositor.Compositor.get_at` and friends.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from stratum.context import Context
    from stratum.events import EventAccess
    from stratum.identity import Id
    from stratum.surface import Buffer, Rect

__all__ = [
    "Component",
    "dispatch_to",
    "forward_handle_event",
    "forward_view",
    "wants_update",
]


@runtime_checkable
class Component(Protocol):
    """A drawable, addressable UI element.

    ``id`` must return the same value for the component's whole lifetime;
    it is queried on every dispatch and every lookup.  ``view`` draws into
    *surface* and must not mutate *state*.  *area* is the whole terminal;
    components carve out their own region.
    """

    def id(self) -> Id: ...

    def view(self, area: Rect, surface: Buffer, state: Any) -> None: ...

    # NOTE: handle_event and should_update are optional members.  A
    # component without ``handle_event(event, cx)`` ignores every event; one
    # without ``should_update(state)`` is always drawn.  Both are looked up
    # with ``getattr`` at each call site.


def dispatch_to(component: object, event: EventAccess, cx: Context) -> None:
    """Call ``component.handle_event`` if it has one."""
    handler = getattr(component, "handle_event", None)
    if handler is not None:
        handler(event, cx)


def wants_update(component: object, state: Any) -> bool:
    """Return ``component.should_update(state)``, defaulting to ``True``."""
    check = getattr(component, "should_update", None)
    if check is None:
        return True
    return bool(check(state))


def forward_handle_event(event: EventAccess, cx: Context, *children: object) -> bool:
    """Forward *event* to *children* in order until one consumes it.

    Returns ``True`` if the event ended up consumed, so a parent can bail
    out early::

        if forward_handle_event(event, cx, self.input, self.list):
            return
    """
    for child in children:
        dispatch_to(child, event, cx)
        if event.is_consumed():
            return True
    return False


def forward_view(area: Rect, surface: Buffer, state: Any, *children: object) -> bool:
    """Draw every child whose ``should_update`` allows it.

    Returns ``True`` if at least one child drew.
    """
    drew = False
    for child in children:
        if wants_update(child, state):
            child.view(area, surface, state)  # type: ignore[attr-defined]
            drew = True
    return drew

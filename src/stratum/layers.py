"""Layered storage of heterogeneous components.

Components live in per-layer lists; list order is the sibling z-order
within a layer.  Events travel from the highest layer down and stop at the
first consumer; drawing goes from the lowest layer up so higher layers
paint over lower ones.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from stratum.component import dispatch_to, wants_update
from stratum.identity import LayerId

if TYPE_CHECKING:
    from stratum.component import Component
    from stratum.context import Context
    from stratum.events import EventAccess
    from stratum.identity import Id
    from stratum.surface import Buffer, Rect

__all__ = ["LayerRegistry"]

logger = logging.getLogger(__name__)


class LayerRegistry:
    """Mapping of :class:`LayerId` to an ordered list of components.

    Within one layer a component id occurs at most once.  The same id may
    be mounted on several layers at the same time.
    """

    def __init__(self) -> None:
        self._layers: dict[LayerId, list[Component]] = {}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _layer(self, layer_id: LayerId) -> list[Component]:
        return self._layers.setdefault(LayerId(layer_id), [])

    def _position(self, layer_id: LayerId, component_id: Id) -> int | None:
        for i, component in enumerate(self._layers.get(layer_id, ())):
            if component.id() == component_id:
                return i
        return None

    def _prune(self, layer_id: LayerId) -> None:
        if not self._layers.get(layer_id, True):
            del self._layers[layer_id]

    # ------------------------------------------------------------------
    # Mounting
    # ------------------------------------------------------------------

    def insert(self, layer_id: LayerId, component: Component) -> Component | None:
        """Mount *component* at the end of *layer_id*.

        Returns ``None`` on success.  If the layer already holds a
        component with the same id nothing is mounted and *component* is
        handed back.
        """
        if self._position(layer_id, component.id()) is not None:
            logger.debug("insert rejected: %r already mounted at %r", component.id(), layer_id)
            return component
        self._layer(layer_id).append(component)
        return None

    def replace(self, layer_id: LayerId, component: Component) -> Component | None:
        """Evict any same-id occupant of *layer_id*, then mount at the end.

        Returns the evicted component, if there was one.
        """
        layer = self._layer(layer_id)
        index = self._position(layer_id, component.id())
        evicted = layer.pop(index) if index is not None else None
        layer.append(component)
        return evicted

    def remove(self, layer_id: LayerId, component_id: Id) -> bool:
        """Unmount *component_id* from *layer_id*; return whether it was there."""
        index = self._position(layer_id, component_id)
        if index is None:
            return False
        del self._layers[layer_id][index]
        self._prune(layer_id)
        return True

    def remove_all(self, component_id: Id) -> int:
        """Unmount *component_id* from every layer; return how many were removed."""
        removed = 0
        for layer_id in list(self._layers):
            if self.remove(layer_id, component_id):
                removed += 1
        return removed

    # ------------------------------------------------------------------
    # Typed lookup
    # ------------------------------------------------------------------

    def get[C](self, layer_id: LayerId, component_id: Id, cls: type[C]) -> C | None:
        """Return the component if it is mounted and an instance of *cls*.

        A component of another type under the same id is reported as absent.
        """
        index = self._position(layer_id, component_id)
        if index is None:
            return None
        component = self._layers[layer_id][index]
        return component if isinstance(component, cls) else None

    def take[C](self, layer_id: LayerId, component_id: Id, cls: type[C]) -> C | None:
        """Unmount and return the component if it is an instance of *cls*.

        On a type mismatch the component stays mounted at its position.
        """
        index = self._position(layer_id, component_id)
        if index is None:
            return None
        layer = self._layers[layer_id]
        if not isinstance(layer[index], cls):
            return None
        component = layer.pop(index)
        self._prune(layer_id)
        return component

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def layer_ids(self) -> list[LayerId]:
        """Non-empty layers in ascending order."""
        return sorted(self._layers)

    def components(self, layer_id: LayerId) -> list[Component]:
        """A snapshot of the components mounted on *layer_id*, in order."""
        return list(self._layers.get(layer_id, ()))

    def contains(self, layer_id: LayerId, component_id: Id) -> bool:
        return self._position(layer_id, component_id) is not None

    def __iter__(self) -> Iterator[tuple[LayerId, Component]]:
        """Yield ``(layer_id, component)`` bottom-up, in render order."""
        for layer_id in self.layer_ids():
            for component in self._layers[layer_id]:
                yield layer_id, component

    def __len__(self) -> int:
        return sum(len(layer) for layer in self._layers.values())

    # ------------------------------------------------------------------
    # Dispatch / render
    # ------------------------------------------------------------------

    def dispatch(self, event: EventAccess, cx: Context) -> None:
        """Route *event* top-down until a component consumes it.

        Layers are visited from the highest id to the lowest and, inside a
        layer, in mount order.
        """
        if event.is_consumed():
            return
        for layer_id in sorted(self._layers, reverse=True):
            for component in list(self._layers.get(layer_id, ())):
                dispatch_to(component, event, cx)
                if event.is_consumed():
                    return

    def render(self, area: Rect, surface: Buffer, state: Any) -> int:
        """Draw components bottom-up into *surface*; return how many drew."""
        drawn = 0
        for _layer_id, component in self:
            if wants_update(component, state):
                component.view(area, surface, state)
                drawn += 1
        return drawn

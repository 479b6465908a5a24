"""
Viewport state and change propagation.

The ``ViewportController`` keeps the last camera description reported by
the map engine and, on every change, forwards it together with freshly
computed geo bounds to a single listener (normally the host application's
``on_map_change`` callback).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional

from .bounds import GeoBounds, ZERO_BOUNDS

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Viewport:
    """Map camera: centre, zoom, pitch and bearing.

    ``extra`` carries engine-specific fields we do not interpret.
    """
    latitude: float
    longitude: float
    zoom: float
    pitch: float = 0.0
    bearing: float = 0.0
    width: int = 0
    height: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    def with_changes(self, **changes: Any) -> "Viewport":
        return replace(self, **changes)


@dataclass(frozen=True)
class InteractionState:
    """What the user was doing when the viewport changed (not interpreted)."""
    is_dragging: bool = False
    is_panning: bool = False
    is_zooming: bool = False
    is_rotating: bool = False


MapChangeListener = Callable[[Viewport, GeoBounds], None]


class ViewportController:
    """Owns the current viewport and notifies a listener on change.

    Parameters
    ----------
    bounds_source : callable
        Returns the current geo bounds; called once per change so the
        bounds are never stale.
    listener : callable, optional
        ``listener(viewport, bounds)``; may be replaced at any time.
    """

    def __init__(
        self,
        bounds_source: Callable[[], GeoBounds] = lambda: ZERO_BOUNDS,
        listener: Optional[MapChangeListener] = None,
    ):
        self._bounds_source = bounds_source
        self.listener = listener
        self._viewport: Optional[Viewport] = None

    @property
    def viewport(self) -> Optional[Viewport]:
        """Last applied viewport, or None before the first change."""
        return self._viewport

    @property
    def zoom(self) -> Optional[float]:
        return self._viewport.zoom if self._viewport is not None else None

    def apply_viewport_change(
        self,
        new_viewport: Viewport,
        interaction_state: Optional[InteractionState] = None,
        previous_viewport: Optional[Viewport] = None,
    ) -> GeoBounds:
        """Replace the stored viewport and notify the listener.

        No range validation: values are stored exactly as the engine
        reported them.  Returns the bounds that were computed.
        """
        self._viewport = new_viewport
        bounds = self._bounds_source()

        listener = self.listener
        if listener is None:
            return bounds
        try:
            listener(new_viewport, bounds)
        except Exception:
            log.exception("Map change listener failed")
        return bounds

    def reset(self) -> None:
        self._viewport = None

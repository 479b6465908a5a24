"""
Map surface orchestration.

``MapSurface`` wires map engine lifecycle events to the viewport controller,
the icon registrar and the selection resolver, and owns the overlay state
machine:

    UNMOUNTED ──mount──▶ MOUNTED ──resolved click──▶ SELECTED
        ▲                   │                          │  ▲
        └─────unmount───────┴──────────unmount─────────┘  └─ resolved click

  - Icon registration starts on ``mount`` and runs at most once per mount.
  - A resolved click shows the info overlay; nothing hides it again while
    the surface stays mounted.
  - Viewport changes never affect the overlay.

The class is free of any GUI toolkit; the Qt widget in
``flightmap.gui.flight_map`` forwards engine signals into it.
"""
from __future__ import annotations

import enum
import logging
from typing import Callable, Optional

from ..geo.bounds import GeoBounds, compute_bounds
from ..geo.viewport import InteractionState, MapChangeListener, Viewport, ViewportController
from .engine import MapHandle, PointerEvent
from .icons import IconRegistrar, RegistrationTask
from .selection import SelectionResolver

log = logging.getLogger(__name__)

AircraftSelectListener = Callable[[str], None]


class SurfaceState(enum.Enum):
    UNMOUNTED = "unmounted"
    MOUNTED = "mounted"          # ready, nothing selected
    SELECTED = "selected"        # ready, an aircraft was selected


class MapSurface:
    """State machine behind the aircraft map.

    Parameters
    ----------
    registrar : IconRegistrar
        Registers the aircraft icon when the engine becomes ready.
    resolver : SelectionResolver, optional
    on_map_change : callable, optional
        ``on_map_change(viewport, bounds)`` after every viewport change.
    on_aircraft_select : callable, optional
        ``on_aircraft_select(icao24)`` after every resolved click.
    """

    def __init__(
        self,
        registrar: IconRegistrar,
        resolver: Optional[SelectionResolver] = None,
        on_map_change: Optional[MapChangeListener] = None,
        on_aircraft_select: Optional[AircraftSelectListener] = None,
    ):
        self._registrar = registrar
        self._resolver = resolver or SelectionResolver()
        self._controller = ViewportController(self.compute_bounds, on_map_change)
        self.on_aircraft_select = on_aircraft_select

        self._handle: Optional[MapHandle] = None
        self._state = SurfaceState.UNMOUNTED
        self._overlay_visible = False
        self._selected_id: Optional[str] = None
        self._icon_task: Optional[RegistrationTask] = None

    # ── Read-only state ───────────────────────────────────────────────

    @property
    def state(self) -> SurfaceState:
        return self._state

    @property
    def is_mounted(self) -> bool:
        return self._state is not SurfaceState.UNMOUNTED

    @property
    def handle(self) -> Optional[MapHandle]:
        return self._handle

    @property
    def overlay_visible(self) -> bool:
        return self._overlay_visible

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def viewport(self) -> Optional[Viewport]:
        return self._controller.viewport

    @property
    def zoom(self) -> Optional[float]:
        """Current zoom, or None until the first viewport change."""
        return self._controller.zoom

    @property
    def icon_task(self) -> Optional[RegistrationTask]:
        return self._icon_task

    @property
    def on_map_change(self) -> Optional[MapChangeListener]:
        return self._controller.listener

    @on_map_change.setter
    def on_map_change(self, listener: Optional[MapChangeListener]) -> None:
        self._controller.listener = listener

    # ── Engine lifecycle ──────────────────────────────────────────────

    def mount(self, handle: MapHandle) -> None:
        """Engine reported ready: bind the handle and register the icon."""
        if self.is_mounted:
            log.debug("Map surface already mounted; ignoring ready event")
            return
        self._handle = handle
        self._state = SurfaceState.MOUNTED
        log.info("Map surface mounted")
        self._icon_task = self._registrar.on_surface_load(handle)

    def unmount(self) -> None:
        """Release the engine handle; late icon completions are dropped."""
        if not self.is_mounted:
            return
        if self._icon_task is not None:
            self._icon_task.cancel()
        self._handle = None
        self._state = SurfaceState.UNMOUNTED
        self._overlay_visible = False
        self._selected_id = None
        self._controller.reset()
        log.info("Map surface unmounted")

    # ── Engine events ─────────────────────────────────────────────────

    def compute_bounds(self) -> GeoBounds:
        return compute_bounds(self._handle)

    def handle_viewport_change(
        self,
        viewport: Viewport,
        interaction_state: Optional[InteractionState] = None,
        previous_viewport: Optional[Viewport] = None,
    ) -> GeoBounds:
        if not self.is_mounted:
            log.debug("Viewport change before mount; bounds will be zeroed")
        return self._controller.apply_viewport_change(
            viewport, interaction_state, previous_viewport,
        )

    def handle_click(self, event: PointerEvent) -> Optional[str]:
        """Resolve a click; on success show the overlay and notify the host."""
        if not self.is_mounted:
            log.debug("Click before mount ignored")
            return None
        icao24 = self._resolver.resolve_click(event)
        if icao24 is None:
            return None

        self._selected_id = icao24
        self._overlay_visible = True
        self._state = SurfaceState.SELECTED
        log.debug("Aircraft %s selected", icao24)

        callback = self.on_aircraft_select
        if callback is not None:
            try:
                callback(icao24)
            except Exception:
                log.exception("Aircraft select callback failed")
        return icao24

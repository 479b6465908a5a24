"""
Flight map widget — Qt composition of the map surface.

    MapView (engine) ──loaded──────────▶ MapSurface.mount ──▶ IconRegistrar
                     ──clicked─────────▶ MapSurface.handle_click
                     ──viewport_changed▶ MapSurface.handle_viewport_change
    MapSurface ──on_map_change──────▶ map_changed signal + AircraftLayer zoom
               ──on_aircraft_select─▶ aircraft_selected signal + overlay

The host feeds data in with ``set_state_vectors()`` and
``set_selected_aircraft()`` and listens to the signals.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from PyQt5 import QtCore, QtWidgets

from ..geo.bounds import GeoBounds
from ..geo.viewport import Viewport
from ..map.engine import MapOptions
from ..map.icons import IconRegistrar, RegistrationTask, TaskState, thread_runner
from ..map.surface import MapSurface
from ..opensky import StateVector, StateVectorCollection
from .aircraft_layer import AircraftLayer
from .info_overlay import AircraftInfoOverlay
from .map_view import MapView
from .rasterize import load_sdf_icon

log = logging.getLogger(__name__)

_OVERLAY_MARGIN_LEFT = 8
_OVERLAY_MARGIN_BOTTOM = 48


class _MainThreadInvoker(QtCore.QObject):
    """Runs callables on the thread this object lives in (the GUI thread).

    Emitting ``invoke`` from a worker thread is delivered through a queued
    connection.
    """

    invoke = QtCore.pyqtSignal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.invoke.connect(self._run)

    @QtCore.pyqtSlot(object)
    def _run(self, fn: Callable[[], None]) -> None:
        fn()


class FlightMapWidget(QtWidgets.QWidget):
    """Live aircraft map.

    Signals
    -------
    map_changed(Viewport, GeoBounds)
        After every viewport change, with bounds read from the live map.
    aircraft_selected(str)
        icao24 of a clicked aircraft.
    icon_registration_failed(str)
        The aircraft icon could not be loaded or registered.
    """

    map_changed = QtCore.pyqtSignal(object, object)
    aircraft_selected = QtCore.pyqtSignal(str)
    icon_registration_failed = QtCore.pyqtSignal(str)

    def __init__(
        self,
        options: Optional[MapOptions] = None,
        registrar: Optional[IconRegistrar] = None,
        parent: Optional[QtWidgets.QWidget] = None,
    ):
        super().__init__(parent)
        self._view = MapView(options, self)
        self._invoker = _MainThreadInvoker(self)

        if registrar is None:
            registrar = IconRegistrar(
                load_sdf_icon, runner=thread_runner(self._invoker.invoke.emit),
            )
        self._surface = MapSurface(
            registrar,
            on_map_change=self._on_map_change,
            on_aircraft_select=self._on_aircraft_select,
        )

        self._state_vectors = StateVectorCollection()
        self._selected: Optional[StateVector] = None

        self._layer = AircraftLayer(self._view, parent=self)
        self._overlay = AircraftInfoOverlay(self._view)
        self._overlay.hide()

        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)
        layout.addWidget(self._view, 1)

        self._view.loaded.connect(self._on_loaded)
        self._view.clicked.connect(self._surface.handle_click)
        self._view.viewport_changed.connect(self._surface.handle_viewport_change)

    # ── Accessors ─────────────────────────────────────────────────────

    @property
    def view(self) -> MapView:
        return self._view

    @property
    def surface(self) -> MapSurface:
        return self._surface

    @property
    def layer(self) -> AircraftLayer:
        return self._layer

    @property
    def overlay(self) -> AircraftInfoOverlay:
        return self._overlay

    @property
    def state_vectors(self) -> StateVectorCollection:
        return self._state_vectors

    def geo_bounds(self) -> GeoBounds:
        return self._surface.compute_bounds()

    # ── Host inputs ───────────────────────────────────────────────────

    def set_state_vectors(self, state_vectors: StateVectorCollection) -> None:
        self._state_vectors = state_vectors
        self._update_layer()

    def set_selected_aircraft(self, aircraft: Optional[StateVector]) -> None:
        self._selected = aircraft
        self._overlay.set_aircraft(aircraft)
        self._update_layer()

    def shutdown(self) -> None:
        """Unmount the surface and release engine resources."""
        self._surface.unmount()
        self._view.release()
        self._layer.clear()
        self._sync_overlay()

    # ── Surface callbacks ─────────────────────────────────────────────

    def _on_loaded(self) -> None:
        self._surface.mount(self._view)
        task = self._surface.icon_task
        if task is not None:
            task.add_done_callback(self._on_icon_task_done)
        self._update_layer()

    def _on_icon_task_done(self, task: RegistrationTask) -> None:
        if task.state is TaskState.FAILED:
            self.icon_registration_failed.emit(str(task.error))

    def _on_map_change(self, viewport: Viewport, bounds: GeoBounds) -> None:
        self._update_layer()
        self.map_changed.emit(viewport, bounds)

    def _on_aircraft_select(self, icao24: str) -> None:
        self._sync_overlay()
        self.aircraft_selected.emit(icao24)

    # ── Internals ─────────────────────────────────────────────────────

    def _update_layer(self) -> None:
        self._layer.update(self._state_vectors, self._surface.zoom, self._selected)

    def _sync_overlay(self) -> None:
        visible = self._surface.overlay_visible
        if visible and not self._overlay.isVisible():
            self._position_overlay()
            self._overlay.raise_()
        self._overlay.setVisible(visible)

    def _position_overlay(self) -> None:
        y = self._view.height() - self._overlay.height() - _OVERLAY_MARGIN_BOTTOM
        self._overlay.move(_OVERLAY_MARGIN_LEFT, max(0, y))

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        self._position_overlay()

    def closeEvent(self, event) -> None:
        self.shutdown()
        super().closeEvent(event)

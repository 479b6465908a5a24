"""Host window: flight map plus a status bar."""
from __future__ import annotations

import logging
from typing import Optional

from PyQt5 import QtWidgets

from ..geo.bounds import GeoBounds
from ..geo.viewport import Viewport
from ..map.engine import MapOptions
from ..opensky import StateVectorCollection
from .flight_map import FlightMapWidget

log = logging.getLogger(__name__)


class MainWindow(QtWidgets.QMainWindow):
    """Hosts a ``FlightMapWidget`` and plays the role of the data owner.

    It holds the state vector snapshot, resolves selections to state
    vectors and reports how many aircraft are inside the visible bounds.
    """

    def __init__(
        self,
        options: MapOptions,
        state_vectors: Optional[StateVectorCollection] = None,
        parent: Optional[QtWidgets.QWidget] = None,
    ):
        super().__init__(parent)
        self.setWindowTitle("flightmap")
        self.resize(1280, 800)

        self._map = FlightMapWidget(options, parent=self)
        self.setCentralWidget(self._map)

        self._status = QtWidgets.QLabel("")
        self.statusBar().addWidget(self._status, 1)

        self._map.map_changed.connect(self._on_map_changed)
        self._map.aircraft_selected.connect(self._on_aircraft_selected)
        self._map.icon_registration_failed.connect(self._on_icon_failed)

        self._map.set_state_vectors(state_vectors or StateVectorCollection())
        self._status.setText(f"{len(self._map.state_vectors)} aircraft loaded")

    @property
    def flight_map(self) -> FlightMapWidget:
        return self._map

    def _on_map_changed(self, viewport: Viewport, bounds: GeoBounds) -> None:
        in_view = len(self._map.state_vectors.within(bounds))
        self._status.setText(
            f"zoom {viewport.zoom:.1f}  |  "
            f"N {bounds.northern_latitude:.3f}  E {bounds.eastern_longitude:.3f}  "
            f"S {bounds.southern_latitude:.3f}  W {bounds.western_longitude:.3f}  |  "
            f"{in_view} aircraft in view"
        )

    def _on_aircraft_selected(self, icao24: str) -> None:
        aircraft = self._map.state_vectors.get(icao24)
        if aircraft is None:
            log.warning("Selected aircraft %s is not in the current snapshot", icao24)
        else:
            log.info("Selected %s (%s)", aircraft.display_callsign, icao24)
        self._map.set_selected_aircraft(aircraft)

    def _on_icon_failed(self, message: str) -> None:
        self.statusBar().showMessage(f"Aircraft icon unavailable: {message}", 10000)

    def closeEvent(self, event) -> None:
        self._map.shutdown()
        log.info("flightmap shutdown complete.")
        super().closeEvent(event)

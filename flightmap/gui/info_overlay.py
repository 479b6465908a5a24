"""Floating info panel for the selected aircraft."""
from __future__ import annotations

from typing import Dict, Optional

from PyQt5 import QtCore, QtWidgets

from ..opensky import StateVector

_PANEL_SS = (
    "QFrame#aircraftInfo { background: rgba(6,10,16,205); "
    "border: 1px solid rgba(12,26,46,220); border-radius: 4px; }"
    "QLabel { color: #a0b8d0; font-family: 'Helvetica Neue Mono'; "
    "font-size: 10px; background: transparent; }"
    "QLabel#callsign { color: #00ccff; font-size: 13px; font-weight: bold; }"
)

_PLACEHOLDER = "—"

# (key, label) in display order
_ROWS = (
    ("icao24", "ICAO24"),
    ("origin_country", "Country"),
    ("altitude", "Altitude"),
    ("velocity", "Velocity"),
    ("true_track", "Heading"),
    ("vertical_rate", "V/S"),
    ("squawk", "Squawk"),
)


def format_fields(aircraft: Optional[StateVector]) -> Dict[str, str]:
    """Display strings for every overlay row (placeholders when unknown)."""
    if aircraft is None:
        fields = {key: _PLACEHOLDER for key, _ in _ROWS}
        fields["callsign"] = "No aircraft selected"
        return fields

    def _num(value: Optional[float], fmt: str) -> str:
        return fmt.format(value) if value is not None else _PLACEHOLDER

    altitude = aircraft.altitude
    return {
        "callsign": aircraft.display_callsign,
        "icao24": aircraft.icao24,
        "origin_country": aircraft.origin_country or _PLACEHOLDER,
        "altitude": "on ground" if aircraft.on_ground else _num(altitude, "{:,.0f} m"),
        "velocity": _num(
            aircraft.velocity * 3.6 if aircraft.velocity is not None else None,
            "{:.0f} km/h",
        ),
        "true_track": _num(aircraft.true_track, "{:.0f}°"),
        "vertical_rate": _num(aircraft.vertical_rate, "{:+.1f} m/s"),
        "squawk": aircraft.squawk or _PLACEHOLDER,
    }


class AircraftInfoOverlay(QtWidgets.QFrame):
    """Compact read-only summary of one state vector."""

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self.setObjectName("aircraftInfo")
        self.setStyleSheet(_PANEL_SS)
        self.setAttribute(QtCore.Qt.WA_StyledBackground, True)
        self.setFixedSize(256, 150)

        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(10, 8, 10, 8)
        layout.setSpacing(2)

        self._callsign = QtWidgets.QLabel()
        self._callsign.setObjectName("callsign")
        layout.addWidget(self._callsign)

        grid = QtWidgets.QGridLayout()
        grid.setHorizontalSpacing(12)
        grid.setVerticalSpacing(1)
        self._values: Dict[str, QtWidgets.QLabel] = {}
        for row, (key, label) in enumerate(_ROWS):
            grid.addWidget(QtWidgets.QLabel(label), row, 0)
            value = QtWidgets.QLabel()
            value.setAlignment(QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter)
            grid.addWidget(value, row, 1)
            self._values[key] = value
        layout.addLayout(grid)

        self.set_aircraft(None)

    def set_aircraft(self, aircraft: Optional[StateVector]) -> None:
        fields = format_fields(aircraft)
        self._callsign.setText(fields["callsign"])
        for key, label in self._values.items():
            label.setText(fields[key])

    def text_of(self, key: str) -> str:
        if key == "callsign":
            return self._callsign.text()
        return self._values[key].text()

"""
Aircraft layer — one icon per positioned state vector.

Icons are drawn from the SDF image registered under ``aircraft-icon``,
tinted per aircraft (selected / on ground / airborne by altitude), rotated
to the true track and scaled with zoom.  Until the icon is registered the
layer draws plain dots, then swaps to icons when ``image_added`` fires.

Every item carries a ``Feature`` with the aircraft's ``icao24`` so the map
view's hit test can resolve clicks.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from PyQt5 import QtCore, QtGui, QtWidgets

from ..config import AIRCRAFT_ICON_NAME, AIRCRAFT_ICON_SIZE
from ..geo.projection import lonlat_to_scene
from ..map.engine import Feature
from ..map.icons import IconImage
from ..map.sdf import tint_sdf
from ..opensky import StateVector, StateVectorCollection
from .map_view import MapView
from .rasterize import rgba_to_qimage

log = logging.getLogger(__name__)

LAYER_ID = "aircraft"

Rgb = Tuple[int, int, int]

SELECTED_COLOR: Rgb = (0, 204, 255)
GROUND_COLOR: Rgb = (112, 136, 152)
LOW_COLOR: Rgb = (255, 140, 0)        # near the ground
HIGH_COLOR: Rgb = (235, 240, 255)     # cruise altitude
_HIGH_ALTITUDE_M = 12000.0

_Z_AIRCRAFT = 10.0
_Z_SELECTED = 20.0


def altitude_color(altitude_m: Optional[float]) -> Rgb:
    """Linear blend from LOW_COLOR at 0 m to HIGH_COLOR at cruise."""
    if altitude_m is None:
        return LOW_COLOR
    t = max(0.0, min(1.0, altitude_m / _HIGH_ALTITUDE_M))
    return tuple(int(round(lo + (hi - lo) * t)) for lo, hi in zip(LOW_COLOR, HIGH_COLOR))


def aircraft_color(sv: StateVector, selected: bool) -> Rgb:
    if selected:
        return SELECTED_COLOR
    if sv.on_ground:
        return GROUND_COLOR
    # quantise so the pixmap cache stays small
    alt = sv.altitude
    if alt is not None:
        alt = round(alt / 500.0) * 500.0
    return altitude_color(alt)


def icon_scale(zoom: Optional[float]) -> float:
    """Icon size multiplier: small when zoomed out, larger when zoomed in."""
    if zoom is None:
        return 1.0
    return max(0.6, min(1.6, zoom / 8.0))


class AircraftItem(QtWidgets.QGraphicsPixmapItem):
    """Map icon for one aircraft; ``feature`` is read by the hit test."""

    def __init__(self, icao24: str):
        super().__init__()
        self.icao24 = icao24
        self.feature = Feature(layer_id=LAYER_ID, properties={"icao24": icao24})
        self.setFlag(QtWidgets.QGraphicsItem.ItemIgnoresTransformations, True)
        self.setTransformationMode(QtCore.Qt.SmoothTransformation)
        self.setShapeMode(QtWidgets.QGraphicsPixmapItem.BoundingRectShape)
        self.setCursor(QtCore.Qt.PointingHandCursor)

    def set_state(self, sv: StateVector, pixmap: QtGui.QPixmap, scale: float, selected: bool) -> None:
        self.feature = Feature(
            layer_id=LAYER_ID,
            properties={"icao24": sv.icao24, "callsign": sv.display_callsign},
        )
        self.setPixmap(pixmap)
        self.setOffset(-pixmap.width() / 2.0, -pixmap.height() / 2.0)
        self.setScale(scale)
        self.setRotation(sv.true_track or 0.0)
        self.setPos(*lonlat_to_scene(sv.longitude, sv.latitude))
        self.setZValue(_Z_SELECTED if selected else _Z_AIRCRAFT)
        self.setToolTip(sv.display_callsign)


class AircraftLayer(QtCore.QObject):
    """Renders a ``StateVectorCollection`` into a ``MapView``."""

    def __init__(self, view: MapView, icon_name: str = AIRCRAFT_ICON_NAME, parent=None):
        super().__init__(parent)
        self._view = view
        self._icon_name = icon_name
        self._items: Dict[str, AircraftItem] = {}
        self._pixmaps: Dict[Tuple[Rgb, bool], QtGui.QPixmap] = {}

        self._state_vectors = StateVectorCollection()
        self._zoom: Optional[float] = None
        self._selected: Optional[StateVector] = None

        view.image_added.connect(self._on_image_added)

    @property
    def item_count(self) -> int:
        return len(self._items)

    def item(self, icao24: str) -> Optional[AircraftItem]:
        return self._items.get(icao24)

    def update(
        self,
        state_vectors: StateVectorCollection,
        zoom: Optional[float],
        selected: Optional[StateVector] = None,
    ) -> None:
        self._state_vectors = state_vectors
        self._zoom = zoom
        self._selected = selected
        self._render()

    def clear(self) -> None:
        scene = self._view.scene()
        for item in self._items.values():
            scene.removeItem(item)
        self._items.clear()

    def _render(self) -> None:
        scene = self._view.scene()
        selected_id = self._selected.icao24 if self._selected is not None else None
        scale = icon_scale(self._zoom)
        has_icon = self._view.has_image(self._icon_name)

        seen = set()
        for sv in self._state_vectors.positioned():
            seen.add(sv.icao24)
            is_selected = sv.icao24 == selected_id
            pixmap = self._pixmap_for(aircraft_color(sv, is_selected), has_icon)
            item = self._items.get(sv.icao24)
            if item is None:
                item = AircraftItem(sv.icao24)
                scene.addItem(item)
                self._items[sv.icao24] = item
            item.set_state(sv, pixmap, scale, is_selected)

        for icao24 in list(self._items):
            if icao24 not in seen:
                scene.removeItem(self._items.pop(icao24))

    def _pixmap_for(self, color: Rgb, has_icon: bool) -> QtGui.QPixmap:
        key = (color, has_icon)
        pixmap = self._pixmaps.get(key)
        if pixmap is None:
            pixmap = self._icon_pixmap(color) if has_icon else self._dot_pixmap(color)
            self._pixmaps[key] = pixmap
        return pixmap

    def _icon_pixmap(self, color: Rgb) -> QtGui.QPixmap:
        registered = self._view.get_image(self._icon_name)
        image: IconImage = registered.image
        if registered.sdf:
            rgba = tint_sdf(image.data[..., 3], color)
        else:
            rgba = image.data
        return QtGui.QPixmap.fromImage(rgba_to_qimage(rgba))

    @staticmethod
    def _dot_pixmap(color: Rgb) -> QtGui.QPixmap:
        w, h = AIRCRAFT_ICON_SIZE
        pixmap = QtGui.QPixmap(w, h)
        pixmap.fill(QtCore.Qt.transparent)
        painter = QtGui.QPainter(pixmap)
        painter.setRenderHint(QtGui.QPainter.Antialiasing)
        painter.setPen(QtCore.Qt.NoPen)
        painter.setBrush(QtGui.QColor(*color))
        painter.drawEllipse(QtCore.QRectF(w * 0.3, h * 0.3, w * 0.4, h * 0.4))
        painter.end()
        return pixmap

    def _on_image_added(self, name: str) -> None:
        if name != self._icon_name:
            return
        log.debug("Aircraft icon available; redrawing %d aircraft", len(self._items))
        self._render()

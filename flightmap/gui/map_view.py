"""
Map view — QGraphicsView-based web mercator map engine.

Implements the ``MapHandle`` contract for the map surface:

  - ``get_bounds()``  rendered extent as north-east / south-west corners
  - ``add_image()``   named image registry used by the aircraft layer
  - ``loaded``        emitted once, after the first show, when geometry is final
  - ``clicked``       PointerEvent with features hit-tested top-most first
  - ``viewport_changed(viewport, interaction, previous)`` on pan / zoom / resize

Scene coordinates are web mercator kilometres (see ``geo.projection``); y
grows southwards.  The view never rotates or pitches, so bearing and pitch
are always reported as 0.

Basemap: a dark background with a 10° graticule, plus Mapbox raster tiles
when an access token is configured.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from PyQt5 import QtCore, QtGui, QtWidgets

from ..geo.bounds import GeoBounds, LngLat, LngLatBounds
from ..geo.projection import (
    MAX_LATITUDE,
    WORLD_WIDTH_M,
    SCENE_SCALE,
    lonlat_to_scene,
    scene_to_lonlat,
    zoom_to_scale,
)
from ..geo.tiles import TileKey, TileLoader, tile_to_lonlat, tiles_covering
from ..geo.viewport import InteractionState, Viewport
from ..map.engine import Feature, MapOptions, PointerEvent

log = logging.getLogger(__name__)

_WORLD_SCENE = WORLD_WIDTH_M * SCENE_SCALE
_CLICK_SLOP_PX = 4
_ZOOM_STEP = 0.5           # zoom levels per wheel notch
_KEY_PAN_PX = 100
_TILE_Z = -100.0
_GRATICULE_Z = -50.0


@dataclass
class RegisteredImage:
    """An image in the engine registry."""
    image: Any
    sdf: bool = False


# ── Raster tile layer ─────────────────────────────────────────────────

class TileLayer(QtCore.QObject):
    """Keeps the visible basemap tiles in the scene.

    Tiles are fetched on a small thread pool; ``_tile_ready`` is emitted
    from the worker and delivered on the GUI thread (queued connection).
    Only tiles covering the last requested extent stay in the scene.
    After ``shutdown()`` every update is a no-op.
    """

    _tile_ready = QtCore.pyqtSignal(object, object)  # TileKey, bytes

    def __init__(self, scene: QtWidgets.QGraphicsScene, loader: TileLoader, parent=None):
        super().__init__(parent)
        self._scene = scene
        self._loader = loader
        self._pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="tile")
        self._items: Dict[TileKey, QtWidgets.QGraphicsPixmapItem] = {}
        self._pending: Set[TileKey] = set()
        self._closed = False
        self._tile_ready.connect(self._on_tile_ready)

    @property
    def tile_count(self) -> int:
        return len(self._items)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def update(self, bounds: GeoBounds, zoom: float) -> None:
        if self._closed:
            return
        wanted = set(tiles_covering(bounds, zoom))

        for key in [k for k in self._items if k not in wanted]:
            self._scene.removeItem(self._items.pop(key))
        self._pending &= wanted

        for key in wanted:
            if key in self._items or key in self._pending:
                continue
            data = self._loader.cached(key)
            if data is not None:
                self._add_tile(key, data)
                continue
            self._pending.add(key)
            self._pool.submit(self._fetch, key)

    def shutdown(self) -> None:
        """Stop fetching and drop all tiles from the scene."""
        if self._closed:
            return
        self._closed = True
        self._pool.shutdown(wait=False)
        for item in self._items.values():
            self._scene.removeItem(item)
        self._items.clear()
        self._pending.clear()

    def _fetch(self, key: TileKey) -> None:
        data = self._loader.get(key)
        self._tile_ready.emit(key, data)

    def _on_tile_ready(self, key: TileKey, data: Optional[bytes]) -> None:
        if self._closed or key not in self._pending:
            return  # shut down, or scrolled out of view while fetching
        self._pending.discard(key)
        if data:
            self._add_tile(key, data)

    def _add_tile(self, key: TileKey, data: bytes) -> None:
        pixmap = QtGui.QPixmap()
        if not pixmap.loadFromData(data):
            log.warning("Undecodable tile %d/%d/%d", key.z, key.x, key.y)
            return
        lon, lat = tile_to_lonlat(key)
        x, y = lonlat_to_scene(lon, lat)
        span = _WORLD_SCENE / (2 ** key.z)

        item = QtWidgets.QGraphicsPixmapItem(pixmap)
        item.setTransformationMode(QtCore.Qt.SmoothTransformation)
        item.setScale(span / pixmap.width())
        item.setPos(x, y)
        item.setZValue(_TILE_Z)
        self._scene.addItem(item)
        self._items[key] = item


# ── Map view ──────────────────────────────────────────────────────────

class MapView(QtWidgets.QGraphicsView):
    """Interactive web mercator map.

    Signals
    -------
    loaded()
        Emitted once when the view is first shown and ready for queries.
    clicked(PointerEvent)
        Emitted on a click (press/release without drag).
    viewport_changed(Viewport, InteractionState, Viewport)
        New viewport, interaction metadata, previous viewport (may be None).
    image_added(str)
        Emitted when an image is registered.
    """

    loaded = QtCore.pyqtSignal()
    clicked = QtCore.pyqtSignal(object)
    viewport_changed = QtCore.pyqtSignal(object, object, object)
    image_added = QtCore.pyqtSignal(str)

    def __init__(self, options: Optional[MapOptions] = None, parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self._scene = QtWidgets.QGraphicsScene(self)
        self.setScene(self._scene)
        self._options = options or MapOptions()

        self._images: Dict[str, RegisteredImage] = {}
        self._is_loaded = False
        self._zoom = self._options.clamp_zoom(self._options.zoom)
        self._viewport: Optional[Viewport] = None
        self._press_pos: Optional[QtCore.QPoint] = None
        self._dragging = False
        self._suppress_scroll = False

        half = _WORLD_SCENE / 2.0
        self._scene.setSceneRect(-half, -half, _WORLD_SCENE, _WORLD_SCENE)
        self._scene.setBackgroundBrush(QtGui.QBrush(QtGui.QColor(10, 14, 20)))

        self.setRenderHints(
            QtGui.QPainter.Antialiasing | QtGui.QPainter.SmoothPixmapTransform
        )
        self.setDragMode(
            QtWidgets.QGraphicsView.ScrollHandDrag if self._options.drag_pan
            else QtWidgets.QGraphicsView.NoDrag
        )
        self.setTransformationAnchor(QtWidgets.QGraphicsView.AnchorUnderMouse)
        self.setResizeAnchor(QtWidgets.QGraphicsView.AnchorViewCenter)
        self.setHorizontalScrollBarPolicy(QtCore.Qt.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(QtCore.Qt.ScrollBarAlwaysOff)
        self.setViewportUpdateMode(QtWidgets.QGraphicsView.SmartViewportUpdate)
        self.setFocusPolicy(
            QtCore.Qt.StrongFocus if self._options.keyboard else QtCore.Qt.NoFocus
        )
        self.setStyleSheet("border: none;")

        scale = zoom_to_scale(self._zoom)
        self.setTransform(QtGui.QTransform.fromScale(scale, scale))
        self.centerOn(*lonlat_to_scene(self._options.longitude, self._options.latitude))

        self._add_graticule()

        self._tiles: Optional[TileLayer] = None
        if self._options.access_token:
            loader = TileLoader(self._options.access_token, self._options.map_style)
            self._tiles = TileLayer(self._scene, loader, self)

        # Coalesce bursts of scroll events into one tile refresh
        self._tile_timer = QtCore.QTimer(self)
        self._tile_timer.setSingleShot(True)
        self._tile_timer.setInterval(150)
        self._tile_timer.timeout.connect(self._refresh_tiles)

        self.horizontalScrollBar().valueChanged.connect(self._on_scrolled)
        self.verticalScrollBar().valueChanged.connect(self._on_scrolled)

    # ── MapHandle ─────────────────────────────────────────────────────

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def options(self) -> MapOptions:
        return self._options

    @property
    def tile_layer(self) -> Optional[TileLayer]:
        """Basemap tiles; None without an access token or after release."""
        return self._tiles

    def get_bounds(self) -> LngLatBounds:
        rect = self.mapToScene(self.viewport().rect()).boundingRect()
        east, north = scene_to_lonlat(rect.right(), rect.top())
        west, south = scene_to_lonlat(rect.left(), rect.bottom())
        return LngLatBounds(
            north_east=LngLat(lng=east, lat=north),
            south_west=LngLat(lng=west, lat=south),
        )

    def add_image(self, name: str, image: Any, sdf: bool = False) -> None:
        if name in self._images:
            log.warning("Image %r already registered; keeping the first one", name)
            return
        self._images[name] = RegisteredImage(image=image, sdf=sdf)
        self.image_added.emit(name)

    def has_image(self, name: str) -> bool:
        return name in self._images

    def get_image(self, name: str) -> Optional[RegisteredImage]:
        return self._images.get(name)

    def current_viewport(self) -> Viewport:
        centre = self.mapToScene(self.viewport().rect().center())
        lon, lat = scene_to_lonlat(centre.x(), centre.y())
        return Viewport(
            latitude=lat,
            longitude=lon,
            zoom=self._zoom,
            pitch=0.0,
            bearing=0.0,
            width=self.viewport().width(),
            height=self.viewport().height(),
        )

    def release(self) -> None:
        """Drop engine resources; the view must not be used as a handle after."""
        self._images.clear()
        self._tile_timer.stop()
        if self._tiles is not None:
            self._tiles.shutdown()
            self._tiles = None
        self._is_loaded = False

    # ── Camera ────────────────────────────────────────────────────────

    def set_zoom(self, zoom: float, interaction: Optional[InteractionState] = None) -> None:
        """Zoom to *zoom* (clamped) around the current transformation anchor."""
        zoom = self._options.clamp_zoom(zoom)
        if zoom == self._zoom:
            return
        factor = 2.0 ** (zoom - self._zoom)
        self._zoom = zoom
        self._suppress_scroll = True
        try:
            self.scale(factor, factor)
        finally:
            self._suppress_scroll = False
        self._emit_viewport_change(interaction or InteractionState(is_zooming=True))

    def fly_to(self, longitude: float, latitude: float, zoom: Optional[float] = None) -> None:
        """Centre the map on a position, optionally changing zoom."""
        if zoom is not None:
            self._zoom = self._options.clamp_zoom(zoom)
            scale = zoom_to_scale(self._zoom)
            self.setTransform(QtGui.QTransform.fromScale(scale, scale))
        self._suppress_scroll = True
        try:
            self.centerOn(*lonlat_to_scene(longitude, latitude))
        finally:
            self._suppress_scroll = False
        self._emit_viewport_change(InteractionState(is_panning=True))

    # ── Qt events ─────────────────────────────────────────────────────

    def showEvent(self, event: QtGui.QShowEvent) -> None:
        super().showEvent(event)
        if not self._is_loaded:
            # Wait one event loop turn so the initial layout has settled
            QtCore.QTimer.singleShot(0, self._on_first_show)

    def _on_first_show(self) -> None:
        if self._is_loaded:
            return
        self.centerOn(*lonlat_to_scene(self._options.longitude, self._options.latitude))
        self._is_loaded = True
        self._viewport = self.current_viewport()
        log.info("Map view ready at %.4f, %.4f zoom %.1f",
                 self._viewport.latitude, self._viewport.longitude, self._zoom)
        self._refresh_tiles()
        self.loaded.emit()

    def resizeEvent(self, event: QtGui.QResizeEvent) -> None:
        super().resizeEvent(event)
        if self._is_loaded:
            self._emit_viewport_change(InteractionState())

    def wheelEvent(self, event: QtGui.QWheelEvent) -> None:
        if not self._options.scroll_zoom:
            event.ignore()
            return
        notches = event.angleDelta().y() / 120.0
        if notches:
            self.set_zoom(self._zoom + notches * _ZOOM_STEP)
        event.accept()

    def mouseDoubleClickEvent(self, event: QtGui.QMouseEvent) -> None:
        if self._options.double_click_zoom and event.button() == QtCore.Qt.LeftButton:
            self.set_zoom(self._zoom + 1.0)
            event.accept()
            return
        super().mouseDoubleClickEvent(event)

    def keyPressEvent(self, event: QtGui.QKeyEvent) -> None:
        if not self._options.keyboard:
            super().keyPressEvent(event)
            return
        key = event.key()
        if key in (QtCore.Qt.Key_Plus, QtCore.Qt.Key_Equal):
            self._zoom_at_centre(self._zoom + 1.0)
        elif key == QtCore.Qt.Key_Minus:
            self._zoom_at_centre(self._zoom - 1.0)
        elif key in (QtCore.Qt.Key_Left, QtCore.Qt.Key_Right):
            step = _KEY_PAN_PX if key == QtCore.Qt.Key_Right else -_KEY_PAN_PX
            bar = self.horizontalScrollBar()
            bar.setValue(bar.value() + step)
        elif key in (QtCore.Qt.Key_Up, QtCore.Qt.Key_Down):
            step = _KEY_PAN_PX if key == QtCore.Qt.Key_Down else -_KEY_PAN_PX
            bar = self.verticalScrollBar()
            bar.setValue(bar.value() + step)
        else:
            super().keyPressEvent(event)
            return
        event.accept()

    def mousePressEvent(self, event: QtGui.QMouseEvent) -> None:
        if event.button() == QtCore.Qt.LeftButton:
            self._press_pos = event.pos()
            self._dragging = True
        super().mousePressEvent(event)

    def mouseReleaseEvent(self, event: QtGui.QMouseEvent) -> None:
        press = self._press_pos
        self._press_pos = None
        self._dragging = False
        super().mouseReleaseEvent(event)
        if press is None or event.button() != QtCore.Qt.LeftButton:
            return
        if (event.pos() - press).manhattanLength() <= _CLICK_SLOP_PX:
            self.clicked.emit(self.pointer_event_at(event.pos()))

    # ── Hit testing ───────────────────────────────────────────────────

    def features_at(self, pos: QtCore.QPoint) -> List[Feature]:
        """Features under a viewport position, top-most first."""
        features = []
        for item in self.items(pos):
            feature = getattr(item, "feature", None)
            if isinstance(feature, Feature):
                features.append(feature)
        return features

    def pointer_event_at(self, pos: QtCore.QPoint) -> PointerEvent:
        scene_pt = self.mapToScene(pos)
        lon, lat = scene_to_lonlat(scene_pt.x(), scene_pt.y())
        return PointerEvent(
            lng_lat=LngLat(lng=lon, lat=lat),
            point=(float(pos.x()), float(pos.y())),
            features=tuple(self.features_at(pos)),
        )

    # ── Internals ─────────────────────────────────────────────────────

    def _zoom_at_centre(self, zoom: float) -> None:
        anchor = self.transformationAnchor()
        self.setTransformationAnchor(QtWidgets.QGraphicsView.AnchorViewCenter)
        try:
            self.set_zoom(zoom)
        finally:
            self.setTransformationAnchor(anchor)

    def _on_scrolled(self, _value: int) -> None:
        if self._suppress_scroll or not self._is_loaded:
            return
        self._emit_viewport_change(
            InteractionState(is_dragging=self._dragging, is_panning=True)
        )

    def _emit_viewport_change(self, interaction: InteractionState) -> None:
        if not self._is_loaded:
            return
        previous = self._viewport
        viewport = self.current_viewport()
        if viewport == previous:
            return
        self._viewport = viewport
        self._tile_timer.start()
        self.viewport_changed.emit(viewport, interaction, previous)

    def _refresh_tiles(self) -> None:
        if self._tiles is None or not self._is_loaded:
            return
        extent = self.get_bounds()
        self._tiles.update(GeoBounds.from_lnglat_bounds(extent), self._zoom)

    def _add_graticule(self) -> None:
        pen = QtGui.QPen(QtGui.QColor(40, 56, 72, 160))
        pen.setCosmetic(True)
        pen.setWidthF(1.0)
        path = QtGui.QPainterPath()
        lat_edge = int(MAX_LATITUDE // 10) * 10
        for lon in range(-180, 181, 10):
            x0, y0 = lonlat_to_scene(lon, -lat_edge)
            x1, y1 = lonlat_to_scene(lon, lat_edge)
            path.moveTo(x0, y0)
            path.lineTo(x1, y1)
        for lat in range(-lat_edge, lat_edge + 1, 10):
            x0, y0 = lonlat_to_scene(-180, lat)
            x1, y1 = lonlat_to_scene(180, lat)
            path.moveTo(x0, y0)
            path.lineTo(x1, y1)
        item = self._scene.addPath(path, pen)
        item.setZValue(_GRATICULE_Z)

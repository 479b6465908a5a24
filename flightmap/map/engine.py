"""
Map engine contracts.

The map surface logic never talks to a concrete renderer.  It depends on:

  - ``MapHandle``: the live engine handle available after the engine
    reports it is ready (extent query + image registry).
  - ``PointerEvent`` / ``Feature``: what a click delivers, with features
    already hit-tested by the engine, top-most first.
  - ``MapOptions``: initial camera and interaction capabilities the engine
    must honour.

``flightmap.gui.map_view.MapView`` is the Qt implementation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Tuple

from ..config import (
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    DEFAULT_MAP_STYLE,
    DEFAULT_ZOOM,
    MapConfig,
)
from ..geo.bounds import LngLat, LngLatBounds


class MapHandle(Protocol):
    """Live map engine handle (reader of extent, owner of the image registry)."""

    def get_bounds(self) -> LngLatBounds:
        ...

    def add_image(self, name: str, image: Any, sdf: bool = False) -> None:
        ...

    def has_image(self, name: str) -> bool:
        ...


@dataclass(frozen=True)
class Feature:
    """A rendered, hit-testable map entity."""
    layer_id: str
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PointerEvent:
    """A click on the map.

    ``features`` is ordered top-most first, exactly as the engine
    hit-tested them.
    """
    lng_lat: LngLat
    point: Tuple[float, float] = (0.0, 0.0)
    features: Tuple[Feature, ...] = ()


@dataclass(frozen=True)
class MapOptions:
    """Initial camera and interaction capabilities of the map surface."""

    latitude: float = DEFAULT_LATITUDE
    longitude: float = DEFAULT_LONGITUDE
    zoom: float = DEFAULT_ZOOM
    map_style: str = DEFAULT_MAP_STYLE
    access_token: Optional[str] = None

    drag_pan: bool = True
    drag_rotate: bool = False
    scroll_zoom: bool = True
    touch_zoom: bool = True
    touch_rotate: bool = True
    keyboard: bool = True
    double_click_zoom: bool = True

    min_zoom: float = 0.0
    max_zoom: float = 20.0
    min_pitch: float = 0.0
    max_pitch: float = 85.0

    def clamp_zoom(self, zoom: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, zoom))

    def clamp_pitch(self, pitch: float) -> float:
        return max(self.min_pitch, min(self.max_pitch, pitch))

    @classmethod
    def from_config(cls, config: MapConfig, **overrides: Any) -> "MapOptions":
        values = dict(
            latitude=config.latitude,
            longitude=config.longitude,
            zoom=config.zoom,
            map_style=config.map_style,
            access_token=config.access_token,
        )
        values.update(overrides)
        return cls(**values)


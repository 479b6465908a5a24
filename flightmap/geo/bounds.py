"""
Geographic bounds of the visible map.

``compute_bounds`` derives a ``GeoBounds`` box from a live map handle.  The
box is always re-read from the engine's rendered extent, so it stays correct
when the camera was moved outside our own viewport bookkeeping (gestures,
resizes).  Before the map is mounted there is no handle and the result is the
zeroed box; callers that trigger data fetches always get a well-formed box.

Example
-------
    bounds = compute_bounds(map_view)
    params = bounds.as_query_params()   # {"lamin": ..., "lomin": ..., ...}
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

from shapely.geometry import Polygon, box

if TYPE_CHECKING:
    from ..map.engine import MapHandle

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LngLat:
    """A longitude/latitude pair as reported by the map engine."""
    lng: float
    lat: float


@dataclass(frozen=True)
class LngLatBounds:
    """Rendered extent of the map: north-east and south-west corners."""
    north_east: LngLat
    south_west: LngLat


@dataclass(frozen=True)
class GeoBounds:
    """Visible latitude/longitude box.

    The four edges are independent; no ordering between them is enforced
    beyond what the engine reports.
    """
    northern_latitude: float = 0.0
    eastern_longitude: float = 0.0
    southern_latitude: float = 0.0
    western_longitude: float = 0.0

    @property
    def is_empty(self) -> bool:
        return (
            self.northern_latitude == self.southern_latitude
            or self.eastern_longitude == self.western_longitude
        )

    def contains(self, lon: float, lat: float) -> bool:
        return (
            self.southern_latitude <= lat <= self.northern_latitude
            and self.western_longitude <= lon <= self.eastern_longitude
        )

    def to_polygon(self) -> Polygon:
        return box(
            self.western_longitude,
            self.southern_latitude,
            self.eastern_longitude,
            self.northern_latitude,
        )

    def as_dict(self) -> Dict[str, float]:
        return {
            "northernLatitude": self.northern_latitude,
            "easternLongitude": self.eastern_longitude,
            "southernLatitude": self.southern_latitude,
            "westernLongitude": self.western_longitude,
        }

    def as_query_params(self) -> Dict[str, float]:
        """Bounding box in the OpenSky ``/states/all`` query vocabulary."""
        return {
            "lamin": self.southern_latitude,
            "lomin": self.western_longitude,
            "lamax": self.northern_latitude,
            "lomax": self.eastern_longitude,
        }

    @classmethod
    def from_lnglat_bounds(cls, extent: LngLatBounds) -> "GeoBounds":
        ne, sw = extent.north_east, extent.south_west
        return cls(
            northern_latitude=ne.lat,
            eastern_longitude=ne.lng,
            southern_latitude=sw.lat,
            western_longitude=sw.lng,
        )


ZERO_BOUNDS = GeoBounds()


def compute_bounds(handle: Optional["MapHandle"]) -> GeoBounds:
    """Return the geo bounds currently rendered by *handle*.

    Never raises: an absent handle, or an engine that fails to report its
    extent, yields the zeroed box.
    """
    if handle is None:
        return ZERO_BOUNDS
    try:
        extent = handle.get_bounds()
    except Exception as exc:
        log.warning("Map engine failed to report bounds: %s", exc)
        return ZERO_BOUNDS
    return GeoBounds.from_lnglat_bounds(extent)

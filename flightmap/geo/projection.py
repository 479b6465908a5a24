"""
Web mercator projection helpers.

The Qt map view lays its scene out in EPSG:3857 metres scaled by
``SCENE_SCALE`` (scene units are kilometres).  Zoom levels follow the
Mapbox GL convention: at zoom ``z`` the whole world is ``512 * 2**z``
pixels wide.
"""
from __future__ import annotations

import math
from typing import Tuple

import pyproj

from ..config import TILE_SIZE_PX

WGS84 = pyproj.CRS("EPSG:4326")
WEB_MERCATOR = pyproj.CRS("EPSG:3857")

_to_merc = pyproj.Transformer.from_crs(WGS84, WEB_MERCATOR, always_xy=True)
_to_lonlat = pyproj.Transformer.from_crs(WEB_MERCATOR, WGS84, always_xy=True)

EARTH_RADIUS_M = 6378137.0
WORLD_WIDTH_M = 2.0 * math.pi * EARTH_RADIUS_M
MAX_LATITUDE = 85.0511287798

SCENE_SCALE = 1.0 / 1000.0  # scene units per projected metre


def clamp_latitude(lat: float) -> float:
    return max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))


def lonlat_to_scene(lon: float, lat: float) -> Tuple[float, float]:
    """(lon, lat) → scene (x, y); y grows southwards like screen space."""
    x, y = _to_merc.transform(lon, clamp_latitude(lat))
    return x * SCENE_SCALE, -y * SCENE_SCALE


def scene_to_lonlat(sx: float, sy: float) -> Tuple[float, float]:
    """Inverse of ``lonlat_to_scene``.

    Points beyond the edge of the world are clamped to it, so longitudes
    stay within [-180, 180] and latitudes within the mercator limit.
    """
    half = WORLD_WIDTH_M / 2.0
    x = max(-half, min(half, sx / SCENE_SCALE))
    y = max(-half, min(half, -sy / SCENE_SCALE))
    lon, lat = _to_lonlat.transform(x, y)
    return lon, lat


def zoom_to_scale(zoom: float) -> float:
    """View scale (pixels per scene unit) for a zoom level."""
    world_px = TILE_SIZE_PX * (2.0 ** zoom)
    return world_px / (WORLD_WIDTH_M * SCENE_SCALE)


def scale_to_zoom(scale: float) -> float:
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    world_px = scale * WORLD_WIDTH_M * SCENE_SCALE
    return math.log2(world_px / TILE_SIZE_PX)

"""
Application configuration.

Static defaults live here as module constants.  Anything that differs per
machine (the map access token, the initial camera) is read from the process
environment once at startup via ``MapConfig.from_env()``:

  - ``FLIGHTMAP_MAPBOX_TOKEN``      map tile access token (``MAPBOX_TOKEN`` also accepted)
  - ``FLIGHTMAP_DEFAULT_LATITUDE``  initial map centre latitude
  - ``FLIGHTMAP_DEFAULT_LONGITUDE`` initial map centre longitude
  - ``FLIGHTMAP_DEFAULT_ZOOM``      initial zoom level
  - ``FLIGHTMAP_MAP_STYLE``         Mapbox style id, e.g. ``mapbox/dark-v10``
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

log = logging.getLogger(__name__)

# ── Camera defaults ───────────────────────────────────────────────────
DEFAULT_ZOOM = 8.0
DEFAULT_LATITUDE = 47.3769
DEFAULT_LONGITUDE = 8.5417

# ── Map style ─────────────────────────────────────────────────────────
DEFAULT_MAP_STYLE = "mapbox/dark-v10"
TILE_SIZE_PX = 512

# ── Aircraft icon ─────────────────────────────────────────────────────
RESOURCES_DIR = Path(__file__).resolve().parent / "resources"
AIRCRAFT_ICON_PATH = RESOURCES_DIR / "airplanemode_active-24px.svg"
AIRCRAFT_ICON_NAME = "aircraft-icon"
AIRCRAFT_ICON_SIZE = (24, 24)

_TOKEN_VARS = ("FLIGHTMAP_MAPBOX_TOKEN", "MAPBOX_TOKEN")


def _float_from_env(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring %s=%r (not a number), using %s", key, raw, default)
        return default


@dataclass(frozen=True)
class MapConfig:
    """Startup configuration for the map surface."""

    access_token: Optional[str] = None
    latitude: float = DEFAULT_LATITUDE
    longitude: float = DEFAULT_LONGITUDE
    zoom: float = DEFAULT_ZOOM
    map_style: str = DEFAULT_MAP_STYLE

    @property
    def has_token(self) -> bool:
        return bool(self.access_token)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "MapConfig":
        env = os.environ if env is None else env

        token = None
        for var in _TOKEN_VARS:
            value = env.get(var, "").strip()
            if value:
                token = value
                break
        if token is None:
            log.info("No map access token set; raster tiles disabled")

        return cls(
            access_token=token,
            latitude=_float_from_env(env, "FLIGHTMAP_DEFAULT_LATITUDE", DEFAULT_LATITUDE),
            longitude=_float_from_env(env, "FLIGHTMAP_DEFAULT_LONGITUDE", DEFAULT_LONGITUDE),
            zoom=_float_from_env(env, "FLIGHTMAP_DEFAULT_ZOOM", DEFAULT_ZOOM),
            map_style=env.get("FLIGHTMAP_MAP_STYLE", "").strip() or DEFAULT_MAP_STYLE,
        )

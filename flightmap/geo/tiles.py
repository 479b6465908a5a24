"""
Raster basemap tiles.

Slippy-map tile maths plus a small fetcher for Mapbox static style tiles.
Tiles are 512 px and addressed ``(z, x, y)`` with ``y = 0`` at the north
edge.  Fetching happens on worker threads; results are kept in an
in-memory LRU cache so panning back over an area does not refetch.

Usage
-----
    loader = TileLoader(access_token="pk....", style="mapbox/dark-v10")
    for key in tiles_covering(bounds, zoom=7):
        png = loader.get(key)       # bytes or None
"""
from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional

import requests

from ..config import DEFAULT_MAP_STYLE, TILE_SIZE_PX
from .bounds import GeoBounds
from .projection import MAX_LATITUDE, clamp_latitude

log = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10  # seconds
_TILE_URL = "https://api.mapbox.com/styles/v1/{style}/tiles/{size}/{z}/{x}/{y}"
MAX_TILE_ZOOM = 20


@dataclass(frozen=True)
class TileKey:
    z: int
    x: int
    y: int


def tile_zoom(zoom: float) -> int:
    """Integer tile level used to render a fractional map zoom."""
    return max(0, min(MAX_TILE_ZOOM, int(math.floor(zoom))))


def lonlat_to_tile(lon: float, lat: float, z: int) -> TileKey:
    n = 2 ** z
    lat_rad = math.radians(clamp_latitude(lat))
    x = int((lon + 180.0) / 360.0 * n)
    y = int((1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n)
    return TileKey(z, max(0, min(n - 1, x)), max(0, min(n - 1, y)))


def tile_to_lonlat(key: TileKey) -> tuple:
    """North-west corner (lon, lat) of a tile."""
    n = 2 ** key.z
    lon = key.x / n * 360.0 - 180.0
    lat = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * key.y / n))))
    return lon, lat


def tiles_covering(bounds: GeoBounds, zoom: float) -> List[TileKey]:
    """All tiles at ``tile_zoom(zoom)`` intersecting *bounds*."""
    if bounds.is_empty:
        return []
    z = tile_zoom(zoom)
    north = min(bounds.northern_latitude, MAX_LATITUDE)
    south = max(bounds.southern_latitude, -MAX_LATITUDE)
    nw = lonlat_to_tile(bounds.western_longitude, north, z)
    se = lonlat_to_tile(bounds.eastern_longitude, south, z)
    return [
        TileKey(z, x, y)
        for y in range(nw.y, se.y + 1)
        for x in range(nw.x, se.x + 1)
    ]


def tile_url(key: TileKey, style: str, access_token: str) -> str:
    base = _TILE_URL.format(style=style, size=TILE_SIZE_PX, z=key.z, x=key.x, y=key.y)
    return f"{base}?access_token={access_token}"


def fetch_with_retry(
    url: str,
    *,
    timeout: float = _DEFAULT_TIMEOUT,
    retries: int = 2,
    backoff: float = 1.0,
) -> requests.Response:
    """GET *url* with automatic retry on transient failures.

    Retries on connection errors, timeouts, and 5xx responses.
    Raises on non-retryable errors (4xx) immediately.
    """
    last_exc: Optional[Exception] = None
    for attempt in range(1, retries + 2):
        try:
            resp = requests.get(url, timeout=timeout)
            if resp.status_code < 500:
                resp.raise_for_status()
                return resp
            log.warning("HTTP %d from tile server (attempt %d/%d)",
                        resp.status_code, attempt, retries + 1)
        except (requests.ConnectionError, requests.Timeout) as exc:
            last_exc = exc
            log.warning("Network error fetching tile (attempt %d/%d): %s",
                        attempt, retries + 1, exc)

        if attempt <= retries:
            time.sleep(backoff * attempt)

    raise last_exc or requests.ConnectionError(f"Failed after {retries + 1} attempts")


class TileLoader:
    """Fetches and caches raster tiles.

    Thread-safe: ``get()`` may be called from several worker threads.
    Failed tiles are remembered for ``failure_ttl`` seconds so a dead tile
    is not hammered on every repaint, then retried.
    """

    def __init__(
        self,
        access_token: str,
        style: str = DEFAULT_MAP_STYLE,
        cache_size: int = 256,
        failure_ttl: float = 60.0,
    ):
        self._token = access_token
        self._style = style
        self._cache_size = cache_size
        self._cache: "OrderedDict[TileKey, bytes]" = OrderedDict()
        self._failure_ttl = failure_ttl
        self._failed: Dict[TileKey, float] = {}  # key -> monotonic time of failure
        self._lock = threading.Lock()

    def cached(self, key: TileKey) -> Optional[bytes]:
        with self._lock:
            data = self._cache.get(key)
            if data is not None:
                self._cache.move_to_end(key)
            return data

    def get(self, key: TileKey) -> Optional[bytes]:
        """Return tile image bytes, fetching if needed; None on failure."""
        data = self.cached(key)
        if data is not None:
            return data
        with self._lock:
            failed_at = self._failed.get(key)
            if failed_at is not None:
                if time.monotonic() - failed_at < self._failure_ttl:
                    return None
                del self._failed[key]

        try:
            resp = fetch_with_retry(tile_url(key, self._style, self._token))
        except requests.RequestException as exc:
            log.warning("Tile %d/%d/%d unavailable: %s", key.z, key.x, key.y, exc)
            with self._lock:
                self._failed[key] = time.monotonic()
            return None

        data = resp.content
        with self._lock:
            self._cache[key] = data
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)
        return data

"""
Projection and basemap tile helpers.

Run with: pytest tests/test_geo.py -v
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from flightmap.geo import projection
from flightmap.geo.bounds import GeoBounds
from flightmap.geo.tiles import (
    TileKey,
    TileLoader,
    fetch_with_retry,
    lonlat_to_tile,
    tile_to_lonlat,
    tile_url,
    tile_zoom,
    tiles_covering,
)


class TestProjection:

    @pytest.mark.parametrize("lon,lat", [(0.0, 0.0), (8.54, 47.37), (-122.4, 37.8), (151.2, -33.9)])
    def test_scene_round_trip(self, lon, lat):
        x, y = projection.lonlat_to_scene(lon, lat)
        back_lon, back_lat = projection.scene_to_lonlat(x, y)
        assert back_lon == pytest.approx(lon, abs=1e-7)
        assert back_lat == pytest.approx(lat, abs=1e-7)

    def test_north_is_up(self):
        _, y_north = projection.lonlat_to_scene(0.0, 60.0)
        _, y_south = projection.lonlat_to_scene(0.0, 10.0)
        assert y_north < y_south

    def test_beyond_world_is_clamped(self):
        lon, lat = projection.scene_to_lonlat(1e9, -1e9)
        assert lon == pytest.approx(180.0)
        assert lat == pytest.approx(projection.MAX_LATITUDE, abs=1e-6)

    def test_zoom_scale_inverse(self):
        for zoom in (0.0, 3.5, 12.0, 20.0):
            assert projection.scale_to_zoom(projection.zoom_to_scale(zoom)) == pytest.approx(zoom)

    def test_zoom_zero_world_is_512px(self):
        scale = projection.zoom_to_scale(0.0)
        world_scene = projection.WORLD_WIDTH_M * projection.SCENE_SCALE
        assert world_scene * scale == pytest.approx(512.0)

    def test_bad_scale(self):
        with pytest.raises(ValueError):
            projection.scale_to_zoom(0.0)


class TestTileMath:

    def test_tile_zoom_floor_and_clamp(self):
        assert tile_zoom(7.9) == 7
        assert tile_zoom(-2.0) == 0
        assert tile_zoom(30.0) == 20

    def test_world_tile(self):
        assert lonlat_to_tile(8.5, 47.4, 0) == TileKey(0, 0, 0)

    def test_known_tile(self):
        # Zurich at z=8
        assert lonlat_to_tile(8.54, 47.37, 8) == TileKey(8, 134, 89)

    def test_tile_corner_round_trip(self):
        key = TileKey(5, 16, 10)
        lon, lat = tile_to_lonlat(key)
        assert lonlat_to_tile(lon + 1e-6, lat - 1e-6, 5) == key

    def test_tiles_covering(self):
        bounds = GeoBounds(51.0, 5.0, 50.0, 4.0)
        keys = tiles_covering(bounds, 6.3)
        assert keys
        assert all(k.z == 6 for k in keys)
        assert lonlat_to_tile(4.5, 50.5, 6) in keys

    def test_tiles_covering_empty_bounds(self):
        assert tiles_covering(GeoBounds(), 5.0) == []

    def test_tile_url(self):
        url = tile_url(TileKey(3, 4, 2), "mapbox/dark-v10", "pk.abc")
        assert url == (
            "https://api.mapbox.com/styles/v1/mapbox/dark-v10/tiles/512/3/4/2"
            "?access_token=pk.abc"
        )


def _response(status, content=b"png"):
    resp = MagicMock()
    resp.status_code = status
    resp.content = content
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status}")
    return resp


class TestFetch:

    @patch("flightmap.geo.tiles.time.sleep")
    @patch("flightmap.geo.tiles.requests.get")
    def test_retries_5xx_then_succeeds(self, mock_get, _sleep):
        mock_get.side_effect = [_response(503), _response(200)]
        assert fetch_with_retry("http://x").content == b"png"
        assert mock_get.call_count == 2

    @patch("flightmap.geo.tiles.time.sleep")
    @patch("flightmap.geo.tiles.requests.get")
    def test_4xx_not_retried(self, mock_get, _sleep):
        mock_get.return_value = _response(401)
        with pytest.raises(requests.HTTPError):
            fetch_with_retry("http://x")
        assert mock_get.call_count == 1

    @patch("flightmap.geo.tiles.time.sleep")
    @patch("flightmap.geo.tiles.requests.get")
    def test_network_errors_exhaust_retries(self, mock_get, _sleep):
        mock_get.side_effect = requests.ConnectionError("down")
        with pytest.raises(requests.ConnectionError):
            fetch_with_retry("http://x", retries=2)
        assert mock_get.call_count == 3


class TestTileLoader:

    @patch("flightmap.geo.tiles.fetch_with_retry")
    def test_caches_tiles(self, mock_fetch):
        mock_fetch.return_value = _response(200, b"tile")
        loader = TileLoader("pk.abc")
        key = TileKey(1, 0, 0)
        assert loader.get(key) == b"tile"
        assert loader.get(key) == b"tile"
        assert loader.cached(key) == b"tile"
        assert mock_fetch.call_count == 1

    @patch("flightmap.geo.tiles.fetch_with_retry")
    def test_failed_tile_not_refetched(self, mock_fetch):
        mock_fetch.side_effect = requests.HTTPError("404")
        loader = TileLoader("pk.abc")
        key = TileKey(1, 1, 1)
        assert loader.get(key) is None
        assert loader.get(key) is None
        assert mock_fetch.call_count == 1

    @patch("flightmap.geo.tiles.fetch_with_retry")
    def test_lru_eviction(self, mock_fetch):
        mock_fetch.return_value = _response(200, b"t")
        loader = TileLoader("pk.abc", cache_size=2)
        for x in range(3):
            loader.get(TileKey(2, x, 0))
        assert loader.cached(TileKey(2, 0, 0)) is None
        assert loader.cached(TileKey(2, 2, 0)) == b"t"

    @patch("flightmap.geo.tiles.time.monotonic")
    @patch("flightmap.geo.tiles.fetch_with_retry")
    def test_failed_tile_retried_after_ttl(self, mock_fetch, mock_clock):
        mock_fetch.side_effect = [requests.ConnectionError("down"), _response(200, b"back")]
        loader = TileLoader("pk.abc", failure_ttl=60.0)
        key = TileKey(1, 1, 1)

        mock_clock.return_value = 100.0
        assert loader.get(key) is None
        mock_clock.return_value = 130.0
        assert loader.get(key) is None
        assert mock_fetch.call_count == 1

        mock_clock.return_value = 161.0
        assert loader.get(key) == b"back"
        assert mock_fetch.call_count == 2

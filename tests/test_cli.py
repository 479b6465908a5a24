"""
Command line options.

Run with: pytest tests/test_cli.py -v
"""
import pytest

pytest.importorskip("PyQt5.QtWidgets")

from flightmap.__main__ import build_options, build_parser
from flightmap.config import MapConfig


class TestBuildOptions:

    def test_environment_values_used_by_default(self):
        args = build_parser().parse_args([])
        config = MapConfig(access_token="pk.x", latitude=10.0, longitude=20.0, zoom=4.0)
        options = build_options(args, config)
        assert (options.latitude, options.longitude, options.zoom) == (10.0, 20.0, 4.0)
        assert options.access_token == "pk.x"

    def test_flags_override_environment(self):
        args = build_parser().parse_args(["--lat", "1.5", "--zoom", "12"])
        options = build_options(args, MapConfig(latitude=10.0, longitude=20.0))
        assert (options.latitude, options.longitude, options.zoom) == (1.5, 20.0, 12.0)

    def test_log_level_choices(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "LOUD"])

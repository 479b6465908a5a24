"""
Shared fixtures for the flightmap test suite.

Core tests use ``FakeMapHandle`` instead of a real engine.  GUI tests get a
session ``QApplication`` on the offscreen platform.
"""
import os
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from flightmap.geo.bounds import LngLat, LngLatBounds
from flightmap.map.icons import IconImage


class FakeMapHandle:
    """Stands in for a mounted map engine."""

    def __init__(self, north_east=(5.0, 51.0), south_west=(4.0, 50.0)):
        self.north_east = north_east
        self.south_west = south_west
        self.images: Dict[str, Tuple[Any, bool]] = {}
        self.add_image_calls = 0
        self.get_bounds_calls = 0

    def get_bounds(self) -> LngLatBounds:
        self.get_bounds_calls += 1
        return LngLatBounds(
            north_east=LngLat(lng=self.north_east[0], lat=self.north_east[1]),
            south_west=LngLat(lng=self.south_west[0], lat=self.south_west[1]),
        )

    def add_image(self, name: str, image: Any, sdf: bool = False) -> None:
        self.add_image_calls += 1
        self.images[name] = (image, sdf)

    def has_image(self, name: str) -> bool:
        return name in self.images


class ManualRunner:
    """Runner that holds jobs until the test completes them."""

    def __init__(self):
        self.pending: List[Tuple[Any, Any]] = []

    def __call__(self, job, done) -> None:
        self.pending.append((job, done))

    def complete_all(self) -> None:
        pending, self.pending = self.pending, []
        for job, done in pending:
            try:
                image = job()
            except Exception as exc:
                done(None, exc)
            else:
                done(image, None)


def make_icon(width: int = 24, height: int = 24) -> IconImage:
    data = np.zeros((height, width, 4), dtype=np.uint8)
    data[..., :3] = 255
    data[4:20, 4:20, 3] = 255
    return IconImage(width=width, height=height, data=data)


@pytest.fixture
def handle() -> FakeMapHandle:
    return FakeMapHandle()


@pytest.fixture
def manual_runner() -> ManualRunner:
    return ManualRunner()


@pytest.fixture
def icon() -> IconImage:
    return make_icon()


@pytest.fixture
def opensky_doc() -> Dict[str, Any]:
    return {
        "time": 1700000000,
        "states": [
            ["4b1805", "SWR123  ", "Switzerland", 1700000000, 1700000001,
             8.55, 47.45, 3500.0, False, 180.5, 270.0, -5.2, None, 3600.0,
             "1000", False, 0],
            ["3c6444", "DLH4AB  ", "Germany", 1700000000, 1700000001,
             4.5, 50.5, 11000.0, False, 230.0, 90.0, 0.0, None, 11100.0,
             None, False, 0],
            ["a0b1c2", None, "United States", None, 1700000001,
             None, None, None, True, 0.0, None, None, None, None,
             None, False, 0],
        ],
    }


@pytest.fixture(scope="session")
def qapp():
    QtWidgets = pytest.importorskip("PyQt5.QtWidgets")
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app

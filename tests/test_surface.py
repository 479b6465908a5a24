"""
Map surface state machine.

Covers mount/unmount, icon registration per mount, click selection and
overlay visibility across viewport changes.

Run with: pytest tests/test_surface.py -v
"""
from unittest.mock import MagicMock

import pytest

from flightmap.config import AIRCRAFT_ICON_NAME
from flightmap.geo.bounds import GeoBounds, LngLat, ZERO_BOUNDS
from flightmap.geo.viewport import InteractionState, Viewport
from flightmap.map.engine import Feature, PointerEvent
from flightmap.map.icons import IconRegistrar, TaskState
from flightmap.map.surface import MapSurface, SurfaceState
from conftest import FakeMapHandle, make_icon


def _click(*features):
    return PointerEvent(lng_lat=LngLat(4.5, 50.5), features=tuple(features))


AIRCRAFT_CLICK = _click(Feature("aircraft", {"icao24": "abc123"}))
EMPTY_CLICK = _click()


@pytest.fixture
def loader():
    return MagicMock(side_effect=lambda: make_icon())


@pytest.fixture
def on_select():
    return MagicMock()


@pytest.fixture
def on_change():
    return MagicMock()


@pytest.fixture
def surface(loader, on_select, on_change):
    return MapSurface(
        IconRegistrar(loader),
        on_map_change=on_change,
        on_aircraft_select=on_select,
    )


@pytest.fixture
def viewport():
    return Viewport(latitude=50.5, longitude=4.5, zoom=8.0)


class TestLifecycle:

    def test_starts_unmounted(self, surface):
        assert surface.state is SurfaceState.UNMOUNTED
        assert surface.handle is None
        assert surface.viewport is None
        assert surface.zoom is None
        assert not surface.overlay_visible

    def test_mount_registers_icon(self, surface, handle):
        surface.mount(handle)
        assert surface.state is SurfaceState.MOUNTED
        assert surface.icon_task.state is TaskState.REGISTERED
        assert handle.images[AIRCRAFT_ICON_NAME][1] is True

    def test_registration_at_most_once_per_mount(self, surface, handle, loader, viewport):
        surface.mount(handle)
        surface.mount(handle)
        for _ in range(5):
            surface.handle_viewport_change(viewport, InteractionState(), None)
            surface.handle_click(AIRCRAFT_CLICK)
            surface.handle_click(EMPTY_CLICK)
        assert loader.call_count == 1
        assert handle.add_image_calls == 1

    def test_remount_registers_again(self, surface, loader):
        first, second = FakeMapHandle(), FakeMapHandle()
        surface.mount(first)
        surface.unmount()
        surface.mount(second)
        assert loader.call_count == 2
        assert second.has_image(AIRCRAFT_ICON_NAME)

    def test_unmount_before_icon_completes(self, handle, manual_runner):
        surface = MapSurface(IconRegistrar(make_icon, runner=manual_runner))
        surface.mount(handle)
        surface.unmount()
        manual_runner.complete_all()

        assert handle.add_image_calls == 0
        assert surface.icon_task.state is TaskState.CANCELLED
        assert surface.state is SurfaceState.UNMOUNTED

    def test_icon_failure_keeps_surface_usable(self, handle, on_select):
        def _broken():
            raise OSError("svg missing")

        surface = MapSurface(IconRegistrar(_broken), on_aircraft_select=on_select)
        surface.mount(handle)
        assert surface.icon_task.state is TaskState.FAILED
        assert surface.handle_click(AIRCRAFT_CLICK) == "abc123"
        on_select.assert_called_once_with("abc123")

    def test_unmount_resets_selection(self, surface, handle):
        surface.mount(handle)
        surface.handle_click(AIRCRAFT_CLICK)
        surface.unmount()
        assert not surface.overlay_visible
        assert surface.selected_id is None
        assert surface.handle is None


class TestSelection:

    def test_empty_click_changes_nothing(self, surface, handle, on_select):
        surface.mount(handle)
        assert surface.handle_click(EMPTY_CLICK) is None
        assert surface.state is SurfaceState.MOUNTED
        assert not surface.overlay_visible
        on_select.assert_not_called()

    def test_resolved_click_selects_and_shows_overlay(self, surface, handle, on_select):
        surface.mount(handle)
        assert surface.handle_click(AIRCRAFT_CLICK) == "abc123"
        on_select.assert_called_once_with("abc123")
        assert surface.overlay_visible
        assert surface.selected_id == "abc123"
        assert surface.state is SurfaceState.SELECTED

    def test_overlay_survives_viewport_changes(self, surface, handle, viewport):
        surface.mount(handle)
        surface.handle_click(AIRCRAFT_CLICK)
        for zoom in (3.0, 9.0, 14.0):
            surface.handle_viewport_change(viewport.with_changes(zoom=zoom))
            assert surface.overlay_visible
            assert surface.state is SurfaceState.SELECTED

    def test_overlay_survives_missed_clicks(self, surface, handle, on_select):
        surface.mount(handle)
        surface.handle_click(AIRCRAFT_CLICK)
        surface.handle_click(EMPTY_CLICK)
        surface.handle_click(_click(Feature("aircraft", {})))
        assert surface.overlay_visible
        assert surface.selected_id == "abc123"
        on_select.assert_called_once()

    def test_new_selection_replaces_id(self, surface, handle, on_select):
        surface.mount(handle)
        surface.handle_click(AIRCRAFT_CLICK)
        surface.handle_click(_click(Feature("aircraft", {"icao24": "def456"})))
        assert surface.selected_id == "def456"
        assert surface.state is SurfaceState.SELECTED
        assert on_select.call_count == 2

    def test_click_before_mount_ignored(self, surface, on_select):
        assert surface.handle_click(AIRCRAFT_CLICK) is None
        assert not surface.overlay_visible
        on_select.assert_not_called()

    def test_without_select_callback(self, handle):
        surface = MapSurface(IconRegistrar(make_icon))
        surface.mount(handle)
        assert surface.handle_click(AIRCRAFT_CLICK) == "abc123"
        assert surface.overlay_visible

    def test_select_callback_error_contained(self, handle):
        surface = MapSurface(
            IconRegistrar(make_icon),
            on_aircraft_select=MagicMock(side_effect=KeyError("abc123")),
        )
        surface.mount(handle)
        assert surface.handle_click(AIRCRAFT_CLICK) == "abc123"
        assert surface.overlay_visible


class TestViewportChanges:

    def test_change_before_mount_reports_zero_bounds(self, surface, on_change, viewport):
        bounds = surface.handle_viewport_change(viewport)
        assert bounds == ZERO_BOUNDS
        on_change.assert_called_once_with(viewport, ZERO_BOUNDS)
        assert surface.compute_bounds() == GeoBounds(0.0, 0.0, 0.0, 0.0)

    def test_change_after_mount_reports_engine_extent(self, surface, handle, on_change, viewport):
        surface.mount(handle)
        surface.handle_viewport_change(viewport, InteractionState(is_dragging=True), None)
        on_change.assert_called_once_with(viewport, GeoBounds(51.0, 5.0, 50.0, 4.0))
        assert surface.zoom == 8.0

    def test_change_does_not_touch_overlay(self, surface, handle, viewport):
        surface.mount(handle)
        surface.handle_viewport_change(viewport)
        assert not surface.overlay_visible
        assert surface.state is SurfaceState.MOUNTED

    def test_listener_can_be_swapped(self, surface, handle, on_change, viewport):
        replacement = MagicMock()
        surface.on_map_change = replacement
        surface.mount(handle)
        surface.handle_viewport_change(viewport)
        on_change.assert_not_called()
        replacement.assert_called_once()

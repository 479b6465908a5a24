"""
Viewport controller behaviour.

Run with: pytest tests/test_viewport.py -v
"""
from unittest.mock import MagicMock

import pytest

from flightmap.geo.bounds import GeoBounds, ZERO_BOUNDS
from flightmap.geo.viewport import InteractionState, Viewport, ViewportController


@pytest.fixture
def viewport():
    return Viewport(latitude=47.0, longitude=8.0, zoom=7.0, width=800, height=600)


class TestViewportController:

    def test_initial_viewport_is_unset(self):
        controller = ViewportController()
        assert controller.viewport is None
        assert controller.zoom is None

    def test_apply_replaces_viewport_and_notifies(self, viewport):
        bounds = GeoBounds(48.0, 9.0, 46.0, 7.0)
        listener = MagicMock()
        controller = ViewportController(lambda: bounds, listener)

        result = controller.apply_viewport_change(viewport, InteractionState(is_zooming=True), None)

        assert controller.viewport is viewport
        assert controller.zoom == 7.0
        assert result == bounds
        listener.assert_called_once_with(viewport, bounds)

    def test_replacement_is_wholesale(self, viewport):
        controller = ViewportController()
        controller.apply_viewport_change(viewport.with_changes(pitch=30.0, extra={"k": 1}))
        controller.apply_viewport_change(viewport)
        assert controller.viewport.pitch == 0.0
        assert controller.viewport.extra == {}

    def test_bounds_recomputed_on_every_change(self, viewport):
        source = MagicMock(return_value=ZERO_BOUNDS)
        controller = ViewportController(source)
        controller.apply_viewport_change(viewport)
        controller.apply_viewport_change(viewport.with_changes(zoom=8.0))
        assert source.call_count == 2

    def test_no_listener_still_updates_state(self, viewport):
        controller = ViewportController()
        controller.apply_viewport_change(viewport)
        assert controller.viewport == viewport

    def test_out_of_range_values_pass_through(self):
        listener = MagicMock()
        controller = ViewportController(listener=listener)
        odd = Viewport(latitude=123.0, longitude=-400.0, zoom=42.0, pitch=120.0)
        controller.apply_viewport_change(odd)
        assert controller.viewport is odd
        listener.assert_called_once_with(odd, ZERO_BOUNDS)

    def test_listener_can_be_replaced(self, viewport):
        first, second = MagicMock(), MagicMock()
        controller = ViewportController(listener=first)
        controller.listener = second
        controller.apply_viewport_change(viewport)
        first.assert_not_called()
        second.assert_called_once()

    def test_listener_error_is_logged_not_raised(self, viewport, caplog):
        controller = ViewportController(listener=MagicMock(side_effect=ValueError("boom")))
        controller.apply_viewport_change(viewport)
        assert controller.viewport is viewport
        assert "Map change listener failed" in caplog.text

    def test_reset_clears_viewport(self, viewport):
        controller = ViewportController()
        controller.apply_viewport_change(viewport)
        controller.reset()
        assert controller.viewport is None

"""
Click-to-aircraft resolution.

Run with: pytest tests/test_selection.py -v
"""
import pytest

from flightmap.geo.bounds import LngLat
from flightmap.map.engine import Feature, PointerEvent
from flightmap.map.selection import SelectionResolver


def _click(*features):
    return PointerEvent(lng_lat=LngLat(8.0, 47.0), point=(10.0, 20.0), features=tuple(features))


class TestSelectionResolver:

    @pytest.fixture
    def resolver(self):
        return SelectionResolver()

    def test_no_features_resolves_nothing(self, resolver):
        assert resolver.resolve_click(_click()) is None

    def test_first_feature_icao24(self, resolver):
        event = _click(Feature("aircraft", {"icao24": "abc123"}))
        assert resolver.resolve_click(event) == "abc123"

    def test_only_top_feature_considered(self, resolver):
        event = _click(
            Feature("labels", {"name": "Zurich"}),
            Feature("aircraft", {"icao24": "abc123"}),
        )
        assert resolver.resolve_click(event) is None

    def test_top_feature_wins_over_lower_aircraft(self, resolver):
        event = _click(
            Feature("aircraft", {"icao24": "top001"}),
            Feature("aircraft", {"icao24": "low002"}),
        )
        assert resolver.resolve_click(event) == "top001"

    @pytest.mark.parametrize("value", [None, 42, "", ["abc"]])
    def test_missing_or_non_string_property(self, resolver, value):
        props = {} if value is None else {"icao24": value}
        assert resolver.resolve_click(_click(Feature("aircraft", props))) is None

    def test_resolution_is_idempotent(self, resolver):
        event = _click(Feature("aircraft", {"icao24": "abc123"}))
        assert resolver.resolve_click(event) == resolver.resolve_click(event) == "abc123"

    def test_custom_property_key(self):
        resolver = SelectionResolver(id_property="id")
        assert resolver.resolve_click(_click(Feature("x", {"id": "q1"}))) == "q1"

"""Click-to-aircraft resolution."""
from __future__ import annotations

import logging
from typing import Optional

from .engine import PointerEvent

log = logging.getLogger(__name__)

ICAO24_PROPERTY = "icao24"


class SelectionResolver:
    """Maps a pointer event to the icao24 of the clicked aircraft.

    Only the top-most hit feature counts; the engine's hit order is trusted
    as-is.  The result is a pure function of the event.
    """

    def __init__(self, id_property: str = ICAO24_PROPERTY):
        self.id_property = id_property

    def resolve_click(self, event: PointerEvent) -> Optional[str]:
        if not event.features:
            return None

        feature = event.features[0]
        value = (feature.properties or {}).get(self.id_property)
        if not isinstance(value, str) or not value:
            log.debug("Top feature on layer %r has no %s", feature.layer_id, self.id_property)
            return None
        return value

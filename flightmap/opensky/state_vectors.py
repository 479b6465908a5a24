"""
OpenSky state vector model.

A state vector is one reported aircraft position/velocity sample.  The
OpenSky ``/states/all`` endpoint returns them as positional arrays:

    {"time": 1700000000,
     "states": [["4b1805", "SWR123  ", "Switzerland", 1700000000, ...], ...]}

This module only parses such documents; it does not poll the network.

Usage
-----
    states = StateVectorCollection.load(Path("states.json"))
    for sv in states.within(bounds):
        print(sv.icao24, sv.callsign, sv.latitude, sv.longitude)
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Sequence

if TYPE_CHECKING:
    from ..geo.bounds import GeoBounds

log = logging.getLogger(__name__)

# Index positions in an OpenSky state array
_FIELDS = (
    "icao24",
    "callsign",
    "origin_country",
    "time_position",
    "last_contact",
    "longitude",
    "latitude",
    "baro_altitude",
    "on_ground",
    "velocity",
    "true_track",
    "vertical_rate",
    "sensors",
    "geo_altitude",
    "squawk",
    "spi",
    "position_source",
)


@dataclass
class StateVector:
    """One aircraft state as reported by OpenSky."""

    icao24: str
    callsign: Optional[str] = None
    origin_country: str = ""
    time_position: Optional[int] = None
    last_contact: int = 0
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    baro_altitude: Optional[float] = None    # metres
    on_ground: bool = False
    velocity: Optional[float] = None         # m/s over ground
    true_track: Optional[float] = None       # degrees clockwise from north
    vertical_rate: Optional[float] = None    # m/s
    sensors: Optional[List[int]] = None
    geo_altitude: Optional[float] = None     # metres
    squawk: Optional[str] = None
    spi: bool = False
    position_source: int = 0

    @property
    def has_position(self) -> bool:
        return self.longitude is not None and self.latitude is not None

    @property
    def display_callsign(self) -> str:
        callsign = (self.callsign or "").strip()
        return callsign or self.icao24

    @property
    def altitude(self) -> Optional[float]:
        """Best available altitude in metres (geometric preferred)."""
        if self.geo_altitude is not None:
            return self.geo_altitude
        return self.baro_altitude

    @classmethod
    def from_array(cls, row: Sequence[Any]) -> "StateVector":
        """Build from an OpenSky positional state array.

        Raises ValueError if the row is too short or has no icao24.
        """
        if len(row) < 17:
            raise ValueError(f"state array has {len(row)} fields, expected 17")
        values = dict(zip(_FIELDS, row))
        icao24 = values.pop("icao24")
        if not isinstance(icao24, str) or not icao24.strip():
            raise ValueError(f"invalid icao24: {icao24!r}")
        values["on_ground"] = bool(values["on_ground"])
        values["spi"] = bool(values["spi"])
        values["position_source"] = int(values["position_source"] or 0)
        values["last_contact"] = int(values["last_contact"] or 0)
        values["origin_country"] = values["origin_country"] or ""
        return cls(icao24=icao24.strip().lower(), **values)

    def as_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in _FIELDS}


@dataclass
class StateVectorCollection:
    """A snapshot of state vectors at one point in time."""

    time: int = 0
    states: List[StateVector] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.states)

    def __iter__(self) -> Iterator[StateVector]:
        return iter(self.states)

    def get(self, icao24: str) -> Optional[StateVector]:
        icao24 = icao24.strip().lower()
        for sv in self.states:
            if sv.icao24 == icao24:
                return sv
        return None

    def positioned(self) -> List[StateVector]:
        return [sv for sv in self.states if sv.has_position]

    def within(self, bounds: "GeoBounds") -> List[StateVector]:
        """State vectors whose position lies inside *bounds* (edges inclusive)."""
        return [
            sv for sv in self.states
            if sv.has_position and bounds.contains(sv.longitude, sv.latitude)
        ]

    @classmethod
    def from_json(cls, doc: Dict[str, Any]) -> "StateVectorCollection":
        """Parse an OpenSky ``/states/all`` response document.

        Malformed rows are skipped with a warning; ``"states": null``
        (no aircraft) yields an empty collection.  A document that is not
        a JSON object raises ``ValueError``.
        """
        if not isinstance(doc, dict):
            raise ValueError(
                f"expected an OpenSky states object, got {type(doc).__name__}"
            )
        states: List[StateVector] = []
        for i, row in enumerate(doc.get("states") or []):
            try:
                states.append(StateVector.from_array(row))
            except (TypeError, ValueError) as exc:
                log.warning("Skipping state vector %d: %s", i, exc)
        return cls(time=int(doc.get("time") or 0), states=states)

    @classmethod
    def load(cls, path: Path) -> "StateVectorCollection":
        with path.open("r", encoding="utf-8") as f:
            doc = json.load(f)
        collection = cls.from_json(doc)
        log.info("Loaded %d state vectors from %s", len(collection), path)
        return collection

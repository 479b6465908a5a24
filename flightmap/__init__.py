"""
flightmap — live aircraft map widget.

Entry point: python -m flightmap

Provides:
- OpenSky state vector model (opensky)
- Geo bounds, viewport control and web mercator projection (geo)
- Map engine contracts, icon registration, click selection and the
  map surface state machine (map)
- PyQt5 map view, aircraft layer and info overlay (gui)
"""

__version__ = "0.1.0"

"""Geographic helpers: bounds, viewport state, projection and basemap tiles."""
from .bounds import GeoBounds, LngLat, LngLatBounds, ZERO_BOUNDS, compute_bounds
from .viewport import InteractionState, Viewport, ViewportController

__all__ = [
    "GeoBounds",
    "InteractionState",
    "LngLat",
    "LngLatBounds",
    "Viewport",
    "ViewportController",
    "ZERO_BOUNDS",
    "compute_bounds",
]

"""Map engine contracts and the toolkit-independent map surface logic."""
from .engine import Feature, MapHandle, MapOptions, PointerEvent
from .icons import IconImage, IconRegistrar, RegistrationTask, TaskState
from .selection import SelectionResolver
from .surface import MapSurface, SurfaceState

__all__ = [
    "Feature",
    "IconImage",
    "IconRegistrar",
    "MapHandle",
    "MapOptions",
    "MapSurface",
    "PointerEvent",
    "RegistrationTask",
    "SelectionResolver",
    "SurfaceState",
    "TaskState",
]

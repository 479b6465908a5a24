"""
Aircraft icon registration.

When the map engine reports it is ready, the aircraft icon is loaded
(SVG → fixed-size raster → signed distance field) and registered with the
engine under a fixed name so the aircraft layer can reference and recolour
it.  Loading runs off the event loop; the engine may render before the
icon arrives, and the aircraft layer copes with the icon being missing.

Lifecycle
---------
    registrar = IconRegistrar(loader)
    task = registrar.on_surface_load(map_handle)   # once per mount
    ...
    task.cancel()                                  # on unmount

A completion arriving after ``cancel()`` is dropped; it never touches the
(possibly torn down) engine handle.  Failures are logged and recorded on the
task, never raised.
"""
from __future__ import annotations

import enum
import functools
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from ..config import AIRCRAFT_ICON_NAME
from .engine import MapHandle

log = logging.getLogger(__name__)


@dataclass
class IconImage:
    """Rasterized icon: H x W x 4 RGBA uint8 pixels."""
    width: int
    height: int
    data: np.ndarray
    pixel_ratio: float = 1.0

    def __post_init__(self) -> None:
        if self.data.shape != (self.height, self.width, 4):
            raise ValueError(
                f"icon data shape {self.data.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )


IconLoader = Callable[[], IconImage]
Completion = Callable[[Optional[IconImage], Optional[BaseException]], None]
Runner = Callable[[IconLoader, Completion], None]


def inline_runner(job: IconLoader, done: Completion) -> None:
    """Run the loader synchronously (tests, headless use)."""
    try:
        image = job()
    except Exception as exc:
        done(None, exc)
        return
    done(image, None)


def thread_runner(deliver: Callable[[Callable[[], None]], None]) -> Runner:
    """Runner that loads on a daemon thread.

    *deliver* must schedule the given callable on the event-loop thread
    (e.g. by emitting a queued Qt signal); completion always runs there.
    """
    def run(job: IconLoader, done: Completion) -> None:
        def _worker() -> None:
            try:
                image = job()
            except Exception as exc:
                deliver(functools.partial(done, None, exc))
                return
            deliver(functools.partial(done, image, None))

        threading.Thread(target=_worker, daemon=True, name="icon-load").start()

    return run


class TaskState(enum.Enum):
    PENDING = "pending"
    REGISTERED = "registered"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class RegistrationTask:
    """One icon registration attempt bound to one mounted engine handle."""
    name: str
    handle: Optional[MapHandle]
    state: TaskState = TaskState.PENDING
    error: Optional[BaseException] = None
    _listeners: List[Callable[["RegistrationTask"], None]] = field(
        default_factory=list, repr=False,
    )

    @property
    def done(self) -> bool:
        return self.state is not TaskState.PENDING

    def add_done_callback(self, fn: Callable[["RegistrationTask"], None]) -> None:
        if self.done:
            fn(self)
        else:
            self._listeners.append(fn)

    def cancel(self) -> bool:
        """Abandon the attempt; returns False if it had already finished."""
        self.handle = None
        if self.done:
            return False
        self._finish(TaskState.CANCELLED)
        return True

    def _finish(self, state: TaskState, error: Optional[BaseException] = None) -> None:
        self.state = state
        self.error = error
        listeners, self._listeners = self._listeners, []
        for fn in listeners:
            try:
                fn(self)
            except Exception:
                log.exception("Icon task callback failed")


class IconRegistrar:
    """Loads the aircraft icon and registers it with a ready map engine.

    Parameters
    ----------
    loader : callable
        Produces the ``IconImage``; may raise.
    runner : callable, optional
        Executes the loader and calls back on completion.  Defaults to
        running inline.
    name : str
        Registry name the aircraft layer refers to.
    sdf : bool
        Register as a signed distance field (recolourable).
    """

    def __init__(
        self,
        loader: IconLoader,
        runner: Runner = inline_runner,
        name: str = AIRCRAFT_ICON_NAME,
        sdf: bool = True,
    ):
        self._loader = loader
        self._runner = runner
        self.name = name
        self.sdf = sdf

    def on_surface_load(self, handle: MapHandle) -> RegistrationTask:
        task = RegistrationTask(name=self.name, handle=handle)
        log.debug("Loading icon %r", self.name)

        def _complete(image: Optional[IconImage], error: Optional[BaseException]) -> None:
            self._complete(task, image, error)

        try:
            self._runner(self._loader, _complete)
        except Exception as exc:
            log.warning("Could not start loading icon %r: %s", self.name, exc)
            task._finish(TaskState.FAILED, exc)
        return task

    def _complete(
        self,
        task: RegistrationTask,
        image: Optional[IconImage],
        error: Optional[BaseException],
    ) -> None:
        if task.state is TaskState.CANCELLED or task.handle is None:
            log.debug("Discarding icon %r loaded after unmount", self.name)
            return
        if error is not None:
            log.warning("Failed to load icon %r: %s", self.name, error)
            task._finish(TaskState.FAILED, error)
            return

        try:
            task.handle.add_image(self.name, image, sdf=self.sdf)
        except Exception as exc:
            log.warning("Map engine rejected icon %r: %s", self.name, exc)
            task._finish(TaskState.FAILED, exc)
            return

        log.info("Registered icon %r (%dx%d, sdf=%s)",
                 self.name, image.width, image.height, self.sdf)
        task._finish(TaskState.REGISTERED)

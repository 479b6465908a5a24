"""
SVG icon rasterization.

Renders the aircraft SVG at a fixed pixel size with QtSvg and converts the
coverage into a signed distance field so the aircraft layer can tint it.
Safe to call from a worker thread: only QImage painting is involved.
"""
from __future__ import annotations

from pathlib import Path
from typing import Tuple

import numpy as np
from PyQt5 import QtCore, QtGui, QtSvg

from ..config import AIRCRAFT_ICON_PATH, AIRCRAFT_ICON_SIZE
from ..map.icons import IconImage
from ..map.sdf import encode_sdf


class IconLoadError(RuntimeError):
    """The icon asset could not be read or rendered."""


def qimage_to_rgba(image: QtGui.QImage) -> np.ndarray:
    """Copy a QImage into an H x W x 4 RGBA uint8 array."""
    image = image.convertToFormat(QtGui.QImage.Format_RGBA8888)
    w, h = image.width(), image.height()
    stride = image.bytesPerLine()
    ptr = image.constBits()
    ptr.setsize(stride * h)
    rows = np.frombuffer(ptr, dtype=np.uint8).reshape(h, stride)
    return rows[:, : w * 4].reshape(h, w, 4).copy()


def rgba_to_qimage(data: np.ndarray) -> QtGui.QImage:
    """Wrap an H x W x 4 RGBA uint8 array as a QImage (deep copy)."""
    data = np.ascontiguousarray(data, dtype=np.uint8)
    h, w = data.shape[:2]
    buf = data.tobytes()
    image = QtGui.QImage(buf, w, h, w * 4, QtGui.QImage.Format_RGBA8888)
    return image.copy()


def rasterize_svg(path: Path, size: Tuple[int, int]) -> np.ndarray:
    """Render *path* into a transparent ``size`` (w, h) RGBA array."""
    if not path.exists():
        raise IconLoadError(f"icon not found: {path}")
    renderer = QtSvg.QSvgRenderer(str(path))
    if not renderer.isValid():
        raise IconLoadError(f"invalid SVG: {path}")

    w, h = size
    image = QtGui.QImage(w, h, QtGui.QImage.Format_RGBA8888)
    image.fill(QtCore.Qt.transparent)
    painter = QtGui.QPainter(image)
    painter.setRenderHint(QtGui.QPainter.Antialiasing)
    renderer.render(painter)
    painter.end()
    return qimage_to_rgba(image)


def load_sdf_icon(
    path: Path = AIRCRAFT_ICON_PATH,
    size: Tuple[int, int] = AIRCRAFT_ICON_SIZE,
) -> IconImage:
    """SVG → white glyph whose alpha channel is a signed distance field."""
    rgba = rasterize_svg(path, size)
    w, h = size
    data = np.full((h, w, 4), 255, dtype=np.uint8)
    data[..., 3] = encode_sdf(rgba[..., 3])
    return IconImage(width=w, height=h, data=data)

"""
Entry point: python -m flightmap [--states snapshot.json]

The optional snapshot is an OpenSky ``/states/all`` JSON document.
"""
from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

from PyQt5 import QtCore, QtGui, QtWidgets

from .config import MapConfig
from .logger import setup_logging
from .map.engine import MapOptions
from .opensky import StateVectorCollection

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="flightmap — live aircraft map")
    parser.add_argument("--states", type=Path, help="OpenSky states JSON snapshot to display")
    parser.add_argument("--lat", type=float, help="initial latitude (overrides environment)")
    parser.add_argument("--lon", type=float, help="initial longitude (overrides environment)")
    parser.add_argument("--zoom", type=float, help="initial zoom level (overrides environment)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument("--log-dir", type=Path, help="also write logs to this directory")
    return parser


def build_options(args: argparse.Namespace, config: MapConfig) -> MapOptions:
    overrides = {}
    if args.lat is not None:
        overrides["latitude"] = args.lat
    if args.lon is not None:
        overrides["longitude"] = args.lon
    if args.zoom is not None:
        overrides["zoom"] = args.zoom
    return MapOptions.from_config(config, **overrides)


def main() -> int:
    args, remaining = build_parser().parse_known_args()
    setup_logging(args.log_level, args.log_dir)

    config = MapConfig.from_env()
    options = build_options(args, config)

    states = None
    if args.states is not None:
        try:
            states = StateVectorCollection.load(args.states)
        except (OSError, ValueError) as exc:
            log.error("Cannot read %s: %s", args.states, exc)
            return 1

    # Imported late so --help works without a display
    from .gui.main_window import MainWindow

    app = QtWidgets.QApplication(sys.argv[:1] + remaining)
    app.setStyle("Fusion")

    palette = QtGui.QPalette()
    palette.setColor(QtGui.QPalette.Window, QtGui.QColor("#060a10"))
    palette.setColor(QtGui.QPalette.WindowText, QtGui.QColor("#c0d0e0"))
    palette.setColor(QtGui.QPalette.Base, QtGui.QColor("#080c14"))
    palette.setColor(QtGui.QPalette.Text, QtGui.QColor("#c0d0e0"))
    palette.setColor(QtGui.QPalette.Highlight, QtGui.QColor("#00ccff"))
    app.setPalette(palette)

    win = MainWindow(options, states)
    win.show()

    def _sigint_handler(*_args):
        log.info("SIGINT received — shutting down...")
        win.close()

    signal.signal(signal.SIGINT, _sigint_handler)
    signal.signal(signal.SIGTERM, _sigint_handler)

    # Qt's event loop blocks Python signal delivery; wake it periodically
    sig_timer = QtCore.QTimer()
    sig_timer.timeout.connect(lambda: None)
    sig_timer.start(200)

    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())

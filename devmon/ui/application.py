"""
QApplication setup: High DPI, app identity, plot defaults and Ctrl+C from the terminal.
"""

from __future__ import annotations

import signal
import sys
from typing import NoReturn

import pyqtgraph as pg
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QApplication

from devmon.core.version import DIST_NAME, get_build_info

APP_NAME = "Device Monitor"

# The interpreter only runs signal handlers between bytecodes; the Qt loop must wake it.
_SIGNAL_POLL_MS = 200


def create_application() -> QApplication:
    """Create and configure QApplication. Call before any Qt widgets."""
    QGuiApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )
    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setOrganizationName(DIST_NAME)
    app.setApplicationVersion(get_build_info()["version"])
    pg.setConfigOptions(antialias=True, background="w", foreground="k")
    _close_on_sigint(app)
    return app


def _close_on_sigint(app: QApplication) -> None:
    # closeAllWindows runs MonitorWindow.closeEvent, which persists settings and stops sampling.
    signal.signal(signal.SIGINT, lambda *_: app.closeAllWindows())
    timer = QTimer(app)
    timer.setInterval(_SIGNAL_POLL_MS)
    timer.timeout.connect(lambda: None)
    timer.start()


def run_application(app: QApplication) -> NoReturn:
    """Run the event loop. Does not return until app quits."""
    sys.exit(app.exec())

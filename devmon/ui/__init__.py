"""Qt front end: application bootstrap, signals bridge, dashboard, main window.

Keep this package import lightweight: Qt GUI modules are loaded on first
attribute access, so headless runs and tests can import ``devmon.ui`` without a
display or ``libGL.so.1``.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "create_application",
    "run_application",
    "install_error_boundary",
    "MonitorSignals",
    "MonitorDashboardWidget",
    "MonitorWindow",
]

_EXPORTS = {
    "create_application": "devmon.ui.application",
    "run_application": "devmon.ui.application",
    "install_error_boundary": "devmon.ui.error_boundary",
    "MonitorSignals": "devmon.ui.signals",
    "MonitorDashboardWidget": "devmon.ui.dashboard",
    "MonitorWindow": "devmon.ui.main_window",
}


def __getattr__(name: str) -> Any:
    module = _EXPORTS.get(name)
    if module is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(module), name)

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from devmon.config import PROJECT_ROOT

APP_DIR_NAME = "devmon"
STATE_DIR_ENV = "DEVMON_STATE_DIR"

logger = logging.getLogger(__name__)


def _writable(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        marker = path / ".write_test"
        marker.write_text("ok", encoding="utf-8")
        marker.unlink(missing_ok=True)
    except OSError:
        logger.debug("State dir %s is not writable", path, exc_info=True)
        return False
    return True


def _user_data_dir() -> Path:
    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
        return (base / APP_DIR_NAME).resolve()
    if sys.platform == "darwin":
        return (Path.home() / "Library" / "Application Support" / APP_DIR_NAME).resolve()
    xdg = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else (Path.home() / ".local" / "share")
    return (base / APP_DIR_NAME).resolve()


def get_app_state_dir(app_folder_name: str = ".app_state") -> Path:
    """Return a writable directory for logs and other runtime state.

    Preference order:
    1) $DEVMON_STATE_DIR if set and writable (lab machines, CI runners)
    2) <PROJECT_ROOT>/.app_state if writable (source checkouts, tests)
    3) OS user data dir (~/.local/share/devmon, %APPDATA%\\devmon, ...)
    """
    override = os.environ.get(STATE_DIR_ENV, "").strip()
    if override and _writable(Path(override)):
        return Path(override).resolve()
    proj_dir = PROJECT_ROOT / app_folder_name
    if _writable(proj_dir):
        return proj_dir
    return _user_data_dir()


def get_logs_dir(state_dir: Path | None = None) -> Path:
    """``<state_dir>/logs``; created on demand."""
    logs = (state_dir or get_app_state_dir()) / "logs"
    logs.mkdir(parents=True, exist_ok=True)
    return logs

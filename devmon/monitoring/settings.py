"""Monitor settings file (JSON).

Missing or corrupt files yield defaults; values are normalized through
``MonitorSettings.from_dict`` on both load and save.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from devmon.config import SETTINGS_PATH
from devmon.monitoring.domain import MonitorSettings

logger = logging.getLogger(__name__)

_ENV_OVERRIDES = {
    "DEVMON_INTERVAL": "interval_sec",
    "DEVMON_CAPACITY": "capacity",
    "DEVMON_COMMAND_TIMEOUT": "command_timeout_sec",
}


def load_settings(path: Path | None = None) -> MonitorSettings:
    p = path or SETTINGS_PATH
    if not p.exists():
        return MonitorSettings()
    try:
        with open(p, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        logger.warning("Settings file unreadable, using defaults: %s", p, exc_info=True)
        return MonitorSettings()
    if not isinstance(data, Mapping):
        return MonitorSettings()
    return MonitorSettings.from_dict(dict(data))


def save_settings(settings: MonitorSettings, path: Path | None = None) -> None:
    p = path or SETTINGS_PATH
    p.parent.mkdir(parents=True, exist_ok=True)
    normalized = MonitorSettings.from_dict(settings.to_dict())
    with open(p, "w", encoding="utf-8") as f:
        json.dump(normalized.to_dict(), f, indent=2, ensure_ascii=False)


def apply_env_overrides(
    settings: MonitorSettings, environ: Mapping[str, str] | None = None
) -> MonitorSettings:
    """Overlay DEVMON_INTERVAL / DEVMON_CAPACITY / DEVMON_COMMAND_TIMEOUT."""
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = settings.to_dict()
    changed = False
    for var, key in _ENV_OVERRIDES.items():
        value = env.get(var, "").strip()
        if value:
            raw[key] = value
            changed = True
    if not changed:
        return replace(settings)
    return MonitorSettings.from_dict(raw)

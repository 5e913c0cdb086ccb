"""Monitor configuration constants.

Ranges and defaults for the sampler, the shell commands that feed each metric,
and the default location of the settings file.
"""

import os
from pathlib import Path

# Base paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SETTINGS_PATH = PROJECT_ROOT / "monitor_settings.json"

# ADB transport
ADB_PATH = os.getenv("DEVMON_ADB", "adb")
ADB_DEVICES_TIMEOUT_SEC = 5.0

# Series capacity (points kept per metric)
MIN_CAPACITY = 10
MAX_CAPACITY = 10_000
DEFAULT_CAPACITY = 1000

# Sampling interval, seconds
MIN_INTERVAL_SEC = 1.0
MAX_INTERVAL_SEC = 10.0
DEFAULT_INTERVAL_SEC = 1.0

# Per-command timeout; a stalled device must not hold a tick forever
DEFAULT_COMMAND_TIMEOUT_SEC = 5.0
MAX_COMMAND_TIMEOUT_SEC = 60.0

# Consecutive fully-failed ticks before the session is considered degraded
DEFAULT_FAILURE_THRESHOLD = 5

# One shell command per metric. Both battery metrics read the same report.
METRIC_COMMANDS = {
    "cpu_load": "cat /proc/loadavg",
    "memory_usage_pct": "cat /proc/meminfo",
    "battery_level": "dumpsys battery",
    "battery_temperature": "dumpsys battery",
}

# Read once per session for the core count in the details panel
CPUINFO_COMMAND = "cat /proc/cpuinfo"

# Dashboard redraw cadence (renderer side)
DASHBOARD_REFRESH_MS = 250

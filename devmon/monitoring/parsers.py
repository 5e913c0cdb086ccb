"""Parse raw device command output into metric values.

Each parser gets the stdout of one shell command and returns a ``ParseResult``;
none of them raises on bad input.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable

from devmon.monitoring.domain import DeviceDetails, MetricKind, ParseResult

# /proc/meminfo: "MemTotal:        3809036 kB"
_MEMINFO_RE = re.compile(r"^\s*(\w+)\s*:\s*(\S+)(?:\s+kB)?\s*$", re.IGNORECASE | re.MULTILINE)

# dumpsys battery: "  level: 87", "  temperature: 365"
_LEVEL_RE = re.compile(r"^\s*level\s*:\s*([+-]?\d+)\s*$", re.IGNORECASE | re.MULTILINE)
_TEMPERATURE_RE = re.compile(
    r"^\s*temperature\s*:\s*([+-]?\d+)\s*$", re.IGNORECASE | re.MULTILINE
)


def _to_finite_float(token: str) -> float | None:
    try:
        v = float(token)
    except ValueError:
        return None
    return v if math.isfinite(v) else None


def _meminfo_fields(text: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for m in _MEMINFO_RE.finditer(text or ""):
        fields.setdefault(m.group(1), m.group(2))
    return fields


def parse_cpu_load(text: str) -> ParseResult:
    """1-minute load average: the first token of /proc/loadavg."""
    parts = (text or "").split()
    if not parts:
        return ParseResult.fail(MetricKind.CPU_LOAD, "empty loadavg output")
    value = _to_finite_float(parts[0])
    if value is None:
        return ParseResult.fail(MetricKind.CPU_LOAD, f"load token is not numeric: {parts[0]!r}")
    return ParseResult.success(value)


def parse_memory_usage(text: str) -> ParseResult:
    """Percent of memory in use, from MemTotal and MemAvailable."""
    fields = _meminfo_fields(text)
    missing = [k for k in ("MemTotal", "MemAvailable") if k not in fields]
    if missing:
        return ParseResult.fail(
            MetricKind.MEMORY_USAGE_PCT, f"meminfo is missing {', '.join(missing)}"
        )
    total = _to_finite_float(fields["MemTotal"])
    available = _to_finite_float(fields["MemAvailable"])
    if total is None or available is None:
        return ParseResult.fail(MetricKind.MEMORY_USAGE_PCT, "meminfo values are not numeric")
    if total == 0:
        return ParseResult.fail(MetricKind.MEMORY_USAGE_PCT, "MemTotal is zero")
    return ParseResult.success((total - available) / total * 100.0)


def parse_battery_level(text: str) -> ParseResult:
    """Battery charge percent from ``dumpsys battery``."""
    m = _LEVEL_RE.search(text or "")
    if not m:
        return ParseResult.fail(MetricKind.BATTERY_LEVEL, "no 'level:' line")
    level = int(m.group(1))
    if not 0 <= level <= 100:
        return ParseResult.fail(MetricKind.BATTERY_LEVEL, f"level out of range: {level}")
    return ParseResult.success(float(level))


def parse_battery_temperature(text: str) -> ParseResult:
    """Battery temperature in °C; dumpsys reports tenths of a degree."""
    m = _TEMPERATURE_RE.search(text or "")
    if not m:
        return ParseResult.fail(MetricKind.BATTERY_TEMPERATURE, "no 'temperature:' line")
    return ParseResult.success(int(m.group(1)) / 10.0)


Parser = Callable[[str], ParseResult]

PARSERS: dict[MetricKind, Parser] = {
    MetricKind.CPU_LOAD: parse_cpu_load,
    MetricKind.MEMORY_USAGE_PCT: parse_memory_usage,
    MetricKind.BATTERY_LEVEL: parse_battery_level,
    MetricKind.BATTERY_TEMPERATURE: parse_battery_temperature,
}


def parse_metric(metric: MetricKind, text: str) -> ParseResult:
    return PARSERS[metric](text)


# --- Details panel -------------------------------------------------------------

MEMINFO_DETAIL_KEYS = (
    "MemTotal",
    "MemFree",
    "MemAvailable",
    "Buffers",
    "Cached",
    "SwapTotal",
    "SwapFree",
)

# BatteryManager.BATTERY_HEALTH_* / BATTERY_STATUS_* codes as printed by dumpsys
BATTERY_HEALTH = {
    1: "Unknown",
    2: "Good",
    3: "Overheat",
    4: "Dead",
    5: "Over voltage",
    6: "Unspecified failure",
    7: "Cold",
}
BATTERY_STATUS = {1: "Unknown", 2: "Charging", 3: "Discharging", 4: "Not charging", 5: "Full"}

# "  AC powered: false", "  voltage: 4213"
_FIELD_RE = re.compile(r"^[ \t]*([A-Za-z][\w ]*?)[ \t]*:[ \t]*(.*?)[ \t]*$", re.MULTILINE)


def parse_load_averages(text: str) -> tuple[float, float, float] | None:
    """(1m, 5m, 15m) from /proc/loadavg, or None when any of them is unreadable."""
    parts = (text or "").split()
    if len(parts) < 3:
        return None
    values = [_to_finite_float(p) for p in parts[:3]]
    if any(v is None for v in values):
        return None
    return values[0], values[1], values[2]  # type: ignore[return-value]


def count_cpu_cores(text: str) -> int | None:
    """Number of ``processor`` entries in /proc/cpuinfo."""
    n = sum(1 for line in (text or "").splitlines() if line.lstrip().lower().startswith("processor"))
    return n or None


def parse_meminfo_fields(text: str) -> dict[str, int]:
    """The ``MEMINFO_DETAIL_KEYS`` that are present and numeric, in kB."""
    fields = _meminfo_fields(text)
    out: dict[str, int] = {}
    for key in MEMINFO_DETAIL_KEYS:
        value = _to_finite_float(fields.get(key, ""))
        if value is not None and value >= 0:
            out[key] = int(value)
    return out


def _battery_fields(text: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for m in _FIELD_RE.finditer(text or ""):
        fields.setdefault(m.group(1).lower(), m.group(2))
    return fields


def _coded_name(raw: str | None, names: dict[int, str]) -> str | None:
    if not raw:
        return None
    try:
        return names.get(int(raw), f"Code {int(raw)}")
    except ValueError:
        return raw


def _flag(raw: str | None) -> bool | None:
    if raw is None:
        return None
    v = raw.strip().lower()
    if v == "true":
        return True
    if v == "false":
        return False
    return None


def parse_device_details(
    loadavg: str | None = None,
    meminfo: str | None = None,
    battery: str | None = None,
    *,
    cpu_cores: int | None = None,
) -> DeviceDetails:
    """Build the details snapshot from whichever outputs a tick produced.

    Missing or unreadable pieces stay ``None``; this never raises on bad input.
    """
    loads = parse_load_averages(loadavg) if loadavg is not None else None
    memory = parse_meminfo_fields(meminfo) if meminfo is not None else {}
    fields = _battery_fields(battery) if battery is not None else {}

    voltage: float | None = None
    mv = _to_finite_float(fields.get("voltage", ""))
    if mv is not None and mv > 0:
        voltage = round(mv / 1000.0, 2)

    return DeviceDetails(
        load_1m=loads[0] if loads else None,
        load_5m=loads[1] if loads else None,
        load_15m=loads[2] if loads else None,
        cpu_cores=cpu_cores,
        memory_kb=memory,
        battery_voltage_v=voltage,
        battery_health=_coded_name(fields.get("health"), BATTERY_HEALTH),
        battery_status=_coded_name(fields.get("status"), BATTERY_STATUS),
        ac_powered=_flag(fields.get("ac powered")),
        usb_powered=_flag(fields.get("usb powered")),
    )

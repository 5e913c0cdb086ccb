"""
Text for the dashboard labels and the device-list bookkeeping. No Qt imports, so
it is testable without a display.
"""

from __future__ import annotations

from collections.abc import Iterable

from devmon.monitoring.domain import DataPoint, DeviceDetails, MetricKind
from devmon.services import AdbDevice

PLACEHOLDER = "–"

_MEMORY_ROWS = (
    ("MemTotal", "Memory total"),
    ("MemFree", "Memory free"),
    ("MemAvailable", "Memory available"),
    ("Buffers", "Buffers"),
    ("Cached", "Cached"),
    ("SwapTotal", "Swap total"),
    ("SwapFree", "Swap free"),
)


def metric_value_text(metric: MetricKind, last: DataPoint | None, failed_ticks: int = 0) -> str:
    """``"Battery Level %: 87.00 %"``; a metric that keeps failing is marked stale."""
    if last is None:
        text = f"{metric.label}: {PLACEHOLDER}"
    else:
        text = f"{metric.label}: {last.value:.2f} {metric.unit}".rstrip()
    if failed_ticks > 0:
        text += f" (no data for {failed_ticks} tick{'s' if failed_ticks != 1 else ''})"
    return text


def _kb_text(kb: int) -> str:
    if kb >= 1024 * 1024:
        return f"{kb / (1024 * 1024):.2f} GB"
    if kb >= 1024:
        return f"{kb / 1024:.0f} MB"
    return f"{kb} kB"


def _yes_no(flag: bool | None) -> str:
    if flag is None:
        return PLACEHOLDER
    return "yes" if flag else "no"


def detail_rows(details: DeviceDetails) -> list[tuple[str, str]]:
    """(label, value) pairs for the details grid, always in the same order."""
    if details.load_1m is None:
        load = PLACEHOLDER
    else:
        load = f"{details.load_1m:.2f} {details.load_5m:.2f} {details.load_15m:.2f}"
    rows = [
        ("Load (1m 5m 15m)", load),
        ("CPU cores", str(details.cpu_cores) if details.cpu_cores else PLACEHOLDER),
    ]
    for key, label in _MEMORY_ROWS:
        kb = details.memory_kb.get(key)
        rows.append((label, _kb_text(kb) if kb is not None else PLACEHOLDER))
    voltage = details.battery_voltage_v
    rows += [
        ("Battery voltage", f"{voltage:.2f} V" if voltage is not None else PLACEHOLDER),
        ("Battery health", details.battery_health or PLACEHOLDER),
        ("Battery status", details.battery_status or PLACEHOLDER),
        ("AC powered", _yes_no(details.ac_powered)),
        ("USB powered", _yes_no(details.usb_powered)),
    ]
    return rows


def vanished_device(
    monitored: str | None, devices: Iterable[AdbDevice], error: str = ""
) -> str | None:
    """The monitored serial when a successful listing no longer shows it online.

    A failed listing (``error`` set) proves nothing about the device, so it never
    reports one.
    """
    if not monitored or error:
        return None
    if monitored in {d.id for d in devices if d.online}:
        return None
    return monitored

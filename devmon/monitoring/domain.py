"""Domain model for device monitoring: metric kinds, points, parse results, settings."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from devmon.config import (
    DEFAULT_CAPACITY,
    DEFAULT_COMMAND_TIMEOUT_SEC,
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_INTERVAL_SEC,
    MAX_CAPACITY,
    MAX_COMMAND_TIMEOUT_SEC,
    MAX_INTERVAL_SEC,
    MIN_CAPACITY,
    MIN_INTERVAL_SEC,
)
from devmon.core.errors import AppError, CommunicationFailure, ConfigurationError, ParseFailure


class MetricKind(str, Enum):
    CPU_LOAD = "cpu_load"
    MEMORY_USAGE_PCT = "memory_usage_pct"
    BATTERY_LEVEL = "battery_level"
    BATTERY_TEMPERATURE = "battery_temperature"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def unit(self) -> str:
        return _UNITS[self]


_LABELS = {
    MetricKind.CPU_LOAD: "CPU Load (1m)",
    MetricKind.MEMORY_USAGE_PCT: "Memory Usage %",
    MetricKind.BATTERY_LEVEL: "Battery Level %",
    MetricKind.BATTERY_TEMPERATURE: "Battery Temperature °C",
}

_UNITS = {
    MetricKind.CPU_LOAD: "",
    MetricKind.MEMORY_USAGE_PCT: "%",
    MetricKind.BATTERY_LEVEL: "%",
    MetricKind.BATTERY_TEMPERATURE: "°C",
}

ALL_METRICS: tuple[MetricKind, ...] = tuple(MetricKind)


class SessionState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True, slots=True)
class DataPoint:
    timestamp: float  # seconds since session start
    value: float


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Outcome of one parser call: a value, or the failure that explains its absence."""

    value: float | None = None
    failure: ParseFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.value is not None

    def unwrap(self) -> float:
        if self.failure is not None:
            raise self.failure
        if self.value is None:
            raise ParseFailure("no value")
        return self.value

    @classmethod
    def success(cls, value: float) -> ParseResult:
        return cls(value=float(value))

    @classmethod
    def fail(cls, metric: MetricKind, message: str) -> ParseResult:
        return cls(failure=ParseFailure(message, metric=metric.value))


@dataclass(frozen=True, slots=True)
class DeviceDetails:
    """Secondary readings from the last tick's raw output; ``None`` means unknown."""

    load_1m: float | None = None
    load_5m: float | None = None
    load_15m: float | None = None
    cpu_cores: int | None = None
    memory_kb: dict[str, int] = field(default_factory=dict)  # meminfo key -> kB
    battery_voltage_v: float | None = None
    battery_health: str | None = None
    battery_status: str | None = None
    ac_powered: bool | None = None
    usb_powered: bool | None = None

    @property
    def empty(self) -> bool:
        return self == DeviceDetails()


@dataclass(slots=True)
class TickReport:
    """What one sampling cycle produced."""

    tick: int
    started_at: float
    manual: bool = False
    appended: dict[MetricKind, DataPoint] = field(default_factory=dict)
    skipped: dict[MetricKind, AppError] = field(default_factory=dict)
    discarded: bool = False
    details: DeviceDetails | None = None

    @property
    def all_failed_communication(self) -> bool:
        return (
            not self.appended
            and len(self.skipped) == len(ALL_METRICS)
            and all(isinstance(e, CommunicationFailure) for e in self.skipped.values())
        )


def validate_capacity(value: Any) -> int:
    """Return ``value`` as an int in [MIN_CAPACITY, MAX_CAPACITY] or raise ConfigurationError."""
    if isinstance(value, bool):
        raise ConfigurationError(f"Capacity must be an integer, got {value!r}")
    try:
        cap = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Capacity must be an integer, got {value!r}", cause=e) from e
    if cap != value and not isinstance(value, str):
        raise ConfigurationError(f"Capacity must be an integer, got {value!r}")
    if not MIN_CAPACITY <= cap <= MAX_CAPACITY:
        raise ConfigurationError(
            f"Capacity must be between {MIN_CAPACITY} and {MAX_CAPACITY}, got {cap}"
        )
    return cap


def validate_interval(value: Any) -> float:
    """Return ``value`` as seconds in [MIN_INTERVAL_SEC, MAX_INTERVAL_SEC] or raise."""
    if isinstance(value, bool):
        raise ConfigurationError(f"Interval must be a number, got {value!r}")
    try:
        sec = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Interval must be a number, got {value!r}", cause=e) from e
    if math.isnan(sec) or not MIN_INTERVAL_SEC <= sec <= MAX_INTERVAL_SEC:
        raise ConfigurationError(
            f"Interval must be between {MIN_INTERVAL_SEC:g} and {MAX_INTERVAL_SEC:g} s, got {value!r}"
        )
    return sec


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in {"true", "1", "yes", "y", "on"}:
            return True
        if v in {"false", "0", "no", "n", "off"}:
            return False
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def _as_int(value: Any, default: int) -> int:
    try:
        if isinstance(value, bool):
            return default
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        if isinstance(value, bool):
            return default
        out = float(value)
    except (TypeError, ValueError):
        return default
    return default if math.isnan(out) else out


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass
class MonitorSettings:
    """User-facing monitor preferences (persisted as JSON by the shell)."""

    interval_sec: float = DEFAULT_INTERVAL_SEC
    capacity: int = DEFAULT_CAPACITY
    command_timeout_sec: float = DEFAULT_COMMAND_TIMEOUT_SEC
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    show_plots: bool = True
    last_device: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "interval_sec": self.interval_sec,
            "capacity": self.capacity,
            "command_timeout_sec": self.command_timeout_sec,
            "failure_threshold": self.failure_threshold,
            "show_plots": self.show_plots,
            "last_device": self.last_device,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> MonitorSettings:
        """Coerce loosely typed data; out-of-range numbers are clamped, garbage falls back."""
        if not d:
            return cls()
        dflt = cls()
        interval = _as_float(d.get("interval_sec"), dflt.interval_sec)
        capacity = _as_int(d.get("capacity"), dflt.capacity)
        timeout = _as_float(d.get("command_timeout_sec"), dflt.command_timeout_sec)
        threshold = _as_int(d.get("failure_threshold"), dflt.failure_threshold)
        return cls(
            interval_sec=_clamp(interval, MIN_INTERVAL_SEC, MAX_INTERVAL_SEC),
            capacity=int(_clamp(capacity, MIN_CAPACITY, MAX_CAPACITY)),
            command_timeout_sec=_clamp(timeout, 0.1, MAX_COMMAND_TIMEOUT_SEC),
            failure_threshold=max(1, threshold),
            show_plots=_as_bool(d.get("show_plots"), dflt.show_plots),
            last_device=str(d.get("last_device") or "").strip(),
        )

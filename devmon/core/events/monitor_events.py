from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class SessionStarted:
    device: str
    interval_sec: float
    capacity: int


@dataclass(frozen=True, slots=True)
class SessionStopped:
    device: str
    reason: str  # "user" | "switch" | "disconnected" | "degraded" | "shutdown"


@dataclass(frozen=True, slots=True)
class SessionDegraded:
    """Too many consecutive ticks where no metric command reached the device."""

    device: str
    consecutive_failures: int
    last_error: str


@dataclass(frozen=True, slots=True)
class TickCompleted:
    device: str
    report: Any  # devmon.monitoring.domain.TickReport


@dataclass(frozen=True, slots=True)
class MetricSkipped:
    device: str
    tick: int
    metric: str
    error: str


@dataclass(frozen=True, slots=True)
class MonitorSettingsChanged:
    interval_sec: float
    capacity: int

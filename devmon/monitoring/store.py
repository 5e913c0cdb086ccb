"""
Bounded time-series store shared by the sampler (writer) and the dashboard (reader).

- One ``deque(maxlen=capacity)`` per metric: append and FIFO eviction happen in the
  same call, so a reader never sees ``len > capacity``.
- One lock for the whole store; every operation holds it only for the deque call
  (or a copy of it), so neither side waits on the other for long.
- Writer generation: the sampler tags appends with the generation it got from
  ``open_writer()``. ``close_writer()`` bumps the generation under the lock, so a
  late tick from a stopped session is discarded instead of written.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable

import numpy as np

from devmon.config import DEFAULT_CAPACITY
from devmon.monitoring.domain import (
    ALL_METRICS,
    DataPoint,
    DeviceDetails,
    MetricKind,
    validate_capacity,
)


class TimeSeriesStore:
    """Per-metric bounded series for one device session."""

    def __init__(
        self,
        device: str = "",
        capacity: int = DEFAULT_CAPACITY,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._capacity = validate_capacity(capacity)
        self._lock = threading.Lock()
        self._clock = clock
        self._device = device
        self._session_start = clock()
        self._generation = 0
        self._series: dict[MetricKind, deque[DataPoint]] = {
            m: deque(maxlen=self._capacity) for m in ALL_METRICS
        }
        self._details = DeviceDetails()

    # --- Identity ---
    @property
    def device(self) -> str:
        return self._device

    @property
    def session_start(self) -> float:
        return self._session_start

    def elapsed(self, now: float | None = None) -> float:
        """Seconds since the session started (monotonic clock)."""
        t = self._clock() if now is None else now
        return max(0.0, t - self._session_start)

    # --- Writer generation ---
    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def open_writer(self) -> int:
        with self._lock:
            return self._generation

    def close_writer(self) -> None:
        """Invalidate every generation handed out so far."""
        with self._lock:
            self._generation += 1

    # --- Mutation ---
    def append(self, metric: MetricKind, point: DataPoint, *, generation: int | None = None) -> bool:
        """Append ``point``; the oldest point goes when the series is full.

        Returns False (and changes nothing) for a stale ``generation``.
        """
        key = MetricKind(metric)
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._series[key].append(point)
        return True

    def update_details(self, details: DeviceDetails, *, generation: int | None = None) -> bool:
        """Replace the details snapshot; False for a stale ``generation``."""
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._details = details
        return True

    def set_capacity(self, new_capacity: int) -> None:
        """Re-bound every series, keeping the newest points."""
        cap = validate_capacity(new_capacity)
        with self._lock:
            self._capacity = cap
            for metric, series in self._series.items():
                self._series[metric] = deque(series, maxlen=cap)

    def clear(self) -> None:
        with self._lock:
            for series in self._series.values():
                series.clear()

    # --- Reads ---
    @property
    def capacity(self) -> int:
        return self._capacity

    def details(self) -> DeviceDetails:
        with self._lock:
            return self._details

    def length(self, metric: MetricKind) -> int:
        with self._lock:
            return len(self._series[MetricKind(metric)])

    def snapshot(self, metric: MetricKind) -> tuple[DataPoint, ...]:
        with self._lock:
            return tuple(self._series[MetricKind(metric)])

    def snapshot_all(self) -> dict[MetricKind, tuple[DataPoint, ...]]:
        with self._lock:
            return {m: tuple(s) for m, s in self._series.items()}

    def latest(self, metric: MetricKind) -> DataPoint | None:
        with self._lock:
            series = self._series[MetricKind(metric)]
            return series[-1] if series else None

    def arrays(self, metric: MetricKind) -> tuple[np.ndarray, np.ndarray]:
        """(timestamps, values) as float64 arrays, for plot ``setData``."""
        points = self.snapshot(metric)
        if not points:
            return np.empty(0, dtype=np.float64), np.empty(0, dtype=np.float64)
        data = np.array([(p.timestamp, p.value) for p in points], dtype=np.float64)
        return data[:, 0], data[:, 1]

    def usage_text(self, metric: MetricKind = MetricKind.CPU_LOAD) -> str:
        """Fill counter for the dashboard footer, e.g. ``450 / 1000``."""
        return f"{self.length(metric)} / {self.capacity}"

"""Session controller: the one object the UI talks to.

Owns the current ``TimeSeriesStore`` and ``SamplingScheduler``. Configuration
errors are raised synchronously before anything changes; lifecycle changes are
published on the event bus after the controller lock is released.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from functools import partial

from devmon.application.ports.device import DeviceClientFactory
from devmon.core.errors import ConfigurationError
from devmon.core.events import (
    EventBus,
    MonitorSettingsChanged,
    SessionDegraded,
    SessionStarted,
    SessionStopped,
)
from devmon.monitoring.domain import (
    DataPoint,
    DeviceDetails,
    MetricKind,
    MonitorSettings,
    SessionState,
    validate_capacity,
    validate_interval,
)
from devmon.monitoring.scheduler import SamplingScheduler
from devmon.monitoring.store import TimeSeriesStore

logger = logging.getLogger(__name__)


class SessionController:
    def __init__(
        self,
        client_factory: DeviceClientFactory,
        *,
        settings: MonitorSettings | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        cfg = settings or MonitorSettings()
        self._factory = client_factory
        self._interval = validate_interval(cfg.interval_sec)
        self._capacity = validate_capacity(cfg.capacity)
        self._timeout = cfg.command_timeout_sec
        self._threshold = cfg.failure_threshold
        self._bus = event_bus or EventBus()
        self._clock = clock

        self._lock = threading.RLock()
        self._state = SessionState.STOPPED
        self._device: str | None = None
        self._store: TimeSeriesStore | None = None
        self._scheduler: SamplingScheduler | None = None
        self._stopped_at: float | None = None
        self._last_stop_reason: str | None = None

    # --- Accessors ---
    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SessionState.RUNNING

    @property
    def device(self) -> str | None:
        return self._device

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def store(self) -> TimeSeriesStore | None:
        return self._store

    @property
    def last_stop_reason(self) -> str | None:
        return self._last_stop_reason

    @property
    def last_tick(self) -> float | None:
        sched = self._scheduler
        return sched.last_tick if sched is not None else None

    @property
    def elapsed(self) -> float:
        """Seconds since the session started; frozen once it stops."""
        with self._lock:
            if self._store is None:
                return 0.0
            if self._state is SessionState.STOPPED and self._stopped_at is not None:
                return self._store.elapsed(self._stopped_at)
            return self._store.elapsed()

    def snapshot(self, metric: MetricKind) -> tuple[DataPoint, ...]:
        store = self._store
        return store.snapshot(metric) if store is not None else ()

    def length(self, metric: MetricKind) -> int:
        store = self._store
        return store.length(metric) if store is not None else 0

    def details(self) -> DeviceDetails:
        store = self._store
        return store.details() if store is not None else DeviceDetails()

    def failure_streaks(self) -> dict[MetricKind, int]:
        """Consecutive ticks each metric could not be fetched; empty before the first session."""
        sched = self._scheduler
        return sched.failure_streaks() if sched is not None else {}

    def current_settings(self) -> MonitorSettings:
        return MonitorSettings(
            interval_sec=self._interval,
            capacity=self._capacity,
            command_timeout_sec=self._timeout,
            failure_threshold=self._threshold,
            last_device=self._device or "",
        )

    # --- Lifecycle ---
    def start(self, device: str) -> None:
        dev = (device or "").strip()
        if not dev:
            raise ConfigurationError("Device id must not be empty")

        events: list[object] = []
        try:
            with self._lock:
                if self._state is SessionState.RUNNING:
                    if dev == self._device:
                        return
                    events.extend(self._stop_locked("switch"))

                client = self._factory(dev)
                store = TimeSeriesStore(dev, self._capacity, clock=self._clock)
                scheduler = SamplingScheduler(
                    client,
                    store,
                    interval_sec=self._interval,
                    command_timeout_sec=self._timeout,
                    failure_threshold=self._threshold,
                    event_bus=self._bus,
                    on_degraded=partial(self._on_degraded, store),
                    clock=self._clock,
                )
                self._device = dev
                self._store = store
                self._scheduler = scheduler
                self._stopped_at = None
                self._last_stop_reason = None
                self._state = SessionState.RUNNING
                events.append(
                    SessionStarted(device=dev, interval_sec=self._interval, capacity=self._capacity)
                )
                scheduler.start()
            logger.info("Monitoring started", extra={"device": dev})
        finally:
            self._publish(events)

    def stop(self, reason: str = "user") -> None:
        with self._lock:
            if self._state is SessionState.STOPPED:
                return
            events = self._stop_locked(reason)
        self._publish(events)

    def shutdown(self) -> None:
        self.stop("shutdown")

    def device_disconnected(self, device: str) -> bool:
        """Stop when the monitored device went away; True if that happened."""
        with self._lock:
            if self._state is not SessionState.RUNNING or device != self._device:
                return False
            events = self._stop_locked("disconnected")
        self._publish(events)
        return True

    def _stop_locked(self, reason: str) -> list[object]:
        if self._scheduler is not None:
            self._scheduler.stop()
        self._state = SessionState.STOPPED
        self._stopped_at = self._clock()
        self._last_stop_reason = reason
        device = self._device or ""
        logger.info("Monitoring stopped (%s)", reason, extra={"device": device, "reason": reason})
        return [SessionStopped(device=device, reason=reason)]

    def _on_degraded(self, store: TimeSeriesStore, consecutive: int, last_error: str) -> None:
        # Runs on the sampler thread.
        with self._lock:
            if store is not self._store or self._state is not SessionState.RUNNING:
                return
            device = self._device or ""
            events: list[object] = [
                SessionDegraded(device=device, consecutive_failures=consecutive, last_error=last_error)
            ]
            events.extend(self._stop_locked("degraded"))
        self._publish(events)

    # --- Configuration ---
    def resize(self, new_capacity: int) -> None:
        cap = validate_capacity(new_capacity)
        with self._lock:
            if self._store is not None:
                self._store.set_capacity(cap)
            self._capacity = cap
        self._publish([MonitorSettingsChanged(interval_sec=self._interval, capacity=cap)])

    def set_interval(self, seconds: float) -> None:
        sec = validate_interval(seconds)
        with self._lock:
            self._interval = sec
            if self._scheduler is not None and self._state is SessionState.RUNNING:
                self._scheduler.set_interval(sec)
        self._publish([MonitorSettingsChanged(interval_sec=sec, capacity=self._capacity)])

    def clear(self) -> None:
        with self._lock:
            if self._store is not None:
                self._store.clear()

    def sample_now(self) -> bool:
        with self._lock:
            if self._scheduler is None or self._state is not SessionState.RUNNING:
                return False
            return self._scheduler.sample_now()

    def _publish(self, events: list[object]) -> None:
        for event in events:
            self._bus.publish(event)

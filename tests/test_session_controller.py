from __future__ import annotations

import threading
import time

import pytest

from devmon.core.errors import CommunicationFailure, ConfigurationError
from devmon.core.events import (
    EventBus,
    MonitorSettingsChanged,
    SessionDegraded,
    SessionStarted,
    SessionStopped,
    TickCompleted,
)
from devmon.monitoring.controller import SessionController
from devmon.monitoring.domain import MetricKind, MonitorSettings, SessionState

OUTPUTS = {
    "cat /proc/loadavg": "1.25 1.00 0.75 2/300 4321\n",
    "cat /proc/meminfo": "MemTotal: 2000 kB\nMemAvailable: 1000 kB\n",
    "dumpsys battery": "  level: 55\n  temperature: 412\n",
}


class _Port:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    def execute(self, command: str, timeout: float) -> str:
        if self.fail:
            raise CommunicationFailure("device not found", command=command)
        return OUTPUTS[command]


class _Factory:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.devices: list[str] = []

    def __call__(self, device: str) -> _Port:
        self.devices.append(device)
        return _Port(fail=self.fail)


def _controller(factory: _Factory | None = None, **kw) -> tuple[SessionController, list[object]]:
    bus = EventBus()
    events: list[object] = []
    for evt_type in (SessionStarted, SessionStopped, SessionDegraded, MonitorSettingsChanged):
        bus.subscribe(evt_type, events.append)
    settings = MonitorSettings(
        interval_sec=kw.pop("interval_sec", 10.0),
        capacity=kw.pop("capacity", 10),
        command_timeout_sec=1.0,
        failure_threshold=kw.pop("failure_threshold", 5),
    )
    ctl = SessionController(factory or _Factory(), settings=settings, event_bus=bus)
    return ctl, events


def _wait_first_tick(ctl: SessionController) -> None:
    got = threading.Event()
    sub = ctl.event_bus.subscribe(TickCompleted, lambda _e: got.set())
    try:
        if ctl.length(MetricKind.CPU_LOAD) == 0:
            assert got.wait(5)
    finally:
        ctl.event_bus.unsubscribe(sub)


def test_initial_state() -> None:
    ctl, _ = _controller()
    assert ctl.state is SessionState.STOPPED
    assert ctl.store is None
    assert ctl.snapshot(MetricKind.CPU_LOAD) == ()
    assert ctl.elapsed == 0.0
    assert ctl.sample_now() is False


def test_start_samples_and_publishes() -> None:
    factory = _Factory()
    ctl, events = _controller(factory)
    try:
        ctl.start("emulator-5554")
        _wait_first_tick(ctl)
        assert ctl.is_running
        assert ctl.device == "emulator-5554"
        assert factory.devices == ["emulator-5554"]
        assert ctl.snapshot(MetricKind.CPU_LOAD)[-1].value == 1.25
        assert ctl.snapshot(MetricKind.BATTERY_TEMPERATURE)[-1].value == 41.2
        assert events[0] == SessionStarted(device="emulator-5554", interval_sec=10.0, capacity=10)
    finally:
        ctl.shutdown()


def test_empty_device_is_rejected() -> None:
    ctl, events = _controller()
    with pytest.raises(ConfigurationError):
        ctl.start("  ")
    assert ctl.state is SessionState.STOPPED
    assert events == []


def test_start_same_device_is_a_no_op() -> None:
    factory = _Factory()
    ctl, events = _controller(factory)
    try:
        ctl.start("A")
        store = ctl.store
        ctl.start("A")
        assert ctl.store is store
        assert factory.devices == ["A"]
        assert sum(isinstance(e, SessionStarted) for e in events) == 1
    finally:
        ctl.shutdown()


def test_start_other_device_switches_with_a_fresh_store() -> None:
    ctl, events = _controller()
    try:
        ctl.start("A")
        _wait_first_tick(ctl)
        old_store = ctl.store
        ctl.start("B")
        assert ctl.device == "B"
        assert ctl.store is not old_store
        assert SessionStopped(device="A", reason="switch") in events
        assert events[-1] == SessionStarted(device="B", interval_sec=10.0, capacity=10)
    finally:
        ctl.shutdown()


def test_stop_keeps_data_and_freezes_elapsed() -> None:
    ctl, events = _controller()
    ctl.start("A")
    _wait_first_tick(ctl)
    ctl.stop()

    assert ctl.state is SessionState.STOPPED
    assert ctl.last_stop_reason == "user"
    assert ctl.length(MetricKind.CPU_LOAD) >= 1
    frozen = ctl.elapsed
    time.sleep(0.05)
    assert ctl.elapsed == frozen
    assert events[-1] == SessionStopped(device="A", reason="user")

    ctl.stop()
    assert sum(isinstance(e, SessionStopped) for e in events) == 1


def test_clear_and_resize_work_in_either_state() -> None:
    ctl, events = _controller(capacity=100)
    ctl.start("A")
    _wait_first_tick(ctl)
    ctl.stop()

    ctl.resize(20)
    assert ctl.capacity == 20
    assert ctl.store.capacity == 20
    assert events[-1] == MonitorSettingsChanged(interval_sec=10.0, capacity=20)

    ctl.clear()
    assert ctl.length(MetricKind.CPU_LOAD) == 0
    assert ctl.store.capacity == 20

    try:
        ctl.start("A")
        assert ctl.store.capacity == 20
    finally:
        ctl.shutdown()


def test_invalid_configuration_changes_nothing() -> None:
    ctl, events = _controller()
    for bad in (0.5, 11, float("nan"), "fast"):
        with pytest.raises(ConfigurationError):
            ctl.set_interval(bad)
    with pytest.raises(ConfigurationError):
        ctl.resize(5)
    assert ctl.interval == 10.0
    assert ctl.capacity == 10
    assert events == []


def test_set_interval_is_remembered() -> None:
    ctl, _ = _controller()
    ctl.set_interval(2)
    assert ctl.interval == 2.0
    assert ctl.current_settings().interval_sec == 2.0


def test_device_disconnected_stops_only_the_monitored_device() -> None:
    ctl, events = _controller()
    try:
        ctl.start("A")
        assert ctl.device_disconnected("B") is False
        assert ctl.is_running
        assert ctl.device_disconnected("A") is True
        assert ctl.state is SessionState.STOPPED
        assert events[-1] == SessionStopped(device="A", reason="disconnected")
    finally:
        ctl.shutdown()


def test_unreachable_device_degrades_the_session() -> None:
    ctl, events = _controller(_Factory(fail=True), interval_sec=1.0, failure_threshold=2)
    stopped = threading.Event()
    ctl.event_bus.subscribe(SessionStopped, lambda _e: stopped.set())

    ctl.start("A")
    assert stopped.wait(6)

    assert ctl.state is SessionState.STOPPED
    assert ctl.last_stop_reason == "degraded"
    degraded = [e for e in events if isinstance(e, SessionDegraded)]
    assert len(degraded) == 1
    assert degraded[0].consecutive_failures == 2
    assert "device not found" in degraded[0].last_error
    assert events[-1] == SessionStopped(device="A", reason="degraded")
    assert all(n >= 2 for n in ctl.failure_streaks().values())


def test_details_and_failure_streaks_follow_the_session() -> None:
    ctl, _ = _controller()
    assert ctl.details().empty
    assert ctl.failure_streaks() == {}
    got = threading.Event()
    ctl.event_bus.subscribe(TickCompleted, lambda _e: got.set())
    try:
        ctl.start("A")
        assert got.wait(5)
        details = ctl.details()
        assert (details.load_1m, details.load_5m, details.load_15m) == (1.25, 1.0, 0.75)
        assert details.memory_kb == {"MemTotal": 2000, "MemAvailable": 1000}
        assert details.cpu_cores is None
        assert set(ctl.failure_streaks().values()) == {0}
    finally:
        ctl.shutdown()

from __future__ import annotations

import json
from pathlib import Path

from devmon.monitoring.domain import MonitorSettings
from devmon.monitoring.settings import apply_env_overrides, load_settings, save_settings


def test_defaults() -> None:
    s = MonitorSettings()
    assert s.interval_sec == 1.0
    assert s.capacity == 1000
    assert s.show_plots is True
    assert s.last_device == ""


def test_from_dict_coerces_loose_types() -> None:
    s = MonitorSettings.from_dict(
        {
            "interval_sec": "3",
            "capacity": "250",
            "show_plots": "off",
            "failure_threshold": "7",
            "last_device": "  emulator-5554 ",
        }
    )
    assert s.interval_sec == 3.0
    assert s.capacity == 250
    assert s.show_plots is False
    assert s.failure_threshold == 7
    assert s.last_device == "emulator-5554"


def test_from_dict_clamps_ranges_and_ignores_garbage() -> None:
    s = MonitorSettings.from_dict(
        {
            "interval_sec": 0.1,
            "capacity": 50_000,
            "command_timeout_sec": 999,
            "failure_threshold": 0,
            "show_plots": "maybe",
        }
    )
    assert s.interval_sec == 1.0
    assert s.capacity == 10_000
    assert s.command_timeout_sec == 60.0
    assert s.failure_threshold == 1
    assert s.show_plots is True

    assert MonitorSettings.from_dict({"interval_sec": "nan", "capacity": True}) == MonitorSettings()


def test_round_trip_through_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    save_settings(MonitorSettings(interval_sec=5.0, capacity=300, show_plots=False, last_device="X"), path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["interval_sec"] == 5.0
    assert load_settings(path) == MonitorSettings(
        interval_sec=5.0, capacity=300, show_plots=False, last_device="X"
    )


def test_missing_or_corrupt_file_gives_defaults(tmp_path: Path) -> None:
    assert load_settings(tmp_path / "nope.json") == MonitorSettings()

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert load_settings(bad) == MonitorSettings()

    wrong_shape = tmp_path / "list.json"
    wrong_shape.write_text("[1, 2, 3]", encoding="utf-8")
    assert load_settings(wrong_shape) == MonitorSettings()


def test_env_overrides() -> None:
    base = MonitorSettings(interval_sec=2.0, capacity=100, last_device="A")
    s = apply_env_overrides(
        base, {"DEVMON_INTERVAL": "4", "DEVMON_CAPACITY": "20", "DEVMON_COMMAND_TIMEOUT": "2.5"}
    )
    assert (s.interval_sec, s.capacity, s.command_timeout_sec) == (4.0, 20, 2.5)
    assert s.last_device == "A"
    assert base.interval_sec == 2.0


def test_env_overrides_absent_returns_copy(monkeypatch) -> None:
    for var in ("DEVMON_INTERVAL", "DEVMON_CAPACITY", "DEVMON_COMMAND_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)
    base = MonitorSettings(capacity=42)
    s = apply_env_overrides(base)
    assert s == base
    assert s is not base

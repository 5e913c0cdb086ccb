"""Parsing of raw device command output (loadavg, meminfo, dumpsys battery)."""
import math

import pytest

from devmon.core.errors import ParseFailure
from devmon.monitoring.domain import MetricKind
from devmon.monitoring.parsers import (
    count_cpu_cores,
    parse_battery_level,
    parse_battery_temperature,
    parse_cpu_load,
    parse_device_details,
    parse_load_averages,
    parse_memory_usage,
    parse_meminfo_fields,
    parse_metric,
)

MEMINFO = """MemTotal:        3809036 kB
MemFree:          188704 kB
MemAvailable:    1904518 kB
Buffers:           10832 kB
"""

DUMPSYS_BATTERY = """Current Battery Service state:
  AC powered: false
  USB powered: true
  Wireless powered: false
  status: 2
  health: 2
  present: true
  level: 87
  scale: 100
  voltage: 4213
  temperature: 365
  technology: Li-ion
"""


class TestParseCpuLoad:
    def test_first_token_is_the_value(self) -> None:
        r = parse_cpu_load("0.52 0.58 0.59 1/123 4567")
        assert r.ok
        assert r.value == 0.52

    def test_surrounding_whitespace(self) -> None:
        assert parse_cpu_load("  3.10 2.00 1.00 2/900 11\n").value == 3.10

    def test_empty_output_fails(self) -> None:
        r = parse_cpu_load("")
        assert not r.ok
        assert isinstance(r.failure, ParseFailure)
        assert r.failure.metric == "cpu_load"

    def test_non_numeric_token_fails(self) -> None:
        assert not parse_cpu_load("error: device offline").ok

    def test_nan_is_rejected(self) -> None:
        assert not parse_cpu_load("nan 0.1 0.1 1/1 1").ok


class TestParseMemoryUsage:
    def test_percent_used(self) -> None:
        r = parse_memory_usage(MEMINFO)
        assert r.ok
        assert math.isclose(r.value, (3809036 - 1904518) / 3809036 * 100)

    def test_half_used(self) -> None:
        r = parse_memory_usage("MemTotal: 1000 kB\nMemAvailable: 500 kB\n")
        assert r.value == 50.0

    def test_missing_available_fails(self) -> None:
        r = parse_memory_usage("MemTotal: 1000 kB\nMemFree: 500 kB\n")
        assert not r.ok
        assert "MemAvailable" in r.failure.message

    def test_zero_total_fails(self) -> None:
        assert not parse_memory_usage("MemTotal: 0 kB\nMemAvailable: 0 kB\n").ok

    def test_garbage_fails(self) -> None:
        assert not parse_memory_usage("permission denied").ok


class TestParseBattery:
    def test_level(self) -> None:
        r = parse_battery_level(DUMPSYS_BATTERY)
        assert r.ok
        assert r.value == 87.0

    def test_temperature_is_tenths_of_a_degree(self) -> None:
        r = parse_battery_temperature(DUMPSYS_BATTERY)
        assert r.ok
        assert r.value == 36.5

    def test_level_out_of_range_fails(self) -> None:
        assert not parse_battery_level("  level: 140\n").ok

    def test_level_line_must_start_the_line(self) -> None:
        # "scale:" or "max charging level:" must not be mistaken for the level.
        assert not parse_battery_level("  max charging level: 80\n").ok

    def test_missing_lines_fail(self) -> None:
        assert not parse_battery_level("  scale: 100\n").ok
        assert not parse_battery_temperature("  voltage: 4213\n").ok

    def test_negative_temperature(self) -> None:
        assert parse_battery_temperature("  temperature: -52\n").value == -5.2


class TestParseResult:
    def test_unwrap_raises_failure(self) -> None:
        r = parse_cpu_load("")
        with pytest.raises(ParseFailure):
            r.unwrap()

    def test_dispatch_by_metric(self) -> None:
        assert parse_metric(MetricKind.BATTERY_LEVEL, DUMPSYS_BATTERY).value == 87.0
        assert parse_metric(MetricKind.CPU_LOAD, "1.5 1 1 1/1 1").value == 1.5


class TestMinimalOutputs:
    """Bare outputs without the surrounding report lines."""

    def test_loadavg(self) -> None:
        assert parse_cpu_load("0.42 0.38 0.30 2/150 1234").value == 0.42

    def test_meminfo(self) -> None:
        assert parse_memory_usage("MemTotal: 2000000 kB\nMemAvailable: 500000 kB\n").value == 75.0

    def test_battery_level(self) -> None:
        assert parse_battery_level("level: 87\nvoltage: 4000\n").value == 87.0

    def test_battery_temperature(self) -> None:
        assert parse_battery_temperature("temperature: 365\n").value == 36.5


CPUINFO = """processor\t: 0
BogoMIPS\t: 38.40
Features\t: fp asimd evtstrm

processor\t: 1
BogoMIPS\t: 38.40

processor\t: 2
processor\t: 3
Hardware\t: Qualcomm Technologies, Inc SM8250
"""


class TestDetailParsers:
    def test_load_averages(self) -> None:
        assert parse_load_averages("0.52 0.58 0.59 1/123 4567") == (0.52, 0.58, 0.59)

    def test_short_or_garbled_loadavg_is_unknown(self) -> None:
        assert parse_load_averages("0.52 0.58") is None
        assert parse_load_averages("0.52 x 0.59 1/1 1") is None

    def test_core_count_from_processor_lines(self) -> None:
        assert count_cpu_cores(CPUINFO) == 4
        assert count_cpu_cores("Hardware: none\n") is None

    def test_meminfo_breakdown_keeps_known_numeric_keys(self) -> None:
        extra = "SwapTotal: 2097148 kB\nSwapFree: bogus kB\nShmem: 1 kB\n"
        fields = parse_meminfo_fields(MEMINFO + extra)
        assert fields == {
            "MemTotal": 3809036,
            "MemFree": 188704,
            "MemAvailable": 1904518,
            "Buffers": 10832,
            "SwapTotal": 2097148,
        }


class TestDeviceDetails:
    def test_full_outputs(self) -> None:
        d = parse_device_details("0.52 0.58 0.59 1/123 4567", MEMINFO, DUMPSYS_BATTERY, cpu_cores=8)
        assert (d.load_1m, d.load_5m, d.load_15m) == (0.52, 0.58, 0.59)
        assert d.cpu_cores == 8
        assert d.memory_kb["MemFree"] == 188704
        assert d.battery_voltage_v == 4.21
        assert d.battery_health == "Good"
        assert d.battery_status == "Charging"
        assert d.ac_powered is False
        assert d.usb_powered is True
        assert not d.empty

    def test_missing_outputs_stay_unknown(self) -> None:
        d = parse_device_details(None, None, None)
        assert d.empty
        assert d.memory_kb == {}

    def test_textual_and_unknown_codes(self) -> None:
        d = parse_device_details(battery="  health: Overheat\n  status: 9\n  AC powered: maybe\n")
        assert d.battery_health == "Overheat"
        assert d.battery_status == "Code 9"
        assert d.ac_powered is None
        assert d.battery_voltage_v is None

    def test_garbage_never_raises(self) -> None:
        d = parse_device_details("error: closed", "permission denied", "Can't find service: battery")
        assert d.load_1m is None
        assert d.memory_kb == {}
        assert d.battery_health is None

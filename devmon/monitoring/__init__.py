"""Device monitoring engine: parsers, bounded store, sampler, session controller."""

from .controller import SessionController
from .domain import (
    ALL_METRICS,
    DataPoint,
    DeviceDetails,
    MetricKind,
    MonitorSettings,
    ParseResult,
    SessionState,
    TickReport,
)
from .parsers import (
    PARSERS,
    parse_battery_level,
    parse_battery_temperature,
    parse_cpu_load,
    parse_device_details,
    parse_memory_usage,
)
from .scheduler import SamplingScheduler, next_deadline
from .store import TimeSeriesStore

__all__ = [
    "ALL_METRICS",
    "DataPoint",
    "DeviceDetails",
    "MetricKind",
    "MonitorSettings",
    "ParseResult",
    "SessionState",
    "TickReport",
    "PARSERS",
    "parse_cpu_load",
    "parse_memory_usage",
    "parse_battery_level",
    "parse_battery_temperature",
    "parse_device_details",
    "SamplingScheduler",
    "next_deadline",
    "SessionController",
    "TimeSeriesStore",
]

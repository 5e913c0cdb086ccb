"""Lightweight in-process event bus.

The sampler and the session controller publish lifecycle events; the UI and the
headless console subscribe.
"""

from .event_bus import EventBus, Subscription
from .monitor_events import (
    MetricSkipped,
    MonitorSettingsChanged,
    SessionDegraded,
    SessionStarted,
    SessionStopped,
    TickCompleted,
)

__all__ = [
    "EventBus",
    "Subscription",
    "SessionStarted",
    "SessionStopped",
    "SessionDegraded",
    "TickCompleted",
    "MetricSkipped",
    "MonitorSettingsChanged",
]

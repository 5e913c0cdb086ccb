"""
Thread-safe signal bridge: sampler-thread events are re-emitted as Qt signals,
so slots run on the GUI thread.
"""

from __future__ import annotations

from PySide6.QtCore import QObject, Signal

from devmon.core.events import (
    EventBus,
    SessionDegraded,
    SessionStarted,
    SessionStopped,
    Subscription,
    TickCompleted,
)


class MonitorSignals(QObject):
    """Emit from any thread; connected slots run on the thread owning this object."""

    session_started = Signal(str)  # device
    session_stopped = Signal(str, str)  # (device, reason)
    session_degraded = Signal(str, int, str)  # (device, consecutive_failures, last_error)
    tick_completed = Signal(int, int, int)  # (tick, appended, skipped)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._subs: list[Subscription] = []

    def attach(self, bus: EventBus) -> None:
        self._subs = bus.subscribe_all(
            {
                SessionStarted: lambda e: self.session_started.emit(e.device),
                SessionStopped: lambda e: self.session_stopped.emit(e.device, e.reason),
                SessionDegraded: lambda e: self.session_degraded.emit(
                    e.device, e.consecutive_failures, e.last_error
                ),
                TickCompleted: lambda e: self.tick_completed.emit(
                    e.report.tick, len(e.report.appended), len(e.report.skipped)
                ),
            }
        )

    def detach(self, bus: EventBus) -> None:
        bus.unsubscribe_all(self._subs)
        self._subs = []

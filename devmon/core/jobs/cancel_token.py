from __future__ import annotations

from threading import Event

from devmon.core.errors import CancelledError


class CancelToken:
    """Cooperative cancellation token for background loops."""

    def __init__(self) -> None:
        self._evt = Event()

    def cancel(self) -> None:
        self._evt.set()

    def is_cancelled(self) -> bool:
        return self._evt.is_set()

    def raise_if_cancelled(self, what: str = "Job") -> None:
        if self._evt.is_set():
            raise CancelledError(f"{what} cancelled")

    def wait(self, timeout: float | None = None) -> bool:
        """Sleep up to ``timeout``; returns True early if cancelled."""
        return self._evt.wait(timeout)

"""Composition root / DI container.

UI and the headless runner resolve the controller from here instead of wiring
the ADB client, settings and event bus themselves.
"""

from __future__ import annotations

from pathlib import Path

from devmon.application.ports.device import DeviceClientFactory
from devmon.config import SETTINGS_PATH
from devmon.core.events import EventBus
from devmon.monitoring.controller import SessionController
from devmon.monitoring.domain import MonitorSettings
from devmon.monitoring.settings import apply_env_overrides, load_settings, save_settings
from devmon.services import AdbClient


class Container:
    """Resolves application services. Single place to swap implementations if needed."""

    def __init__(
        self,
        *,
        settings_path: Path | None = None,
        client_factory: DeviceClientFactory | None = None,
    ) -> None:
        self._settings_path = settings_path or SETTINGS_PATH
        self._client_factory = client_factory
        self._event_bus: EventBus | None = None
        self._settings: MonitorSettings | None = None
        self._controller: SessionController | None = None

    @property
    def settings_path(self) -> Path:
        return self._settings_path

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            self._event_bus = EventBus()
        return self._event_bus

    @property
    def settings(self) -> MonitorSettings:
        if self._settings is None:
            self._settings = apply_env_overrides(load_settings(self._settings_path))
        return self._settings

    @property
    def client_factory(self) -> DeviceClientFactory:
        if self._client_factory is None:
            self._client_factory = AdbClient.for_device
        return self._client_factory

    @property
    def session_controller(self) -> SessionController:
        if self._controller is None:
            self._controller = SessionController(
                self.client_factory,
                settings=self.settings,
                event_bus=self.event_bus,
            )
        return self._controller

    def persist_settings(self, *, show_plots: bool | None = None) -> MonitorSettings:
        """Write the controller's current interval/capacity/device back to disk."""
        current = self.session_controller.current_settings()
        current.show_plots = self.settings.show_plots if show_plots is None else show_plots
        if not current.last_device:
            current.last_device = self.settings.last_device
        save_settings(current, self._settings_path)
        self._settings = current
        return current

    def shutdown(self) -> None:
        if self._controller is not None:
            self._controller.shutdown()

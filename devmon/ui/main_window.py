"""
Main window: device picker, session controls, dashboard.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from PySide6.QtCore import Signal
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QSpinBox,
    QStatusBar,
    QVBoxLayout,
    QWidget,
)

from devmon.config import ADB_PATH, MAX_CAPACITY, MAX_INTERVAL_SEC, MIN_CAPACITY, MIN_INTERVAL_SEC
from devmon.core.errors import AppError
from devmon.core.version import get_version_string
from devmon.services import AdbDevice, adb_available, list_devices
from devmon.ui.buttons import PrimaryButton, SecondaryButton
from devmon.ui.dashboard import MonitorDashboardWidget
from devmon.ui.signals import MonitorSignals
from devmon.ui.view_model import vanished_device

if TYPE_CHECKING:
    from devmon.application.container import Container

logger = logging.getLogger(__name__)

_STOP_REASONS = {
    "user": "Monitoring stopped",
    "switch": "Switched device",
    "disconnected": "Device disconnected",
    "degraded": "Device stopped responding",
    "shutdown": "Monitoring stopped",
}


class MonitorWindow(QMainWindow):
    """Single-page monitor. All controller calls happen on the GUI thread."""

    devices_loaded = Signal(list, str)  # (devices, error message)
    notify = Signal(str)

    def __init__(self, container: Container) -> None:
        super().__init__()
        self._container = container
        self._controller = container.session_controller
        settings = container.settings
        self.setWindowTitle(f"Device Monitor {get_version_string()}")
        self.setMinimumSize(900, 620)
        self.resize(1200, 800)

        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        controls = QWidget()
        row = QHBoxLayout(controls)
        row.setContentsMargins(0, 0, 0, 0)
        row.addWidget(QLabel("Device:"))
        self._device_combo = QComboBox()
        self._device_combo.setMinimumWidth(220)
        row.addWidget(self._device_combo)
        self._refresh_btn = SecondaryButton("Refresh")
        self._refresh_btn.clicked.connect(self.refresh_devices)
        row.addWidget(self._refresh_btn)
        self._start_btn = PrimaryButton("Start")
        self._start_btn.clicked.connect(self._on_start_stop)
        row.addWidget(self._start_btn)

        row.addSpacing(16)
        row.addWidget(QLabel("Interval, s:"))
        self._interval_spin = QSpinBox()
        self._interval_spin.setRange(int(MIN_INTERVAL_SEC), int(MAX_INTERVAL_SEC))
        self._interval_spin.setValue(int(round(self._controller.interval)))
        self._interval_spin.valueChanged.connect(self._on_interval_changed)
        row.addWidget(self._interval_spin)
        row.addWidget(QLabel("Points:"))
        self._capacity_spin = QSpinBox()
        self._capacity_spin.setRange(MIN_CAPACITY, MAX_CAPACITY)
        self._capacity_spin.setSingleStep(100)
        self._capacity_spin.setValue(self._controller.capacity)
        self._capacity_spin.editingFinished.connect(self._on_capacity_changed)
        row.addWidget(self._capacity_spin)

        self._sample_btn = SecondaryButton("Sample now")
        self._sample_btn.clicked.connect(self._controller.sample_now)
        row.addWidget(self._sample_btn)
        self._clear_btn = SecondaryButton("Clear")
        self._clear_btn.clicked.connect(self._on_clear)
        row.addWidget(self._clear_btn)
        self._show_plots = QCheckBox("Show plots")
        self._show_plots.setChecked(settings.show_plots)
        row.addWidget(self._show_plots)
        row.addStretch()
        layout.addWidget(controls)

        self._dashboard = MonitorDashboardWidget(self._controller)
        self._dashboard.set_plots_visible(settings.show_plots)
        self._show_plots.toggled.connect(self._dashboard.set_plots_visible)
        layout.addWidget(self._dashboard, 1)

        self.setStatusBar(QStatusBar(self))
        self._signals = MonitorSignals(self)
        self._signals.session_started.connect(self._on_session_started)
        self._signals.session_stopped.connect(self._on_session_stopped)
        self._signals.session_degraded.connect(self._on_session_degraded)
        self._signals.attach(self._controller.event_bus)
        self.devices_loaded.connect(self._on_devices_loaded)
        self.notify.connect(self.statusBar().showMessage)

        self._update_controls()
        self._dashboard.start_refresh()
        self.refresh_devices()

    # --- Devices ---
    def refresh_devices(self) -> None:
        """List devices off the GUI thread; result arrives via ``devices_loaded``."""
        if not adb_available():
            self._on_devices_loaded(
                [], f"'{ADB_PATH}' not found; install platform-tools or set DEVMON_ADB"
            )
            return
        self._refresh_btn.setEnabled(False)

        def _worker() -> None:
            try:
                devices = list_devices()
            except AppError as e:
                self.devices_loaded.emit([], e.message)
                return
            self.devices_loaded.emit(devices, "")

        threading.Thread(target=_worker, name="adb-devices", daemon=True).start()

    def _on_devices_loaded(self, devices: list[AdbDevice], error: str) -> None:
        self._refresh_btn.setEnabled(True)
        if error:
            # Keep the current list and session.
            self.statusBar().showMessage(f"ADB: {error}")
            return
        current = self._device_combo.currentData() or self._container.settings.last_device
        self._device_combo.clear()
        online = [d for d in devices if d.online]
        for d in online:
            title = f"{d.model} ({d.id})" if d.model else d.id
            self._device_combo.addItem(title, d.id)
        idx = self._device_combo.findData(current)
        if idx >= 0:
            self._device_combo.setCurrentIndex(idx)
        gone = vanished_device(self._controller.device, online, error)
        if gone:
            self._controller.device_disconnected(gone)
        self.statusBar().showMessage(f"{len(online)} device(s) online")

    # --- Session ---
    def _on_start_stop(self) -> None:
        if self._controller.is_running:
            self._controller.stop()
            return
        device = self._device_combo.currentData()
        try:
            self._controller.start(device or "")
        except AppError as e:
            QMessageBox.warning(self, "Cannot start monitoring", e.message)

    def _on_interval_changed(self, value: int) -> None:
        try:
            self._controller.set_interval(float(value))
        except AppError as e:
            self.statusBar().showMessage(e.message)

    def _on_capacity_changed(self) -> None:
        value = self._capacity_spin.value()
        if value == self._controller.capacity:
            return
        try:
            self._controller.resize(value)
        except AppError as e:
            self.statusBar().showMessage(e.message)
        self._dashboard.refresh()

    def _on_clear(self) -> None:
        self._controller.clear()
        self._dashboard.refresh()

    def _on_session_started(self, device: str) -> None:
        self._update_controls()
        self.statusBar().showMessage(f"Monitoring {device}")

    def _on_session_stopped(self, device: str, reason: str) -> None:
        self._update_controls()
        self._dashboard.refresh()
        self.statusBar().showMessage(f"{_STOP_REASONS.get(reason, 'Stopped')}: {device}")

    def _on_session_degraded(self, device: str, failures: int, last_error: str) -> None:
        logger.warning("Device %s unreachable", device, extra={"device": device})
        QMessageBox.warning(
            self,
            "Device not responding",
            f"{device} did not answer {failures} times in a row.\n\n{last_error}\n\n"
            "Check the USB connection and press Start to resume.",
        )

    def _update_controls(self) -> None:
        running = self._controller.is_running
        self._start_btn.setText("Stop" if running else "Start")
        self._sample_btn.setEnabled(running)
        self._device_combo.setEnabled(not running)

    def closeEvent(self, event: QCloseEvent) -> None:
        self._dashboard.stop_refresh()
        self._signals.detach(self._controller.event_bus)
        self._container.persist_settings(show_plots=self._show_plots.isChecked())
        self._container.shutdown()
        super().closeEvent(event)

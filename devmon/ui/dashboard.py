"""
Monitor dashboard: one pyqtgraph plot per metric, redrawn from store snapshots on a QTimer.
"""

from __future__ import annotations

import pyqtgraph as pg
from pyqtgraph import PlotDataItem, PlotWidget
from PySide6.QtCore import QTimer
from PySide6.QtWidgets import (
    QGridLayout,
    QGroupBox,
    QLabel,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)

from devmon.config import DASHBOARD_REFRESH_MS
from devmon.monitoring.controller import SessionController
from devmon.monitoring.domain import ALL_METRICS, DeviceDetails, MetricKind
from devmon.ui.view_model import detail_rows, metric_value_text

CURVE_COLORS = {
    MetricKind.CPU_LOAD: "#3b82f6",
    MetricKind.MEMORY_USAGE_PCT: "#22c55e",
    MetricKind.BATTERY_LEVEL: "#eab308",
    MetricKind.BATTERY_TEMPERATURE: "#ef4444",
}

_DETAIL_COLUMNS = 3


class MonitorDashboardWidget(QWidget):
    """Four live curves, latest values, the details grid and the fill counter."""

    def __init__(self, controller: SessionController, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._controller = controller
        self._curves: dict[MetricKind, PlotDataItem] = {}
        self._plots: dict[MetricKind, PlotWidget] = {}
        self._value_labels: dict[MetricKind, QLabel] = {}
        self._refresh_timer = QTimer(self)
        self._refresh_timer.setInterval(DASHBOARD_REFRESH_MS)
        self._refresh_timer.timeout.connect(self.refresh)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        pg.setConfigOptions(antialias=True)

        grid_host = QWidget()
        grid = QGridLayout(grid_host)
        grid.setContentsMargins(0, 0, 0, 0)
        for i, metric in enumerate(ALL_METRICS):
            plot = pg.PlotWidget()
            plot.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
            plot.setMinimumHeight(160)
            plot.showGrid(x=True, y=True, alpha=0.3)
            plot.setTitle(metric.label)
            plot.setLabel("left", metric.unit)
            plot.setLabel("bottom", "Time", units="s")
            curve = pg.PlotDataItem(pen=pg.mkPen(CURVE_COLORS[metric], width=2), name=metric.value)
            plot.addItem(curve)
            self._plots[metric] = plot
            self._curves[metric] = curve
            grid.addWidget(plot, i // 2, i % 2)
        layout.addWidget(grid_host, 1)

        values_row = QWidget()
        values_layout = QGridLayout(values_row)
        values_layout.setContentsMargins(0, 4, 0, 0)
        for i, metric in enumerate(ALL_METRICS):
            label = QLabel(metric_value_text(metric, None))
            label.setObjectName("metricValue")
            self._value_labels[metric] = label
            values_layout.addWidget(label, 0, i)
        layout.addWidget(values_row)

        self._details_box = QGroupBox("Details")
        details_grid = QGridLayout(self._details_box)
        details_grid.setContentsMargins(8, 4, 8, 4)
        self._detail_labels: dict[str, QLabel] = {}
        for i, (name, value) in enumerate(detail_rows(DeviceDetails())):
            row, col = divmod(i, _DETAIL_COLUMNS)
            caption = QLabel(f"{name}:")
            caption.setObjectName("detailCaption")
            value_label = QLabel(value)
            value_label.setObjectName("detailValue")
            self._detail_labels[name] = value_label
            details_grid.addWidget(caption, row, 2 * col)
            details_grid.addWidget(value_label, row, 2 * col + 1)
        layout.addWidget(self._details_box)

        self._usage_label = QLabel("0 / 0")
        self._usage_label.setObjectName("usageCounter")
        self._elapsed_label = QLabel("")
        footer = QWidget()
        footer_layout = QGridLayout(footer)
        footer_layout.setContentsMargins(0, 0, 0, 0)
        footer_layout.addWidget(self._elapsed_label, 0, 0)
        footer_layout.addWidget(self._usage_label, 0, 1)
        layout.addWidget(footer)

    def start_refresh(self) -> None:
        if not self._refresh_timer.isActive():
            self._refresh_timer.start()

    def stop_refresh(self) -> None:
        self._refresh_timer.stop()

    def set_plots_visible(self, visible: bool) -> None:
        for plot in self._plots.values():
            plot.setVisible(visible)

    def refresh(self) -> None:
        """Redraw from the current store. Safe to call while the sampler is writing."""
        store = self._controller.store
        if store is None:
            for metric in ALL_METRICS:
                self._curves[metric].setData([], [])
                self._value_labels[metric].setText(metric_value_text(metric, None))
            self._usage_label.setText(f"0 / {self._controller.capacity}")
            self._elapsed_label.setText("")
            self._show_details(DeviceDetails())
            return
        streaks = self._controller.failure_streaks()
        for metric in ALL_METRICS:
            xs, ys = store.arrays(metric)
            self._curves[metric].setData(xs, ys)
            self._value_labels[metric].setText(
                metric_value_text(metric, store.latest(metric), streaks.get(metric, 0))
            )
        self._usage_label.setText(store.usage_text())
        self._elapsed_label.setText(f"{store.device}  ·  {self._controller.elapsed:.0f} s")
        self._show_details(store.details())

    def _show_details(self, details: DeviceDetails) -> None:
        for name, value in detail_rows(details):
            self._detail_labels[name].setText(value)

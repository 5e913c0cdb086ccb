"""
Action buttons for the monitor toolbar. Styling by objectName (#primaryButton, #secondaryButton).
"""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QPushButton, QWidget


class _ActionButton(QPushButton):
    object_name = "secondaryButton"

    def __init__(self, text: str, parent: QWidget | None = None) -> None:
        super().__init__(text, parent)
        self.setObjectName(self.object_name)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setMinimumHeight(32)


class PrimaryButton(_ActionButton):
    """Start/Stop toggle."""

    object_name = "primaryButton"


class SecondaryButton(_ActionButton):
    """Refresh, clear, sample now."""

"""Application port for talking to a device.

The sampler depends on this interface instead of the ADB subprocess client,
so tests can drive it with an in-memory fake.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol


class DeviceCommandPort(Protocol):
    def execute(self, command: str, timeout: float) -> str:
        """Run ``command`` on the device and return its stdout.

        Raises CommunicationFailure on transport errors, non-zero exit or timeout.
        """


DeviceClientFactory = Callable[[str], DeviceCommandPort]

"""Infrastructure services: the ADB transport and device discovery."""

from .adb_client import AdbClient, AdbDevice, adb_available, list_devices, parse_devices_output

__all__ = [
    "AdbClient",
    "AdbDevice",
    "adb_available",
    "list_devices",
    "parse_devices_output",
]

"""ADB transport: runs ``adb -s <serial> shell <command>`` with a timeout."""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass

from devmon.config import ADB_DEVICES_TIMEOUT_SEC, ADB_PATH
from devmon.core.errors import CommunicationFailure, InfrastructureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AdbDevice:
    id: str
    status: str
    model: str = ""
    product: str = ""
    transport_id: str = ""

    @property
    def online(self) -> bool:
        return self.status == "device"


def _run_adb(args: list[str], timeout: float) -> str:
    """Run adb and return stdout; raise CommunicationFailure on any non-success."""
    command = " ".join(args[1:])
    try:
        r = subprocess.run(
            args,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise CommunicationFailure(
            f"'{command}' timed out after {timeout:g}s", cause=e, command=command
        ) from e
    except OSError as e:
        infra = InfrastructureError(f"cannot run {args[0]!r}", cause=e)
        raise CommunicationFailure(str(infra), cause=infra, command=command) from e
    if r.returncode != 0:
        detail = (r.stderr or r.stdout or "").strip().splitlines()
        reason = detail[-1] if detail else f"exit code {r.returncode}"
        raise CommunicationFailure(f"ADB command failed: {reason}", command=command)
    return r.stdout


class AdbClient:
    """DeviceCommandPort backed by the adb executable, bound to one serial."""

    def __init__(self, serial: str, adb_path: str = ADB_PATH) -> None:
        self._serial = serial
        self._adb = adb_path

    @classmethod
    def for_device(cls, serial: str) -> AdbClient:
        return cls(serial)

    @property
    def serial(self) -> str:
        return self._serial

    def execute(self, command: str, timeout: float) -> str:
        args = [self._adb, "-s", self._serial, "shell", *shlex.split(command)]
        return _run_adb(args, timeout)


def adb_available(adb_path: str = ADB_PATH) -> bool:
    return shutil.which(adb_path) is not None


def parse_devices_output(text: str) -> list[AdbDevice]:
    """Parse ``adb devices -l``.

    Lines look like ``emulator-5554  device product:sdk_gphone model:Pixel_6 transport_id:1``.
    """
    devices: list[AdbDevice] = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not line or line.startswith("List of devices") or line.startswith("*"):
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        props = dict(p.split(":", 1) for p in parts[2:] if ":" in p)
        devices.append(
            AdbDevice(
                id=parts[0],
                status=parts[1],
                model=props.get("model", ""),
                product=props.get("product", ""),
                transport_id=props.get("transport_id", ""),
            )
        )
    return devices


def list_devices(
    adb_path: str = ADB_PATH, timeout: float = ADB_DEVICES_TIMEOUT_SEC
) -> list[AdbDevice]:
    out = _run_adb([adb_path, "devices", "-l"], timeout)
    devices = parse_devices_output(out)
    logger.debug("adb reported %d device(s)", len(devices))
    return devices

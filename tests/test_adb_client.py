from __future__ import annotations

import subprocess
from types import SimpleNamespace

import pytest

from devmon.core.errors import CommunicationFailure, InfrastructureError
from devmon.services import adb_client
from devmon.services.adb_client import AdbClient, list_devices, parse_devices_output

DEVICES_OUTPUT = """List of devices attached
emulator-5554          device product:sdk_gphone64 model:sdk_gphone64_x86_64 device:emu64 transport_id:1
R58M12ABCDE            unauthorized usb:1-1 transport_id:3
0123456789ABCDEF       offline transport_id:4

"""


def _fake_run(calls: list[list[str]], *, returncode: int = 0, stdout: str = "", stderr: str = ""):
    def run(args, **kwargs):  # type: ignore[no-untyped-def]
        calls.append(list(args))
        assert kwargs["timeout"] > 0
        return SimpleNamespace(returncode=returncode, stdout=stdout, stderr=stderr)

    return run


def test_execute_runs_adb_shell_for_the_serial(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(adb_client.subprocess, "run", _fake_run(calls, stdout="0.1 0.2 0.3 1/1 1\n"))

    out = AdbClient("emulator-5554", adb_path="adb").execute("cat /proc/loadavg", 2.0)

    assert out == "0.1 0.2 0.3 1/1 1\n"
    assert calls == [["adb", "-s", "emulator-5554", "shell", "cat", "/proc/loadavg"]]


def test_non_zero_exit_is_communication_failure(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(
        adb_client.subprocess,
        "run",
        _fake_run(calls, returncode=1, stderr="error: device 'X' not found\n"),
    )

    with pytest.raises(CommunicationFailure) as ei:
        AdbClient("X").execute("dumpsys battery", 2.0)
    assert "not found" in ei.value.message
    assert "dumpsys battery" in ei.value.command


def test_timeout_is_communication_failure(monkeypatch) -> None:
    def run(args, **kwargs):  # type: ignore[no-untyped-def]
        raise subprocess.TimeoutExpired(args, kwargs["timeout"])

    monkeypatch.setattr(adb_client.subprocess, "run", run)

    with pytest.raises(CommunicationFailure) as ei:
        AdbClient("X").execute("cat /proc/meminfo", 0.5)
    assert "timed out" in ei.value.message
    assert isinstance(ei.value.cause, subprocess.TimeoutExpired)


def test_missing_adb_is_wrapped(monkeypatch) -> None:
    def run(args, **kwargs):  # type: ignore[no-untyped-def]
        raise FileNotFoundError(2, "No such file or directory", args[0])

    monkeypatch.setattr(adb_client.subprocess, "run", run)

    with pytest.raises(CommunicationFailure) as ei:
        AdbClient("X", adb_path="/nowhere/adb").execute("cat /proc/loadavg", 1.0)
    assert isinstance(ei.value.cause, InfrastructureError)


def test_parse_devices_output() -> None:
    devices = parse_devices_output(DEVICES_OUTPUT)

    assert [d.id for d in devices] == ["emulator-5554", "R58M12ABCDE", "0123456789ABCDEF"]
    emu = devices[0]
    assert emu.online
    assert emu.model == "sdk_gphone64_x86_64"
    assert emu.product == "sdk_gphone64"
    assert emu.transport_id == "1"
    assert not devices[1].online
    assert devices[2].status == "offline"


def test_parse_devices_output_ignores_daemon_chatter() -> None:
    text = "* daemon not running; starting now at tcp:5037\n* daemon started successfully\nList of devices attached\n"
    assert parse_devices_output(text) == []


def test_list_devices(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(adb_client.subprocess, "run", _fake_run(calls, stdout=DEVICES_OUTPUT))

    devices = list_devices("adb", timeout=1.0)

    assert calls == [["adb", "devices", "-l"]]
    assert len(devices) == 3


def test_adb_available_looks_the_executable_up_on_path(monkeypatch) -> None:
    seen: list[str] = []

    def which(name: str) -> str | None:
        seen.append(name)
        return "/opt/platform-tools/adb" if name == "adb" else None

    monkeypatch.setattr(adb_client.shutil, "which", which)

    assert adb_client.adb_available("adb") is True
    assert adb_client.adb_available("/missing/adb") is False
    assert seen == ["adb", "/missing/adb"]

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from types import SimpleNamespace

import pytest

from xcresult_harness.runtime.simulator.controller import (
    SimulatorController,
    SimulatorControllerError,
    runtime_version,
)

UDID_BOOTED = "11111111-2222-3333-4444-555555555555"
UDID_SHUTDOWN = "AAAAAAAA-BBBB-CCCC-DDDD-EEEEEEEEEEEE"
UDID_OLD = "99999999-8888-7777-6666-555555555555"

DEVICES_JSON = json.dumps(
    {
        "devices": {
            "com.apple.CoreSimulator.SimRuntime.iOS-17-5": [
                {"udid": UDID_OLD, "name": "iPhone 16", "state": "Shutdown", "isAvailable": True},
            ],
            "com.apple.CoreSimulator.SimRuntime.iOS-18-6": [
                {
                    "udid": UDID_SHUTDOWN,
                    "name": "iPhone 16",
                    "state": "Shutdown",
                    "isAvailable": True,
                },
                {"udid": UDID_BOOTED, "name": "iPhone 16", "state": "Booted", "isAvailable": True},
                {"udid": "bad"},
            ],
        }
    }
)


def _fake_devices(calls: list[list[str]]):
    def fake_run(cmd, **kwargs):
        calls.append(list(cmd))
        return SimpleNamespace(stdout=DEVICES_JSON, stderr="", returncode=0)

    return fake_run


def test_list_devices_parses_json(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(subprocess, "run", _fake_devices(calls))

    devices = SimulatorController().list_devices()

    assert calls[0] == ["xcrun", "simctl", "list", "devices", "available", "-j"]
    assert [d.udid for d in devices] == [UDID_OLD, UDID_SHUTDOWN, UDID_BOOTED]
    assert devices[2].booted


def test_find_device_prefers_booted(monkeypatch) -> None:
    monkeypatch.setattr(subprocess, "run", _fake_devices([]))
    ctr = SimulatorController()

    assert ctr.find_device_udid("iPhone 16") == UDID_BOOTED
    assert ctr.find_device_udid("iPhone 16", os_version="17.5") == UDID_OLD
    assert ctr.find_device_udid("iPad Pro") is None


def test_is_booted_and_describe(monkeypatch) -> None:
    monkeypatch.setattr(subprocess, "run", _fake_devices([]))
    ctr = SimulatorController()

    assert ctr.is_booted(UDID_BOOTED) is True
    assert ctr.is_booted(UDID_SHUTDOWN) is False
    assert ctr.describe(UDID_BOOTED)["os_version"] == "18.6"
    assert ctr.describe("unknown")["name"] is None


def test_runtime_version() -> None:
    assert runtime_version("com.apple.CoreSimulator.SimRuntime.iOS-18-6") == "18.6"
    assert runtime_version("com.apple.CoreSimulator.SimRuntime.watchOS-11-0") == "11.0"
    assert runtime_version("garbage") is None


def test_xcrun_passes_timeout_and_raises_on_failure(monkeypatch) -> None:
    seen: dict = {}

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return SimpleNamespace(stdout="", stderr="boom", returncode=3)

    monkeypatch.setattr(subprocess, "run", fake_run)
    ctr = SimulatorController(timeout_s=12.0)

    with pytest.raises(SimulatorControllerError, match="rc=3"):
        ctr.simctl("list")
    assert seen["timeout"] == 12.0
    assert seen["errors"] == "replace"

    res = ctr.simctl("list", check=False, timeout_s=1.5)
    assert not res.ok()
    assert seen["timeout"] == 1.5


def test_xcrun_missing_binary_raises_controller_error(monkeypatch) -> None:
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(SimulatorControllerError, match="xcrun not found"):
        SimulatorController(xcrun_path="/nope").list_devices()


def test_screenshot_writes_png(tmp_path: Path, tiny_png: bytes, monkeypatch) -> None:
    calls: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        calls.append(list(cmd))
        Path(cmd[-1]).write_bytes(tiny_png)
        return SimpleNamespace(stdout="", stderr="", returncode=0)

    monkeypatch.setattr(subprocess, "run", fake_run)
    out = tmp_path / "shots" / "00_pre_test.png"

    assert SimulatorController().screenshot(UDID_BOOTED, out) == out
    assert calls[0] == ["xcrun", "simctl", "io", UDID_BOOTED, "screenshot", str(out)]


def test_screenshot_best_effort_returns_none_on_failure(tmp_path: Path, monkeypatch) -> None:
    def fake_run(cmd, **kwargs):
        return SimpleNamespace(stdout="", stderr="Invalid device", returncode=1)

    monkeypatch.setattr(subprocess, "run", fake_run)
    ctr = SimulatorController()

    assert ctr.screenshot_best_effort(UDID_BOOTED, tmp_path / "x.png") is None
    with pytest.raises(SimulatorControllerError, match="Invalid device"):
        ctr.screenshot(UDID_BOOTED, tmp_path / "x.png")


def test_screenshot_rejects_non_png(tmp_path: Path, monkeypatch) -> None:
    def fake_run(cmd, **kwargs):
        Path(cmd[-1]).write_bytes(b"\xff\xd8\xff\xe0")
        return SimpleNamespace(stdout="", stderr="", returncode=0)

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(SimulatorControllerError, match="non-PNG"):
        SimulatorController().screenshot(UDID_BOOTED, tmp_path / "x.png")

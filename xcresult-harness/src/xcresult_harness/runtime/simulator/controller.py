"""iOS Simulator controller utilities.

A *minimal* wrapper around `xcrun simctl` used for screenshots and device
lookup. Booting, installing and launching apps are left to the vendor tools.

Notes
-----
* Every call goes through `xcrun()` so the exact argv is recorded in the
  returned `XcrunResult`.
* No timeout is applied unless one is configured.
"""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from xcresult_harness.attachments.signatures import FileKind, sniff_file

logger = logging.getLogger(__name__)


class SimulatorControllerError(RuntimeError):
    """Raised when an xcrun/simctl operation fails."""


@dataclass(frozen=True)
class XcrunResult:
    args: list[str]
    stdout: str
    stderr: str
    returncode: int

    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True)
class SimDevice:
    udid: str
    name: str
    state: str
    runtime: str
    is_available: bool = True

    @property
    def booted(self) -> bool:
        return self.state == "Booted"


def _parse_devices_json(txt: str) -> List[SimDevice]:
    """Parse `simctl list devices -j` output.

    Shape: {"devices": {"<runtime id>": [{"udid", "name", "state", ...}]}}
    """

    try:
        obj = json.loads(txt or "{}")
    except json.JSONDecodeError as e:
        raise SimulatorControllerError(f"simctl returned invalid JSON: {e}") from e
    runtimes = obj.get("devices") if isinstance(obj, dict) else None
    if not isinstance(runtimes, dict):
        return []

    out: List[SimDevice] = []
    for runtime, devices in runtimes.items():
        if not isinstance(devices, list):
            continue
        for d in devices:
            if not isinstance(d, dict):
                continue
            udid = d.get("udid")
            name = d.get("name")
            if not isinstance(udid, str) or not isinstance(name, str):
                continue
            out.append(
                SimDevice(
                    udid=udid,
                    name=name,
                    state=str(d.get("state") or ""),
                    runtime=str(runtime),
                    is_available=bool(d.get("isAvailable", True)),
                )
            )
    return out


def runtime_version(runtime: str) -> Optional[str]:
    """'com.apple.CoreSimulator.SimRuntime.iOS-18-6' -> '18.6'."""

    tail = runtime.rsplit(".", 1)[-1]
    if "-" not in tail:
        return None
    parts = tail.split("-")[1:]
    if not parts or not all(p.isdigit() for p in parts):
        return None
    return ".".join(parts)


class SimulatorController:
    """Thin wrapper around `xcrun simctl`."""

    def __init__(
        self,
        *,
        xcrun_path: str = "xcrun",
        timeout_s: Optional[float] = None,
    ) -> None:
        self._xcrun_path = xcrun_path
        self._timeout_s = timeout_s

    @property
    def xcrun_path(self) -> str:
        return self._xcrun_path

    def xcrun(self, *args: str, timeout_s: float | None = None, check: bool = True) -> XcrunResult:
        cmd = [self._xcrun_path] + list(args)
        timeout = self._timeout_s if timeout_s is None else float(timeout_s)
        try:
            proc = subprocess.run(
                cmd, capture_output=True, text=True, errors="replace", timeout=timeout
            )
        except FileNotFoundError as e:
            raise SimulatorControllerError(f"xcrun not found: {self._xcrun_path}") from e
        except subprocess.TimeoutExpired as e:
            raise SimulatorControllerError(f"xcrun timed out: {' '.join(cmd)}") from e

        result = XcrunResult(
            args=cmd,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            returncode=proc.returncode,
        )
        if check and not result.ok():
            raise SimulatorControllerError(
                f"xcrun command failed (rc={result.returncode}): {' '.join(cmd)}\n"
                f"stdout: {result.stdout}\n"
                f"stderr: {result.stderr}"
            )
        return result

    def simctl(self, *args: str, timeout_s: float | None = None, check: bool = True) -> XcrunResult:
        return self.xcrun("simctl", *args, timeout_s=timeout_s, check=check)

    def list_devices(self, *, available_only: bool = True) -> List[SimDevice]:
        args = ["list", "devices"]
        if available_only:
            args.append("available")
        args.append("-j")
        res = self.simctl(*args)
        return _parse_devices_json(res.stdout)

    def find_device(self, name: str, *, os_version: Optional[str] = None) -> Optional[SimDevice]:
        """Prefer a booted device called `name`, else the first available one."""

        candidates = [d for d in self.list_devices() if d.name == name and d.is_available]
        if os_version:
            candidates = [d for d in candidates if runtime_version(d.runtime) == os_version]
        for d in candidates:
            if d.booted:
                return d
        return candidates[0] if candidates else None

    def find_device_udid(self, name: str, *, os_version: Optional[str] = None) -> Optional[str]:
        device = self.find_device(name, os_version=os_version)
        return device.udid if device is not None else None

    def is_booted(self, udid: str) -> bool:
        for d in self.list_devices(available_only=False):
            if d.udid == udid:
                return d.booted
        return False

    def screenshot(self, udid: str, path: Path, *, timeout_s: float | None = None) -> Path:
        """Write a PNG screenshot of `udid` to `path`."""

        path.parent.mkdir(parents=True, exist_ok=True)
        res = self.simctl("io", udid, "screenshot", str(path), timeout_s=timeout_s, check=False)
        if not res.ok():
            raise SimulatorControllerError(
                f"simctl screenshot failed (rc={res.returncode}): {res.stderr.strip()[:500]}"
            )
        if not path.is_file():
            raise SimulatorControllerError(f"simctl screenshot wrote no file: {path}")
        if sniff_file(path) is not FileKind.PNG:
            raise SimulatorControllerError(f"simctl screenshot produced non-PNG bytes: {path}")
        return path

    def screenshot_best_effort(
        self, udid: str, path: Path, *, timeout_s: float | None = None
    ) -> Optional[Path]:
        try:
            return self.screenshot(udid, path, timeout_s=timeout_s)
        except SimulatorControllerError as e:
            logger.debug("screenshot failed for %s: %s", udid, e)
            return None

    def describe(self, udid: str) -> Dict[str, Any]:
        for d in self.list_devices(available_only=False):
            if d.udid == udid:
                return {
                    "udid": d.udid,
                    "name": d.name,
                    "state": d.state,
                    "os_version": runtime_version(d.runtime),
                }
        return {"udid": udid, "name": None, "state": None, "os_version": None}

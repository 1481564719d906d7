"""Runtime helpers: simulator control and background capture."""

from __future__ import annotations

from xcresult_harness.runtime.capture_monitor import CaptureMonitor, CaptureMonitorConfig

__all__ = [
    "CaptureMonitor",
    "CaptureMonitorConfig",
]

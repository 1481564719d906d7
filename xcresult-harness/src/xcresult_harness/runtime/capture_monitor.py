"""Periodic screenshot monitor.

Takes one best-effort capture every `interval_s` seconds on a daemon thread
until cancelled. Outputs are named `auto_<n>.png`; the counter advances on
every tick, so a failed capture leaves a gap in the numbering.

The monitor is an explicit handle: callers `start()` it and `stop()` it (or use
it as a context manager). Cancellation is cooperative; the loop checks the
event while waiting and again right before each capture.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

CaptureFn = Callable[[Path], Optional[Path]]


@dataclass(frozen=True)
class CaptureMonitorConfig:
    interval_s: float = 1.0
    prefix: str = "auto"
    join_timeout_s: float = 2.0


class CaptureMonitor:
    """Background loop calling `capture_fn(path)` once per interval.

    `capture_fn` returns the written path, or None when nothing was captured.
    Exceptions raised by `capture_fn` are logged and swallowed; a failed tick
    is not retried.
    """

    def __init__(
        self,
        capture_fn: CaptureFn,
        output_dir: Path,
        *,
        config: CaptureMonitorConfig | None = None,
    ) -> None:
        self.capture_fn = capture_fn
        self.output_dir = Path(output_dir)
        self.config = config or CaptureMonitorConfig()

        self._cancel = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._counter = 0
        self._captured: List[Path] = []

    @property
    def enabled(self) -> bool:
        return float(self.config.interval_s) > 0

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def ticks(self) -> int:
        with self._lock:
            return self._counter

    @property
    def captured(self) -> List[Path]:
        with self._lock:
            return list(self._captured)

    def _next_path(self) -> Path:
        with self._lock:
            n = self._counter
            self._counter += 1
        return self.output_dir / f"{self.config.prefix}_{n}.png"

    def _tick(self) -> None:
        path = self._next_path()
        try:
            written = self.capture_fn(path)
        except Exception as e:
            logger.debug("capture failed for %s: %s", path.name, e)
            return
        if written is None:
            return
        with self._lock:
            self._captured.append(Path(written))
        logger.info("auto-capture %s", Path(written).name)

    def _run(self) -> None:
        interval = float(self.config.interval_s)
        while not self._cancel.wait(interval):
            if self._cancel.is_set():
                break
            self._tick()

    def start(self) -> None:
        if not self.enabled:
            logger.debug("capture monitor disabled (interval_s=%s)", self.config.interval_s)
            return
        if self.running:
            return
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._cancel.clear()
        self._thread = threading.Thread(
            target=self._run, name="capture-monitor", daemon=True
        )
        self._thread.start()

    def stop(self, *, wait: bool = True, timeout_s: float | None = None) -> None:
        """Cancel the loop.

        With `wait=False` this returns immediately and an in-flight capture
        may still complete afterwards.
        """

        self._cancel.set()
        thread = self._thread
        if thread is None:
            return
        if wait:
            thread.join(timeout=self.config.join_timeout_s if timeout_s is None else timeout_s)
            if not thread.is_alive():
                self._thread = None

    def __enter__(self) -> "CaptureMonitor":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

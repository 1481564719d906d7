"""Run summary (`summary.json`) for screenshot runs.

One summary per run directory. Entries are kept in memory and the whole
document is rewritten atomically on every `write()`, so a reader never sees a
half-appended file.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from xcresult_harness.utils.hashing import write_json_atomic

SUMMARY_FILENAME = "summary.json"
RESULTS = ("passed", "failed", "captured")


def run_timestamp(ts: Optional[float] = None) -> str:
    return time.strftime("%Y%m%d_%H%M%S", time.localtime(time.time() if ts is None else ts))


def count_pngs(directory: Path) -> int:
    if not directory.is_dir():
        return 0
    return sum(1 for p in directory.rglob("*.png") if p.is_file())


@dataclass(frozen=True)
class SummaryEntry:
    mode: str
    test_name: str
    result: str
    screenshot_count: int
    screenshot_dir: str


@dataclass
class RunSummary:
    timestamp: str
    device: str
    ios_version: Optional[str] = None
    tests: List[SummaryEntry] = field(default_factory=list)

    def add_entry(
        self,
        *,
        mode: str,
        result: str,
        screenshot_dir: Path,
        test_name: Optional[str] = None,
    ) -> SummaryEntry:
        if result not in RESULTS:
            raise ValueError(f"result must be one of {RESULTS}: {result!r}")
        entry = SummaryEntry(
            mode=mode,
            test_name=test_name or "all",
            result=result,
            screenshot_count=count_pngs(screenshot_dir),
            screenshot_dir=screenshot_dir.name,
        )
        self.tests.append(entry)
        return entry

    def to_json(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "device": self.device,
            "ios_version": self.ios_version,
            "tests": [asdict(t) for t in self.tests],
        }

    def write(self, path: Path) -> Path:
        write_json_atomic(path, self.to_json())
        return path


def load_summary(path: Path) -> RunSummary:
    obj = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(obj, dict):
        raise ValueError(f"summary must be an object: {path}")
    tests = [SummaryEntry(**t) for t in obj.get("tests") or [] if isinstance(t, dict)]
    return RunSummary(
        timestamp=str(obj.get("timestamp") or ""),
        device=str(obj.get("device") or ""),
        ios_version=obj.get("ios_version"),
        tests=tests,
    )

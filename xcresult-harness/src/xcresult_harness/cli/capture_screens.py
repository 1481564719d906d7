from __future__ import annotations

import argparse
import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from xcresult_harness.attachments.exporters import exporter_for
from xcresult_harness.attachments.scanner import extract_attachments
from xcresult_harness.config import CaptureConfig, ConfigValidationError, load_capture_config
from xcresult_harness.reporting.summary import (
    RESULTS,
    SUMMARY_FILENAME,
    RunSummary,
    load_summary,
    run_timestamp,
)
from xcresult_harness.runtime.capture_monitor import CaptureMonitor, CaptureMonitorConfig
from xcresult_harness.runtime.simulator.controller import (
    SimulatorController,
    SimulatorControllerError,
)
from xcresult_harness.utils.hashing import json_dumps

logger = logging.getLogger(__name__)

PRE_TEST_NAME = "00_pre_test.png"
POST_TEST_NAME = "99_post_test.png"
XCTEST_PREFIX = "xctest"


def resolve_udid(controller: SimulatorController, cfg: CaptureConfig) -> Optional[str]:
    if cfg.udid:
        return cfg.udid
    return controller.find_device_udid(cfg.device, os_version=cfg.os_version)


def run_capture(
    *,
    cfg: CaptureConfig,
    controller: SimulatorController,
    udid: str,
    run_dir: Path,
    duration_s: float,
    mode: str = "visualizer",
    test_name: Optional[str] = None,
    result: str = "captured",
    pre_post: bool = True,
    result_bundle: Optional[Path] = None,
    stop_event: Optional[threading.Event] = None,
) -> Dict[str, Any]:
    """Capture screenshots of `udid` into `run_dir/<mode>` for `duration_s` seconds.

    An existing `run_dir/summary.json` is loaded and the new entry appended to
    it, so several modes can share one run folder.
    """

    shots_dir = run_dir / mode
    shots_dir.mkdir(parents=True, exist_ok=True)

    def capture(path: Path) -> Optional[Path]:
        return controller.screenshot_best_effort(udid, path, timeout_s=cfg.timeout_s)

    if pre_post:
        capture(shots_dir / PRE_TEST_NAME)

    monitor = CaptureMonitor(
        capture,
        shots_dir,
        config=CaptureMonitorConfig(interval_s=float(cfg.interval_s), prefix=cfg.prefix),
    )
    stop = stop_event or threading.Event()
    with monitor:
        try:
            stop.wait(max(0.0, float(duration_s)))
        except KeyboardInterrupt:
            logger.info("interrupted; stopping capture monitor")

    if pre_post:
        capture(shots_dir / POST_TEST_NAME)

    extracted = []
    if result_bundle is not None:
        if result_bundle.is_dir():
            exporter = exporter_for(
                result_bundle, xcrun_path=controller.xcrun_path, timeout_s=cfg.timeout_s
            )
            extracted = extract_attachments(
                result_bundle, shots_dir, exporter=exporter, prefix=XCTEST_PREFIX
            )
        else:
            logger.warning("result bundle not found: %s", result_bundle)

    summary_path = run_dir / SUMMARY_FILENAME
    if summary_path.is_file():
        summary = load_summary(summary_path)
    else:
        summary = RunSummary(
            timestamp=run_dir.name, device=cfg.device, ios_version=cfg.os_version
        )
    entry = summary.add_entry(
        mode=mode, result=result, screenshot_dir=shots_dir, test_name=test_name
    )
    summary.write(summary_path)

    return {
        "udid": udid,
        "config": cfg.to_json(),
        "run_dir": str(run_dir),
        "auto_captures": [p.name for p in monitor.captured],
        "xctest_attachments": [item.path.name for item in extracted],
        "screenshot_count": entry.screenshot_count,
        "summary": str(summary_path),
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Capture periodic iOS Simulator screenshots (pre/auto/post)."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional YAML/JSON capture config (see schemas/capture_config.schema.json).",
    )
    parser.add_argument("--device", type=str, default=None, help="Simulator name (e.g. 'iPhone 16')")
    parser.add_argument("--os_version", type=str, default=None, help="Runtime version (e.g. 18.6)")
    parser.add_argument("--udid", type=str, default=None, help="Simulator UDID (skips lookup)")
    parser.add_argument(
        "--interval_s",
        type=float,
        default=None,
        help="Seconds between auto-captures (0 disables; default: 1)",
    )
    parser.add_argument(
        "--out_dir",
        type=Path,
        default=None,
        help="Base screenshots directory; a <timestamp>/ run folder is created inside.",
    )
    parser.add_argument(
        "--duration_s",
        type=float,
        default=10.0,
        help="How long to keep capturing (default: 10)",
    )
    parser.add_argument("--mode", type=str, default="visualizer", help="Sub-folder / summary mode")
    parser.add_argument("--test_name", type=str, default=None, help="Recorded in summary.json")
    parser.add_argument(
        "--result",
        choices=RESULTS,
        default="captured",
        help="Test outcome recorded in summary.json (default: captured)",
    )
    parser.add_argument(
        "--run_dir",
        type=Path,
        default=None,
        help="Existing run folder to append to instead of a new <timestamp>/ folder.",
    )
    parser.add_argument(
        "--result_bundle",
        type=Path,
        default=None,
        help="Also extract PNG attachments from this .xcresult into the run folder.",
    )
    parser.add_argument("--no_pre_post", action="store_true", help="Skip pre/post screenshots.")
    parser.add_argument("--xcrun_path", type=str, default=None, help="Path to xcrun")
    parser.add_argument("--timeout_s", type=float, default=None, help="Timeout per xcrun call")
    parser.add_argument(
        "--print_out_dir",
        action="store_true",
        help="Print the run directory only (useful for CI scripts).",
    )
    parser.add_argument("--quiet", action="store_true", help="Do not print anything.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")

    try:
        cfg = load_capture_config(args.config)
    except (ConfigValidationError, FileNotFoundError, ValueError) as e:
        print(f"ERROR: invalid config: {e}")
        return 1

    overrides = {
        "device": args.device,
        "os_version": args.os_version,
        "udid": args.udid,
        "interval_s": args.interval_s,
        "output_dir": str(args.out_dir) if args.out_dir is not None else None,
        "xcrun_path": args.xcrun_path,
        "timeout_s": args.timeout_s,
    }
    cfg = replace(cfg, **{k: v for k, v in overrides.items() if v is not None})
    if cfg.timeout_s is not None and cfg.timeout_s <= 0:
        print(f"ERROR: --timeout_s must be > 0, got {cfg.timeout_s}")
        return 1

    controller = SimulatorController(xcrun_path=cfg.xcrun_path, timeout_s=cfg.timeout_s)
    try:
        udid = resolve_udid(controller, cfg)
    except SimulatorControllerError as e:
        print(f"ERROR: {e}")
        return 1
    if not udid:
        print(f"ERROR: could not find simulator: {cfg.device}")
        return 1

    run_dir = args.run_dir or Path(cfg.output_dir) / run_timestamp()
    info = run_capture(
        cfg=cfg,
        controller=controller,
        udid=udid,
        run_dir=run_dir,
        duration_s=float(args.duration_s),
        mode=str(args.mode),
        test_name=args.test_name,
        result=str(args.result),
        pre_post=not args.no_pre_post,
        result_bundle=args.result_bundle,
    )
    if args.quiet:
        return 0
    if args.print_out_dir:
        print(str(run_dir))
        return 0
    print(json_dumps(info))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

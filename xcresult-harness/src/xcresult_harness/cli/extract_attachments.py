from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from xcresult_harness.attachments.exporters import describe, exporter_for
from xcresult_harness.attachments.scanner import (
    DEFAULT_PREFIX,
    ExtractedAttachment,
    extract_attachments,
    write_manifest,
)
from xcresult_harness.config import ConfigValidationError, env_value


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Extract every PNG attachment from an .xcresult bundle (or a blob directory)."
    )
    parser.add_argument("source", type=Path, help="Path to the .xcresult bundle or blob directory")
    parser.add_argument(
        "output_dir",
        type=Path,
        nargs="?",
        default=Path("extracted"),
        help="Output directory (default: extracted)",
    )
    parser.add_argument(
        "--prefix",
        type=str,
        default=DEFAULT_PREFIX,
        help=f"Output file prefix (default: {DEFAULT_PREFIX})",
    )
    parser.add_argument(
        "--manifest",
        type=Path,
        default=None,
        help="Optional path for a JSON manifest of the extracted files.",
    )
    parser.add_argument(
        "--xcrun_path",
        type=str,
        default=None,
        help="Path to xcrun (default: xcrun or $XCR_XCRUN_PATH)",
    )
    parser.add_argument(
        "--timeout_s",
        type=float,
        default=None,
        help="Timeout per xcresulttool export (default: none or $XCR_TIMEOUT_S)",
    )
    parser.add_argument("--quiet", action="store_true", help="Only print the final summary line.")
    parser.add_argument("--verbose", action="store_true", help="Log skipped blobs.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    try:
        xcrun_path = args.xcrun_path or env_value("XCR_XCRUN_PATH") or "xcrun"
        timeout_s = args.timeout_s if args.timeout_s is not None else env_value("XCR_TIMEOUT_S")
    except ConfigValidationError as e:
        print(f"ERROR: {e}")
        return 1
    if timeout_s is not None and timeout_s <= 0:
        print(f"ERROR: --timeout_s must be > 0, got {timeout_s}")
        return 1

    source: Path = args.source
    output_dir: Path = args.output_dir
    if not source.is_dir():
        print(f"ERROR: source not found: {source}")
        return 1

    exporter = exporter_for(source, xcrun_path=str(xcrun_path), timeout_s=timeout_s)
    if not args.quiet:
        print(f"Extracting attachments from: {source} ({describe(exporter)})")
        print(f"Output: {output_dir}")
        print("")

    def on_extracted(item: ExtractedAttachment) -> None:
        if not args.quiet:
            print(f"Extracted PNG: {item.path.name}")

    try:
        items = extract_attachments(
            source,
            output_dir,
            exporter=exporter,
            prefix=str(args.prefix),
            on_extracted=on_extracted,
        )
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    if args.manifest is not None:
        write_manifest(args.manifest, source=source, items=items)

    if not args.quiet:
        print("")
    if items:
        print(f"OK: extracted {len(items)} PNG attachment(s)")
    else:
        print("WARNING: no PNG attachments found")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

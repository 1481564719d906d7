"""xcresult-harness.

Provides:
- PNG attachment extraction from Xcode result bundles (or plain blob directories)
- a thin `xcrun simctl` wrapper for simulator screenshots
- a best-effort periodic screenshot monitor
- run summary files for CI artifact upload

Simulator lifecycle and build invocation stay with the vendor tools.
"""

__all__ = [
    "attachments",
    "cli",
    "config",
    "reporting",
    "runtime",
    "utils",
]

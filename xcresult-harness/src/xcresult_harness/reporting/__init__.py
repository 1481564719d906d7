"""Run summary files."""

from __future__ import annotations

from xcresult_harness.reporting.summary import (
    SUMMARY_FILENAME,
    RunSummary,
    SummaryEntry,
    count_pngs,
    load_summary,
)

__all__ = [
    "RunSummary",
    "SUMMARY_FILENAME",
    "SummaryEntry",
    "count_pngs",
    "load_summary",
]

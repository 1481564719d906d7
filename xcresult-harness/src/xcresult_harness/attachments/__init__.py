"""Attachment extraction from result bundles."""

from __future__ import annotations

from xcresult_harness.attachments.exporters import (
    BlobExporter,
    DirectoryExporter,
    XcresultToolExporter,
    exporter_for,
)
from xcresult_harness.attachments.scanner import (
    ExtractedAttachment,
    extract_attachments,
    scan_and_extract,
)
from xcresult_harness.attachments.signatures import FileKind, classify_bytes, sniff_file

__all__ = [
    "BlobExporter",
    "DirectoryExporter",
    "ExtractedAttachment",
    "FileKind",
    "XcresultToolExporter",
    "classify_bytes",
    "exporter_for",
    "extract_attachments",
    "scan_and_extract",
    "sniff_file",
]

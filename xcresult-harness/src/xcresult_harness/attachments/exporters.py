"""Blob exporters: materialize one candidate blob into a local file.

Two layouts are supported:

* xcresult bundles, where attachments are `Data/data.<id>` files that must be
  exported through `xcrun xcresulttool export` (the on-disk files are stored
  in an internal, possibly compressed, format);
* plain directories, where each regular file is already the blob.

Exporters never raise for a per-blob failure: they return False and the
scanner skips that candidate.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

DATA_DIR_NAME = "Data"
DATA_FILE_PREFIX = "data."


class BlobExporter(Protocol):
    def list_ids(self) -> list[str]: ...

    def export(self, blob_id: str, dest: Path) -> bool: ...


def is_xcresult_bundle(path: Path) -> bool:
    return (path / DATA_DIR_NAME).is_dir()


@dataclass(frozen=True)
class XcresultToolExporter:
    """Export blobs from an `.xcresult` bundle via `xcresulttool`."""

    bundle: Path
    xcrun_path: str = "xcrun"
    timeout_s: Optional[float] = None

    def list_ids(self) -> list[str]:
        data_dir = self.bundle / DATA_DIR_NAME
        if not data_dir.is_dir():
            return []
        ids = [
            p.name[len(DATA_FILE_PREFIX) :]
            for p in data_dir.iterdir()
            if p.name.startswith(DATA_FILE_PREFIX) and len(p.name) > len(DATA_FILE_PREFIX)
        ]
        return sorted(ids)

    def command(self, blob_id: str, dest: Path) -> list[str]:
        return [
            self.xcrun_path,
            "xcresulttool",
            "export",
            "--legacy",
            "--type",
            "file",
            "--path",
            str(self.bundle),
            "--id",
            blob_id,
            "--output-path",
            str(dest),
        ]

    def export(self, blob_id: str, dest: Path) -> bool:
        cmd = self.command(blob_id, dest)
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.timeout_s,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("xcresulttool export failed for id=%s: %s", blob_id, e)
            return False
        if proc.returncode != 0:
            logger.debug(
                "xcresulttool export rc=%s for id=%s: %s",
                proc.returncode,
                blob_id,
                (proc.stderr or b"").decode("utf-8", errors="replace").strip()[:500],
            )
            return False
        return dest.is_file()


@dataclass(frozen=True)
class DirectoryExporter:
    """Treat every regular file directly under `root` as a blob."""

    root: Path

    def list_ids(self) -> list[str]:
        return sorted(p.name for p in self.root.iterdir() if p.is_file())

    def export(self, blob_id: str, dest: Path) -> bool:
        src = self.root / blob_id
        try:
            shutil.copyfile(src, dest)
        except OSError as e:
            logger.debug("copy failed for id=%s: %s", blob_id, e)
            return False
        return dest.is_file()


def exporter_for(
    source: Path,
    *,
    xcrun_path: str = "xcrun",
    timeout_s: Optional[float] = None,
) -> BlobExporter:
    """Pick the exporter matching the on-disk layout of `source`."""

    if is_xcresult_bundle(source):
        return XcresultToolExporter(bundle=source, xcrun_path=xcrun_path, timeout_s=timeout_s)
    return DirectoryExporter(root=source)


def describe(exporter: BlobExporter) -> str:
    if isinstance(exporter, XcresultToolExporter):
        return "xcresulttool"
    if isinstance(exporter, DirectoryExporter):
        return "directory"
    return type(exporter).__name__


__all__ = [
    "BlobExporter",
    "DirectoryExporter",
    "XcresultToolExporter",
    "describe",
    "exporter_for",
    "is_xcresult_bundle",
]

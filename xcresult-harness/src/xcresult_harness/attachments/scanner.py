"""Brute-force PNG attachment extraction.

Every candidate blob is exported to a temporary file next to the output, its
leading bytes are sniffed, and PNGs are moved to `<prefix>_<n>.png` in
discovery order. Anything else (export failure, JPEG, logs, empty files) is
dropped without surfacing an error.

The source is never modified. Re-running into the same output directory
overwrites `<prefix>_0.png`, `<prefix>_1.png`, ... without looking at what was
there before.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from xcresult_harness.attachments.exporters import BlobExporter, exporter_for
from xcresult_harness.attachments.signatures import (
    FileKind,
    classify_bytes,
    png_size_px,
    read_head,
)
from xcresult_harness.utils.hashing import stable_file_sha256, write_json_atomic

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "attachment"
_TMP_SUFFIX = ".part"


@dataclass(frozen=True)
class ExtractedAttachment:
    index: int
    blob_id: str
    path: Path
    size_bytes: int
    sha256: str
    width: Optional[int] = None
    height: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        obj = asdict(self)
        obj["path"] = self.path.name
        return obj


ProgressCallback = Callable[[ExtractedAttachment], None]


def attachment_name(index: int, *, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}_{int(index)}.png"


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def _materialize(exporter: BlobExporter, blob_id: str, output_dir: Path) -> Optional[Path]:
    fd, tmp_name = tempfile.mkstemp(prefix=".blob_", suffix=_TMP_SUFFIX, dir=str(output_dir))
    os.close(fd)
    tmp_path = Path(tmp_name)
    keep = False
    try:
        keep = bool(exporter.export(blob_id, tmp_path)) and tmp_path.is_file()
    except Exception as e:
        logger.debug("export raised for id=%s: %s", blob_id, e)
    finally:
        if not keep:
            _discard(tmp_path)
    return tmp_path if keep else None


def extract_attachments(
    source_dir: Path,
    output_dir: Path,
    *,
    exporter: Optional[BlobExporter] = None,
    prefix: str = DEFAULT_PREFIX,
    on_extracted: Optional[ProgressCallback] = None,
) -> List[ExtractedAttachment]:
    """Extract every PNG blob under `source_dir` into `output_dir`.

    Raises FileNotFoundError (before touching `output_dir`) if the source does
    not exist, and ValueError if `output_dir` is the source itself. Per-blob
    failures, including exporter exceptions, are skipped.
    """

    source_dir = Path(source_dir)
    output_dir = Path(output_dir)
    if not source_dir.is_dir():
        raise FileNotFoundError(source_dir)
    if output_dir.resolve() == source_dir.resolve():
        raise ValueError(f"output_dir must differ from source_dir: {output_dir}")

    if exporter is None:
        exporter = exporter_for(source_dir)

    output_dir.mkdir(parents=True, exist_ok=True)

    extracted: List[ExtractedAttachment] = []
    for blob_id in exporter.list_ids():
        tmp_path = _materialize(exporter, blob_id, output_dir)
        if tmp_path is None:
            logger.debug("skip id=%s: export produced no file", blob_id)
            continue

        try:
            head = read_head(tmp_path)
        except OSError as e:
            logger.debug("skip id=%s: unreadable export (%s)", blob_id, e)
            _discard(tmp_path)
            continue

        kind = classify_bytes(head)
        if kind is not FileKind.PNG:
            logger.debug("skip id=%s: kind=%s", blob_id, kind.value)
            _discard(tmp_path)
            continue

        index = len(extracted)
        final_path = output_dir / attachment_name(index, prefix=prefix)
        tmp_path.replace(final_path)

        width, height = png_size_px(head)
        item = ExtractedAttachment(
            index=index,
            blob_id=blob_id,
            path=final_path,
            size_bytes=final_path.stat().st_size,
            sha256=stable_file_sha256(final_path),
            width=width,
            height=height,
        )
        extracted.append(item)
        logger.info("extracted PNG %s (id=%s)", final_path.name, blob_id)
        if on_extracted is not None:
            on_extracted(item)

    return extracted


def scan_and_extract(
    source_dir: Path,
    output_dir: Path,
    *,
    exporter: Optional[BlobExporter] = None,
    prefix: str = DEFAULT_PREFIX,
    on_extracted: Optional[ProgressCallback] = None,
) -> int:
    """Return the number of PNG attachments written to `output_dir`."""

    return len(
        extract_attachments(
            source_dir,
            output_dir,
            exporter=exporter,
            prefix=prefix,
            on_extracted=on_extracted,
        )
    )


def write_manifest(path: Path, *, source: Path, items: List[ExtractedAttachment]) -> None:
    write_json_atomic(
        path,
        {
            "source": str(source),
            "count": len(items),
            "attachments": [item.to_json() for item in items],
        },
    )

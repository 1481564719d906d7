"""Hashing + JSON helpers.

Extraction manifests record a SHA-256 per attachment so that duplicates (same
bytes under different blob ids) can be spotted downstream.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any


def stable_file_sha256(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def json_dumps(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


def write_json_atomic(path: Path, obj: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json_dumps(obj) + "\n", encoding="utf-8")
    tmp_path.replace(path)

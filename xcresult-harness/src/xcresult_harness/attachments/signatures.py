"""Magic-number classification for exported blobs.

Result bundles store attachments as opaque `data.<id>` files with no type
information, so the only reliable way to tell a screenshot apart from a log or
a plist is to look at the leading bytes.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Optional, Tuple

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"

# Enough for every signature above plus the PNG IHDR width/height.
SNIFF_BYTES = 24


class FileKind(str, enum.Enum):
    PNG = "png"
    JPEG = "jpeg"
    UNKNOWN = "unknown"


def classify_bytes(head: bytes) -> FileKind:
    """Classify a blob by its leading bytes."""

    data = bytes(head or b"")
    if data.startswith(PNG_SIGNATURE):
        return FileKind.PNG
    if data.startswith(JPEG_SIGNATURE):
        return FileKind.JPEG
    return FileKind.UNKNOWN


def read_head(path: Path, n: int = SNIFF_BYTES) -> bytes:
    with path.open("rb") as f:
        return f.read(n)


def sniff_file(path: Path) -> FileKind:
    """Classify a file on disk; unreadable files are UNKNOWN."""

    try:
        head = read_head(path)
    except OSError:
        return FileKind.UNKNOWN
    return classify_bytes(head)


def png_size_px(head: bytes) -> Tuple[Optional[int], Optional[int]]:
    # Width/height live in the IHDR chunk right after the signature.
    data = bytes(head or b"")
    if len(data) < 24 or not data.startswith(PNG_SIGNATURE):
        return None, None
    w = int.from_bytes(data[16:20], "big")
    h = int.from_bytes(data[20:24], "big")
    if w <= 0 or h <= 0:
        return None, None
    return w, h

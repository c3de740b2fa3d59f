"""Blob store for large inline binary payloads in memory files.

Base64 ``data:`` URLs are moved out of textual memory files into
``<blobs_dir>/<uuid>.<ext>`` and replaced by ``[[blob:<uuid>.<ext>]]``
placeholders. The placeholders need no escaping inside JSON strings, so they
survive JSONL round trips unchanged.
"""

from __future__ import annotations

import base64
import binascii
import os
import re
import uuid
from pathlib import Path
from typing import Optional, Union

__all__ = ["extract_blobs", "restore_blobs"]

_DATA_PREFIX = "data:"
_B64_MARKER = ";base64,"
_BLOB_PREFIX = "[[blob:"
_BLOB_SUFFIX = "]]"
_MIME_SEARCH_LIMIT = 100
_NON_BASE64 = re.compile(r"[^A-Za-z0-9+/=]")

_MIME_TO_EXT = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

_EXT_TO_MIME = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}

PathLike = Union[str, "os.PathLike[str]"]


def _mime_to_ext(mime: str) -> str:
    return _MIME_TO_EXT.get(mime, "bin")


def _ext_to_mime(ext: str) -> str:
    return _EXT_TO_MIME.get(ext, "application/octet-stream")


def _mime_ok(mime: str) -> bool:
    return "/" in mime and len(mime) < _MIME_SEARCH_LIMIT and all(ord(c) > 32 for c in mime)


def _decode_canonical(data: str) -> Optional[bytes]:
    """Decode standard padded base64, accepting only its canonical form."""
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return None
    if base64.b64encode(raw).decode("ascii") != data:
        return None
    return raw


def _try_extract(text: str, after_data: int, blobs_dir: Path) -> Optional[tuple[str, int]]:
    """Extract the data URL whose body starts at ``after_data``.

    Returns the placeholder and the position just past the payload, or None
    when the text there is not a valid base64 data URL.
    """
    bound = min(after_data + _MIME_SEARCH_LIMIT, len(text))
    marker = text.find(_B64_MARKER, after_data, bound)
    if marker < 0:
        return None
    mime = text[after_data:marker]
    if not _mime_ok(mime):
        return None

    data_start = marker + len(_B64_MARKER)
    match = _NON_BASE64.search(text, data_start)
    data_end = match.start() if match else len(text)
    payload = text[data_start:data_end]
    if not payload:
        return None
    raw = _decode_canonical(payload)
    if raw is None:
        return None

    filename = f"{uuid.uuid4()}.{_mime_to_ext(mime)}"
    blobs_dir.mkdir(parents=True, exist_ok=True)
    (blobs_dir / filename).write_bytes(raw)
    return f"{_BLOB_PREFIX}{filename}{_BLOB_SUFFIX}", data_end


def extract_blobs(text: str, blobs_dir: PathLike) -> str:
    """Replace every base64 data URL in ``text`` with a blob placeholder.

    Each payload is written as raw bytes to ``blobs_dir``. Text that only
    looks like the start of a data URL is left as it is.
    """
    directory = Path(blobs_dir)
    parts: list[str] = []
    pos = 0
    while pos < len(text):
        start = text.find(_DATA_PREFIX, pos)
        if start < 0:
            parts.append(text[pos:])
            break
        parts.append(text[pos:start])
        after_data = start + len(_DATA_PREFIX)
        extracted = _try_extract(text, after_data, directory)
        if extracted is None:
            parts.append(_DATA_PREFIX)
            pos = after_data
        else:
            placeholder, pos = extracted
            parts.append(placeholder)
    return "".join(parts)


def restore_blobs(text: str, blobs_dir: PathLike) -> str:
    """Replace blob placeholders in ``text`` with inline base64 data URLs.

    A placeholder whose file cannot be read is kept unchanged.
    """
    directory = Path(blobs_dir)
    parts: list[str] = []
    pos = 0
    while pos < len(text):
        start = text.find(_BLOB_PREFIX, pos)
        if start < 0:
            parts.append(text[pos:])
            break
        parts.append(text[pos:start])
        name_start = start + len(_BLOB_PREFIX)
        end = text.find(_BLOB_SUFFIX, name_start)
        if end < 0:
            parts.append(_BLOB_PREFIX)
            pos = name_start
            continue

        filename = text[name_start:end]
        abs_end = end + len(_BLOB_SUFFIX)
        mime = _ext_to_mime(filename.rsplit(".", 1)[-1])
        try:
            raw = (directory / filename).read_bytes()
        except OSError:
            parts.append(text[start:abs_end])
        else:
            encoded = base64.b64encode(raw).decode("ascii")
            parts.append(f"{_DATA_PREFIX}{mime}{_B64_MARKER}{encoded}")
        pos = abs_end
    return "".join(parts)
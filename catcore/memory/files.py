"""Filesystem helpers for the tiered memory store.

Indexes, short-term JSONL logs, raw archives and directory moves. Binary
payloads are moved out into a ``blobs`` directory beside the thread's files.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence, Union

from catcore.memory.blob import extract_blobs, restore_blobs
from catcore.memory.tier import MemoryIndex, Message, Role

__all__ = [
    "token_estimate",
    "sanitize_id",
    "read_index",
    "write_index",
    "read_short_term",
    "write_short_term",
    "archive_raw",
    "read_optional_file",
    "move_dir",
    "safe_split_point",
]

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]
_INDEX_FILE = "index.json"
_ENTRY_ROLES = (Role.USER, Role.SYSTEM)


def token_estimate(msgs: Sequence[Message]) -> int:
    """Rough token count: a quarter of the UTF-8 text length plus 10 per message."""
    return sum(len(m.text_content().encode("utf-8")) // 4 + 10 for m in msgs)


def sanitize_id(id: str) -> str:
    """Replace every character other than alphanumerics, '-' and '_' with '_'."""
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in id)


def read_index(directory: PathLike) -> MemoryIndex:
    """Read ``<directory>/index.json``; a missing or bad file gives an empty index."""
    try:
        text = (Path(directory) / _INDEX_FILE).read_text(encoding="utf-8")
    except OSError:
        return MemoryIndex()
    return MemoryIndex.from_json(text)


def write_index(directory: PathLike, index: MemoryIndex) -> None:
    """Write ``<directory>/index.json``, creating the directory."""
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    (path / _INDEX_FILE).write_text(index.to_json(), encoding="utf-8")


def _blobs_dir_beside(path: Path) -> Path:
    return path.parent / "blobs"


def _to_jsonl(msgs: Sequence[Message]) -> str:
    return "".join(
        json.dumps(m.to_dict(), ensure_ascii=False, separators=(",", ":")) + "\n" for m in msgs
    )


def _parse_jsonl(text: str) -> list[Message]:
    msgs = []
    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            msgs.append(Message.from_dict(json.loads(line)))
        except ValueError:
            continue
    return msgs


def read_short_term(path: PathLike) -> list[Message]:
    """Load the short-term log, restoring blobs and skipping unreadable lines.

    Messages before the first user or system message are dropped, so the
    history never starts with an orphaned tool result.
    """
    file = Path(path)
    try:
        text = file.read_text(encoding="utf-8")
    except OSError:
        return []
    msgs = _parse_jsonl(restore_blobs(text, _blobs_dir_beside(file)))
    start = next((i for i, m in enumerate(msgs) if m.role in _ENTRY_ROLES), len(msgs))
    if start:
        log.warning("short_term starts with %d orphaned non-user message(s); dropping them", start)
    return msgs[start:]


def write_short_term(path: PathLike, msgs: Sequence[Message]) -> None:
    """Write the short-term log as JSONL, moving binary payloads into blobs."""
    file = Path(path)
    file.parent.mkdir(parents=True, exist_ok=True)
    text = extract_blobs(_to_jsonl(msgs), _blobs_dir_beside(file))
    file.write_text(text, encoding="utf-8")


def archive_raw(tier_dir: PathLike, uuid: str, msgs: Sequence[Message]) -> Path:
    """Write messages to ``<tier_dir>/raw/<uuid>/<timestamp>.jsonl`` and return that path.

    Blobs go to the thread directory, the parent of ``tier_dir``.
    """
    tier = Path(tier_dir)
    raw_dir = tier / "raw" / uuid
    raw_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    path = raw_dir / f"{stamp}.jsonl"
    text = extract_blobs(_to_jsonl(msgs), tier.parent / "blobs")
    path.write_text(text, encoding="utf-8")
    return path


def read_optional_file(path: PathLike) -> Optional[str]:
    """The file's text, or None if it cannot be read."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError:
        return None


def move_dir(src: PathLike, dst: PathLike) -> None:
    """Move a directory: rename if possible, otherwise copy and delete."""
    try:
        os.rename(src, dst)
        return
    except OSError:
        pass
    shutil.copytree(src, dst, dirs_exist_ok=True)
    shutil.rmtree(src)


def safe_split_point(msgs: Sequence[Message], desired: int) -> int:
    """Split index at or before ``desired`` where a user or system message starts.

    Never less than 1, so at least one message is always split off.
    """
    i = min(desired, max(len(msgs) - 1, 0))
    while i > 0 and msgs[i].role not in _ENTRY_ROLES:
        i -= 1
    return max(i, 1)
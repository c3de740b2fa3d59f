"""Filesystem-backed memory store with three tiers.

Layout under ``<data_dir>/memory/<thread_id>/``::

    short_term.jsonl          raw recent messages, one JSON object per line
    user_state.json           tool-managed state (todos and the like)
    blobs/                    binary payloads moved out of the JSONL files
    mid_term/
      index.json              [{uuid, created_at, preview}]
      <uuid>.md               compressed summary
      raw/<uuid>/<ts>.jsonl   original messages before compression
    long_term/
      index.json
      <uuid>.md
      raw/<long_uuid>/<orig_mid_uuid>/<ts>.jsonl
"""

from __future__ import annotations

import json
import logging
import os
import uuid as uuidlib
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence, Union

from catcore.memory.compress import CompressionError
from catcore.memory.files import (
    archive_raw,
    move_dir,
    read_index,
    read_optional_file,
    read_short_term,
    safe_split_point,
    sanitize_id,
    token_estimate,
    write_index,
    write_short_term,
)
from catcore.memory.tier import MemoryEntry, MemoryIndex, Message, Role, make_preview

__all__ = ["MemoryContext", "MemoryStore"]

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]
_SEPARATOR = "\n\n---\n\n"
_PREVIEW_CHARS = 100


class _Compressor(Protocol):
    def compress(self, messages: list[Message]) -> str: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _write_summary(directory: Path, block_uuid: str, summary: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    header = f"<!-- created: {_now().isoformat()} -->\n\n"
    (directory / f"{block_uuid}.md").write_text(header + summary, encoding="utf-8")


def _joined_summaries(directory: Path, entries: Sequence[MemoryEntry]) -> str:
    texts = (read_optional_file(directory / f"{e.uuid}.md") for e in entries)
    return _SEPARATOR.join(t for t in texts if t is not None)


def _remove_summaries(directory: Path, entries: Sequence[MemoryEntry]) -> None:
    for entry in entries:
        (directory / f"{entry.uuid}.md").unlink(missing_ok=True)


@dataclass
class MemoryContext:
    """Loaded context for one thread, ready to be injected into the agent."""

    agent_md: Optional[str] = None
    soul_md: Optional[str] = None
    long_term: MemoryIndex = field(default_factory=MemoryIndex)
    mid_term: MemoryIndex = field(default_factory=MemoryIndex)
    short_term: list[Message] = field(default_factory=list)
    user_state: Any = None
    """Persisted tool-managed state (todos and the like), or None."""


class MemoryStore:
    """Three-tier conversation memory kept on disk, one directory per thread."""

    def __init__(
        self,
        data_dir: PathLike,
        compressor: _Compressor,
        short_term_tokens: int,
        memory_days: int,
        agent_md_path: Optional[PathLike] = None,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.compressor = compressor
        self.short_term_tokens = short_term_tokens
        self.memory_days = memory_days
        # Agent.md may live outside the agent's writable sandbox.
        self.agent_md_path = Path(agent_md_path) if agent_md_path is not None else None

    # ── Paths ────────────────────────────────────────────────────────────────

    def thread_dir(self, thread_id: str) -> Path:
        """Directory holding all memory of one thread."""
        return self.data_dir / "memory" / sanitize_id(thread_id)

    def _short_term_path(self, thread_id: str) -> Path:
        return self.thread_dir(thread_id) / "short_term.jsonl"

    def _user_state_path(self, thread_id: str) -> Path:
        return self.thread_dir(thread_id) / "user_state.json"

    def _mid_term_dir(self, thread_id: str) -> Path:
        return self.thread_dir(thread_id) / "mid_term"

    def _long_term_dir(self, thread_id: str) -> Path:
        return self.thread_dir(thread_id) / "long_term"

    # ── Compression and promotion ────────────────────────────────────────────

    def _compress_to_mid_term(self, thread_id: str, msgs: list[Message]) -> list[Message]:
        """Compress the oldest half of ``msgs`` into a mid-term block; return the rest."""
        split = safe_split_point(msgs, max(len(msgs) // 2, 1))
        oldest, remaining = msgs[:split], msgs[split:]

        block_uuid = str(uuidlib.uuid4())
        mid_dir = self._mid_term_dir(thread_id)
        archive_raw(mid_dir, block_uuid, oldest)

        summary = self.compressor.compress(oldest)
        _write_summary(mid_dir, block_uuid, summary)

        index = read_index(mid_dir)
        index.entries.append(
            MemoryEntry(uuid=block_uuid, created_at=_now(), preview=make_preview(summary, _PREVIEW_CHARS))
        )
        write_index(mid_dir, index)
        return remaining

    def maybe_promote(self, thread_id: str) -> None:
        """Merge mid-term entries older than ``memory_days`` into one long-term block.

        Existing long-term summaries are merged into the new block as well.
        """
        mid_dir = self._mid_term_dir(thread_id)
        long_dir = self._long_term_dir(thread_id)

        mid_index = read_index(mid_dir)
        if not mid_index.entries:
            return

        cutoff = _now() - timedelta(days=self.memory_days)
        to_promote = [e for e in mid_index.entries if e.created_at < cutoff]
        keep = [e for e in mid_index.entries if e.created_at >= cutoff]
        if not to_promote:
            return

        promoting_text = _joined_summaries(mid_dir, to_promote)
        long_index = read_index(long_dir)
        existing_long_text = _joined_summaries(long_dir, long_index.entries)

        compress_input = ""
        if existing_long_text:
            compress_input = (
                f"[已有长期记忆摘要]\n{existing_long_text}{_SEPARATOR}[待合并的中期记忆]\n"
            )
        compress_input += promoting_text

        long_summary = self.compressor.compress([Message.user(compress_input)])
        long_uuid = str(uuidlib.uuid4())
        long_dir.mkdir(parents=True, exist_ok=True)

        for entry in to_promote:
            src_raw = mid_dir / "raw" / entry.uuid
            if src_raw.exists():
                dst_raw = long_dir / "raw" / long_uuid / entry.uuid
                dst_raw.parent.mkdir(parents=True, exist_ok=True)
                move_dir(src_raw, dst_raw)
        _remove_summaries(mid_dir, to_promote)
        _remove_summaries(long_dir, long_index.entries)

        _write_summary(long_dir, long_uuid, long_summary)
        write_index(
            long_dir,
            MemoryIndex(
                [
                    MemoryEntry(
                        uuid=long_uuid,
                        created_at=_now(),
                        preview=make_preview(long_summary, _PREVIEW_CHARS),
                    )
                ]
            ),
        )
        write_index(mid_dir, MemoryIndex(keep))

    # ── Public API ───────────────────────────────────────────────────────────

    def load_context(self, thread_id: str) -> MemoryContext:
        """Load a thread's full memory context, promoting stale mid-term entries first.

        A failed promotion is logged and does not stop the load.
        """
        try:
            self.maybe_promote(thread_id)
        except (CompressionError, OSError) as exc:
            log.warning("memory promotion failed for %s: %s", thread_id, exc)

        agent_md_path = self.agent_md_path or self.data_dir / "Agent.md"
        return MemoryContext(
            agent_md=read_optional_file(agent_md_path),
            soul_md=read_optional_file(self.data_dir / "Soul.md"),
            long_term=read_index(self._long_term_dir(thread_id)),
            mid_term=read_index(self._mid_term_dir(thread_id)),
            short_term=read_short_term(self._short_term_path(thread_id)),
            user_state=self.load_user_state(thread_id),
        )

    def save_turn(self, thread_id: str, new_msgs: Sequence[Message]) -> None:
        """Append a turn's messages to short-term memory.

        The first user message gets a ``timestamp`` in its metadata unless it
        has one. While the short-term log is over budget its oldest part is
        compressed into mid-term; if compression fails, the oldest half is
        dropped instead so the save always completes.
        """
        short_path = self._short_term_path(thread_id)
        all_msgs = read_short_term(short_path)

        stamped = list(new_msgs)
        first_user = next((i for i, m in enumerate(stamped) if m.role is Role.USER), None)
        if first_user is not None:
            msg = stamped[first_user]
            metadata = dict(msg.metadata or {})
            metadata.setdefault("timestamp", _now().isoformat())
            stamped[first_user] = replace(msg, metadata=metadata)
        all_msgs.extend(stamped)

        while token_estimate(all_msgs) > self.short_term_tokens and len(all_msgs) > 1:
            try:
                all_msgs = self._compress_to_mid_term(thread_id, all_msgs)
            except (CompressionError, OSError) as exc:
                log.warning("compress_to_mid_term failed, dropping oldest messages: %s", exc)
                all_msgs = all_msgs[max(len(all_msgs) // 2, 1):]

        write_short_term(short_path, all_msgs)

    def save_user_state(self, thread_id: str, user_state: Any) -> None:
        """Persist tool-managed state; None is not written."""
        if user_state is None:
            return
        path = self._user_state_path(thread_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(user_state, indent=2, ensure_ascii=False), encoding="utf-8")

    def load_user_state(self, thread_id: str) -> Any:
        """The persisted tool-managed state, or None if missing or unreadable."""
        text = read_optional_file(self._user_state_path(thread_id))
        if text is None:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return None

    def compact_now(self, thread_id: str) -> int:
        """Compress all short-term messages and mid-term summaries into one mid-term block.

        The mid-term index is replaced by the new entry and short-term is
        cleared. Returns the number of short-term messages included; 0 when
        both tiers were already empty.
        """
        short_path = self._short_term_path(thread_id)
        mid_dir = self._mid_term_dir(thread_id)

        short_msgs = read_short_term(short_path)
        mid_index = read_index(mid_dir)
        combined_text = _joined_summaries(mid_dir, mid_index.entries)
        if not short_msgs and not combined_text:
            return 0

        compress_msgs: list[Message] = []
        if combined_text:
            compress_msgs.append(Message.system(f"[已有中期记忆摘要]\n{combined_text}"))
        compress_msgs.extend(short_msgs)

        block_uuid = str(uuidlib.uuid4())
        if short_msgs:
            archive_raw(mid_dir, block_uuid, short_msgs)

        summary = self.compressor.compress(compress_msgs)
        _write_summary(mid_dir, block_uuid, summary)
        _remove_summaries(mid_dir, mid_index.entries)
        write_index(
            mid_dir,
            MemoryIndex(
                [
                    MemoryEntry(
                        uuid=block_uuid,
                        created_at=_now(),
                        preview=make_preview(summary, _PREVIEW_CHARS),
                    )
                ]
            ),
        )
        write_short_term(short_path, [])
        return len(short_msgs)

    def get_detail(self, thread_id: str, uuid: str) -> Optional[str]:
        """Full text of a memory block, searching mid-term then long-term; None if absent."""
        safe = sanitize_id(uuid)
        for tier_dir in (self._mid_term_dir(thread_id), self._long_term_dir(thread_id)):
            text = read_optional_file(tier_dir / f"{safe}.md")
            if text is not None:
                return text
        return None
"""Memory tier types: chat messages, tier entries and indexes, context builders."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

__all__ = [
    "Role",
    "Message",
    "MemoryEntry",
    "MemoryIndex",
    "build_tier_msg",
    "make_preview",
]


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


Content = Union[str, list]


@dataclass
class Message:
    """One chat message, as stored in short-term memory."""

    role: Role
    content: Content = ""
    metadata: Optional[dict[str, Any]] = None
    tool_call_id: Optional[str] = None
    tool_calls: Optional[list[Any]] = None

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(Role.SYSTEM, text)

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(Role.USER, text)

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(Role.ASSISTANT, text)

    def text_content(self) -> str:
        """The message text; for multi-part content, the text parts concatenated."""
        if isinstance(self.content, str):
            return self.content
        return "".join(
            part["text"]
            for part in self.content
            if isinstance(part, dict)
            and part.get("type") == "text"
            and isinstance(part.get("text"), str)
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form; unset optional fields are omitted."""
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.tool_calls is not None:
            data["tool_calls"] = self.tool_calls
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Message":
        """Build a message from its JSON form; raise ValueError if it is malformed."""
        if not isinstance(data, dict):
            raise ValueError("message must be an object")
        try:
            role = Role(data.get("role"))
        except ValueError:
            raise ValueError(f"unknown message role: {data.get('role')!r}") from None
        content = data.get("content")
        if content is None:
            content = ""
        if not isinstance(content, (str, list)):
            raise ValueError("message content must be a string or a list")
        metadata = data.get("metadata")
        if metadata is not None and not isinstance(metadata, dict):
            raise ValueError("message metadata must be an object")
        tool_call_id = data.get("tool_call_id")
        if tool_call_id is not None and not isinstance(tool_call_id, str):
            raise ValueError("tool_call_id must be a string")
        tool_calls = data.get("tool_calls")
        if tool_calls is not None and not isinstance(tool_calls, list):
            raise ValueError("tool_calls must be a list")
        return cls(role, content, metadata, tool_call_id, tool_calls)


_FRACTION = re.compile(r"(\.\d{1,6})\d*")


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError("timestamp must be a string")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: m.group(1).ljust(7, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError("timestamp has no time zone")
    return parsed.astimezone(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class MemoryEntry:
    """One compressed memory block in mid-term or long-term storage."""

    uuid: str
    created_at: datetime
    preview: str
    """Single-line preview shown in the injected context index message."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "created_at": _format_timestamp(self.created_at),
            "preview": self.preview,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MemoryEntry":
        """Build an entry from its JSON form; raise ValueError if it is malformed."""
        if not isinstance(data, dict):
            raise ValueError("memory entry must be an object")
        uuid = data.get("uuid")
        preview = data.get("preview")
        if not isinstance(uuid, str) or not isinstance(preview, str):
            raise ValueError("memory entry needs string 'uuid' and 'preview'")
        return cls(uuid=uuid, created_at=_parse_timestamp(data.get("created_at")), preview=preview)


@dataclass
class MemoryIndex:
    """The ``index.json`` of one memory tier."""

    entries: list[MemoryEntry] = field(default_factory=list)

    @classmethod
    def from_json(cls, s: str) -> "MemoryIndex":
        """Parse an index; anything malformed gives an empty index."""
        try:
            data = json.loads(s)
            if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
                return cls()
            return cls([MemoryEntry.from_dict(entry) for entry in data["entries"]])
        except (ValueError, TypeError):
            return cls()

    def to_json(self) -> str:
        return json.dumps(
            {"entries": [entry.to_dict() for entry in self.entries]},
            indent=2,
            ensure_ascii=False,
        )


def build_tier_msg(tier: str, entries: list[MemoryEntry]) -> Message:
    """System message listing every entry of one memory tier."""
    rows = "\n".join(
        f"  [{e.uuid}]  {e.created_at.strftime('%Y-%m-%d')}  —  {e.preview}" for e in entries
    )
    return Message.system(
        f"[{tier} MEMORY]\n"
        "Use memory__get_detail{uuid} to read the full content of any block.\n"
        f"{rows}"
    )


def make_preview(text: str, max_chars: int) -> str:
    """First line of the trimmed text, cut to ``max_chars`` characters."""
    first = text.strip().split("\n", 1)[0]
    if first.endswith("\r"):
        first = first[:-1]
    return first[:max_chars]
"""Events emitted when todo tools change the todo list."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from catcore.tooling import ParsedToolCall

__all__ = ["TodoAdded", "TodoCompleted", "TodoUpdated", "TodoRemoved", "make_todo_events"]

_U64_MAX = 2**64 - 1


@dataclass(frozen=True)
class TodoAdded:
    id: int
    content: str


@dataclass(frozen=True)
class TodoCompleted:
    id: int


@dataclass(frozen=True)
class TodoUpdated:
    id: int
    content: str


@dataclass(frozen=True)
class TodoRemoved:
    id: int


TodoEvent = Union[TodoAdded, TodoCompleted, TodoUpdated, TodoRemoved]


def _as_u64(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= _U64_MAX:
        return value
    return None


def _added_events(result_str: str) -> list[TodoEvent]:
    try:
        result = json.loads(result_str)
    except ValueError:
        return []
    if not isinstance(result, dict) or not isinstance(result.get("items"), list):
        return []
    events: list[TodoEvent] = []
    for item in result["items"]:
        if not isinstance(item, dict):
            return []
        item_id = _as_u64(item.get("id"))
        title = item.get("title")
        if item_id is None or not isinstance(title, str):
            return []
        events.append(TodoAdded(id=item_id, content=title))
    return events


def make_todo_events(call: ParsedToolCall, result_str: str) -> list[TodoEvent]:
    """Events for a mutating todo tool call; other calls give none."""
    args = call.arguments if isinstance(call.arguments, dict) else {}
    todo_id = _as_u64(args.get("id"))

    if call.name == "todo__add":
        return _added_events(result_str)
    if call.name == "todo__complete":
        return [TodoCompleted(id=todo_id)] if todo_id is not None else []
    if call.name == "todo__update":
        content = args.get("content")
        if todo_id is not None and isinstance(content, str):
            return [TodoUpdated(id=todo_id, content=content)]
        return []
    if call.name == "todo__remove":
        return [TodoRemoved(id=todo_id)] if todo_id is not None else []
    return []
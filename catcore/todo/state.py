"""Todo items kept in a thread's user state, grouped into titled batches.

The todos live under ``user_state["__todos"]`` as a JSON array so they are
saved together with the rest of the thread's tool-managed state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from catcore.tooling import ToolError

__all__ = [
    "TodoItem",
    "TodoBatchAddItemRequest",
    "TodoBatchAddRequest",
    "TodoBatchAddResult",
    "TodoBatchGroup",
    "todos_from_user_state",
    "write_todos_to_user_state",
    "parse_add_request",
    "add_batch_to_todos",
    "grouped_todos",
    "format_todo_line",
    "fmt_todos",
    "latest_unfinished_batch_system_prompt",
    "current_todo_card_markdown",
]

TODOS_STATE_KEY = "__todos"
UNGROUPED_SECTION_TITLE = "Ungrouped"
TODO_BATCH_PROMPT_HEADER = "[CURRENT TODO BATCH]"
TODO_BATCH_EXECUTION_GUIDANCE = (
    "When this thread has an active plan, try to complete multiple todo items in one "
    "pass whenever feasible. Only stop early if the user explicitly cancels, changes "
    "direction, or you need user input/help to proceed. Finish each individual todo "
    "item's work before marking it complete."
)

_U64_MAX = 2**64 - 1


def _is_u64(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= _U64_MAX


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _optional(data: dict, key: str, check: Callable[[Any], bool]) -> Any:
    value = data.get(key)
    if value is None:
        return None
    if not check(value):
        raise ValueError(f"invalid value for {key!r}")
    return value


def _trim_to_option(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def _normalize_required_text(tool_name: str, field_name: str, value: str) -> str:
    trimmed = _trim_to_option(value)
    if trimmed is None:
        raise ToolError(tool_name, f"missing '{field_name}'")
    return trimmed


@dataclass
class TodoItem:
    """One todo entry, optionally part of a batch."""

    id: int
    content: str
    description: Optional[str] = None
    done: bool = False
    batch_id: Optional[int] = None
    batch_title: Optional[str] = None
    batch_index: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form; unset optional fields are omitted."""
        data: dict[str, Any] = {"id": self.id, "content": self.content}
        if self.description is not None:
            data["description"] = self.description
        data["done"] = self.done
        if self.batch_id is not None:
            data["batch_id"] = self.batch_id
        if self.batch_title is not None:
            data["batch_title"] = self.batch_title
        if self.batch_index is not None:
            data["batch_index"] = self.batch_index
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "TodoItem":
        """Build an item from its JSON form; raise ValueError if it is malformed."""
        if not isinstance(data, dict):
            raise ValueError("todo item must be an object")
        item_id = data.get("id")
        if not _is_u64(item_id):
            raise ValueError("todo item needs a non-negative integer 'id'")
        content = data.get("content")
        if not isinstance(content, str):
            raise ValueError("todo item needs a string 'content'")
        done = data.get("done", False)
        if not isinstance(done, bool):
            raise ValueError("todo item 'done' must be a boolean")
        return cls(
            id=item_id,
            content=content,
            description=_optional(data, "description", _is_str),
            done=done,
            batch_id=_optional(data, "batch_id", _is_u64),
            batch_title=_optional(data, "batch_title", _is_str),
            batch_index=_optional(data, "batch_index", _is_u64),
        )


@dataclass(frozen=True)
class TodoBatchAddItemRequest:
    """One child todo to create."""

    title: str
    description: Optional[str] = None


@dataclass(frozen=True)
class TodoBatchAddRequest:
    """A titled batch of todos to create."""

    title: str
    items: list[TodoBatchAddItemRequest] = field(default_factory=list)


@dataclass(frozen=True)
class TodoBatchAddResult:
    """What a batch add created."""

    batch_id: int
    batch_title: str
    todo_ids: list[int]
    items: list[TodoItem]

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form, as reported to the model."""
        items = []
        for todo in self.items:
            entry: dict[str, Any] = {"id": todo.id, "title": todo.content}
            if todo.description is not None:
                entry["description"] = todo.description
            items.append(entry)
        return {
            "batch_id": self.batch_id,
            "batch_title": self.batch_title,
            "todo_ids": list(self.todo_ids),
            "items": items,
        }


@dataclass
class TodoBatchGroup:
    """Todos sharing one batch id, in batch order."""

    batch_id: int
    title: str
    items: list[TodoItem] = field(default_factory=list)


def todos_from_user_state(user_state: Any) -> list[TodoItem]:
    """Read the todo list from ``user_state``; malformed or missing state gives []."""
    if not isinstance(user_state, dict):
        return []
    raw = user_state.get(TODOS_STATE_KEY)
    if not isinstance(raw, list):
        return []
    try:
        return [TodoItem.from_dict(entry) for entry in raw]
    except ValueError:
        return []


def write_todos_to_user_state(user_state: Any, todos: list[TodoItem]) -> dict[str, Any]:
    """Store ``todos`` in ``user_state`` and return the state.

    A dict is updated in place; any other value is replaced by a new dict.
    """
    state = user_state if isinstance(user_state, dict) else {}
    state[TODOS_STATE_KEY] = [todo.to_dict() for todo in todos]
    return state


def _next_id(todos: list[TodoItem]) -> int:
    return max((todo.id for todo in todos), default=0) + 1


def parse_add_request(arguments: Any) -> TodoBatchAddRequest:
    """Validate ``todo__add`` arguments; raise ToolError on bad input."""
    shape_error = ToolError("todo__add", "expected {title, items[]}")
    if not isinstance(arguments, dict):
        raise shape_error
    title = arguments.get("title")
    raw_items = arguments.get("items")
    if not isinstance(title, str) or not isinstance(raw_items, list):
        raise shape_error
    for item in raw_items:
        if not isinstance(item, dict):
            raise shape_error
        description = item.get("description")
        if not isinstance(item.get("title"), str):
            raise shape_error
        if description is not None and not isinstance(description, str):
            raise shape_error

    batch_title = _normalize_required_text("todo__add", "title", title)
    if not raw_items:
        raise ToolError("todo__add", "items must contain at least one todo item")

    items = [
        TodoBatchAddItemRequest(
            title=_normalize_required_text("todo__add", f"items[{index}].title", item["title"]),
            description=_trim_to_option(item.get("description")),
        )
        for index, item in enumerate(raw_items)
    ]
    return TodoBatchAddRequest(title=batch_title, items=items)


def add_batch_to_todos(
    todos: list[TodoItem], request: TodoBatchAddRequest
) -> tuple[list[TodoItem], TodoBatchAddResult]:
    """Append the request's items as a new batch; return the new list and the result.

    The batch id is the id of its first item.
    """
    first_id = _next_id(todos)
    created = [
        TodoItem(
            id=first_id + index,
            content=item.title,
            description=item.description,
            done=False,
            batch_id=first_id,
            batch_title=request.title,
            batch_index=index,
        )
        for index, item in enumerate(request.items)
    ]
    result = TodoBatchAddResult(
        batch_id=first_id,
        batch_title=request.title,
        todo_ids=[todo.id for todo in created],
        items=created,
    )
    return [*todos, *created], result


def grouped_todos(todos: list[TodoItem]) -> tuple[list[TodoBatchGroup], list[TodoItem]]:
    """Split todos into batches (in first-seen order) and ungrouped items."""
    batches: dict[int, TodoBatchGroup] = {}
    ungrouped: list[TodoItem] = []

    for todo in todos:
        if todo.batch_id is None:
            ungrouped.append(todo)
            continue
        default_title = f"Batch {todo.batch_id}"
        title = _trim_to_option(todo.batch_title) or default_title
        group = batches.get(todo.batch_id)
        if group is None:
            group = batches[todo.batch_id] = TodoBatchGroup(todo.batch_id, title)
        elif group.title == default_title:
            group.title = title
        group.items.append(todo)

    for group in batches.values():
        group.items.sort(
            key=lambda t: (t.batch_index if t.batch_index is not None else _U64_MAX, t.id)
        )
    return list(batches.values()), ungrouped


def format_todo_line(todo: TodoItem, indent: str) -> str:
    """One todo with its mark and id, plus its description on the next line."""
    mark = "✓" if todo.done else "○"
    lines = [f"{indent}[{mark}] {todo.id} {todo.content}"]
    description = _trim_to_option(todo.description)
    if description is not None:
        lines.append(f"{indent}    {description}")
    return "\n".join(lines)


def fmt_todos(todos: list[TodoItem]) -> str:
    """Human-readable listing, grouped by batch with ungrouped items last."""
    if not todos:
        return "No todos."

    batches, ungrouped = grouped_todos(todos)
    sections = [
        "\n".join([f"[Batch] {batch.title}", *(format_todo_line(t, "  ") for t in batch.items)])
        for batch in batches
    ]
    if ungrouped:
        sections.append(
            "\n".join(
                [f"[{UNGROUPED_SECTION_TITLE}]", *(format_todo_line(t, "  ") for t in ungrouped)]
            )
        )
    return "\n\n".join(sections)


def latest_unfinished_batch_system_prompt(user_state: Any) -> Optional[str]:
    """System prompt listing the open items of the latest unfinished batch, if any."""
    batches, _ = grouped_todos(todos_from_user_state(user_state))
    batch = next(
        (b for b in reversed(batches) if any(not todo.done for todo in b.items)),
        None,
    )
    if batch is None:
        return None

    lines = [
        TODO_BATCH_PROMPT_HEADER,
        f'This thread still has unfinished work under "{batch.title}".',
        "Keep progress synchronized with todo__complete/update/remove.",
        TODO_BATCH_EXECUTION_GUIDANCE,
    ]
    for todo in batch.items:
        if todo.done:
            continue
        line = f"- #{todo.id} {todo.content}"
        description = _trim_to_option(todo.description)
        if description is not None:
            line += f" - {description}"
        lines.append(line)
    return "\n".join(lines)


def current_todo_card_markdown(user_state: Any) -> Optional[str]:
    """Markdown card of all todos, or None when there are none left open."""
    todos = todos_from_user_state(user_state)
    if not todos or all(todo.done for todo in todos):
        return None
    return f"📝 **当前 Todo**\n```\n{fmt_todos(todos)}\n```"
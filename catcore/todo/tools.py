"""Todo tools: add, list, complete, update and remove.

The todo list lives in ``ctx.user_state["__todos"]``. It is saved with the
rest of the thread's tool-managed state.
"""

from __future__ import annotations

import json
from typing import Any, Callable, TypeVar

from catcore.todo.state import (
    TodoItem,
    add_batch_to_todos,
    fmt_todos,
    parse_add_request,
    todos_from_user_state,
    write_todos_to_user_state,
)
from catcore.tooling import Tool, ToolContext, ToolError, ToolRegistry

__all__ = [
    "TodoAddTool",
    "TodoListTool",
    "TodoCompleteTool",
    "TodoUpdateTool",
    "TodoRemoveTool",
    "register_todo_tools",
]

_U64_MAX = 2**64 - 1
_T = TypeVar("_T")


def _args(arguments: Any) -> dict[str, Any]:
    return arguments if isinstance(arguments, dict) else {}


def _require_id(tool_name: str, arguments: Any) -> int:
    value = _args(arguments).get("id")
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= _U64_MAX:
        return value
    raise ToolError(tool_name, "missing 'id'")


def _read_todos(ctx: ToolContext) -> list[TodoItem]:
    with ctx.lock:
        return todos_from_user_state(ctx.user_state)


def _modify_todos(
    ctx: ToolContext, change: Callable[[list[TodoItem]], tuple[list[TodoItem], _T]]
) -> _T:
    with ctx.lock:
        todos = todos_from_user_state(ctx.user_state)
        updated, outcome = change(todos)
        ctx.user_state = write_todos_to_user_state(ctx.user_state, updated)
        return outcome


class TodoAddTool(Tool):
    """Create a titled batch of todo items."""

    name = "todo__add"
    description = (
        "Add a new batch of todo items under a shared title. Returns the created todo IDs."
    )
    parameters_schema = {
        "type": "object",
        "properties": {
            "title": {
                "type": "string",
                "description": "The overall title for this batch of todos",
            },
            "items": {
                "type": "array",
                "description": "The child todos to create under the shared title",
                "minItems": 1,
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string", "description": "The child todo title"},
                        "description": {
                            "type": "string",
                            "description": "Optional extra detail for the child todo",
                        },
                    },
                    "required": ["title"],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["title", "items"],
        "additionalProperties": False,
    }

    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        request = parse_add_request(arguments)
        result = _modify_todos(ctx, lambda todos: add_batch_to_todos(todos, request))
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)


class TodoListTool(Tool):
    """List all todos grouped by batch."""

    name = "todo__list"
    description = (
        "List all todo items with their completion status, grouped by batch title when available."
    )
    parameters_schema = {"type": "object", "properties": {}}

    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        return fmt_todos(_read_todos(ctx))


class TodoCompleteTool(Tool):
    """Mark a todo as done."""

    name = "todo__complete"
    description = "Mark a todo item as completed by its ID."
    parameters_schema = {
        "type": "object",
        "properties": {
            "id": {"type": "integer", "description": "The todo item ID to mark as done"}
        },
        "required": ["id"],
    }

    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        todo_id = _require_id(self.name, arguments)

        def change(todos: list[TodoItem]) -> tuple[list[TodoItem], str]:
            target = next((t for t in todos if t.id == todo_id), None)
            if target is None:
                return todos, f"Todo #{todo_id} not found."
            target.done = True
            return todos, f"Todo #{todo_id} marked as done."

        return _modify_todos(ctx, change)


class TodoUpdateTool(Tool):
    """Change the title text of a todo."""

    name = "todo__update"
    description = "Update the title text of an existing todo item by its ID."
    parameters_schema = {
        "type": "object",
        "properties": {
            "id": {"type": "integer", "description": "The todo item ID to update"},
            "content": {"type": "string", "description": "New text for the todo item"},
        },
        "required": ["id", "content"],
    }

    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        todo_id = _require_id(self.name, arguments)
        raw = _args(arguments).get("content")
        if not isinstance(raw, str) or not raw.strip():
            raise ToolError(self.name, "missing 'content'")
        content = raw.strip()

        def change(todos: list[TodoItem]) -> tuple[list[TodoItem], str]:
            target = next((t for t in todos if t.id == todo_id), None)
            if target is None:
                return todos, f"Todo #{todo_id} not found."
            target.content = content
            return todos, f"Updated todo #{todo_id}: {content}"

        return _modify_todos(ctx, change)


class TodoRemoveTool(Tool):
    """Delete a todo."""

    name = "todo__remove"
    description = "Permanently remove a todo item by its ID."
    parameters_schema = {
        "type": "object",
        "properties": {
            "id": {"type": "integer", "description": "The todo item ID to delete"}
        },
        "required": ["id"],
    }

    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        todo_id = _require_id(self.name, arguments)

        def change(todos: list[TodoItem]) -> tuple[list[TodoItem], bool]:
            kept = [t for t in todos if t.id != todo_id]
            return kept, len(kept) != len(todos)

        if _modify_todos(ctx, change):
            return f"Removed todo #{todo_id}."
        return f"Todo #{todo_id} not found."


def register_todo_tools(registry: ToolRegistry) -> None:
    """Register all five todo tools."""
    for tool in (
        TodoAddTool(),
        TodoListTool(),
        TodoCompleteTool(),
        TodoUpdateTool(),
        TodoRemoveTool(),
    ):
        registry.register(tool)
import json

import pytest

from catcore.todo.state import todos_from_user_state
from catcore.todo.tools import (
    TodoAddTool,
    TodoCompleteTool,
    TodoListTool,
    TodoRemoveTool,
    TodoUpdateTool,
    register_todo_tools,
)
from catcore.tooling import ToolContext, ToolError, ToolRegistry


def _add(ctx, title, items):
    return json.loads(TodoAddTool().execute({"title": title, "items": items}, ctx))


def test_add_reports_created_ids_and_stores_todos():
    ctx = ToolContext()
    result = _add(
        ctx,
        "Release launch",
        [{"title": "Draft changelog"}, {"title": "Publish notes", "description": "Customer facing"}],
    )
    assert result["batch_id"] == 1
    assert result["batch_title"] == "Release launch"
    assert result["todo_ids"] == [1, 2]
    assert result["items"][1] == {"id": 2, "title": "Publish notes", "description": "Customer facing"}
    todos = todos_from_user_state(ctx.user_state)
    assert [t.content for t in todos] == ["Draft changelog", "Publish notes"]


def test_second_batch_continues_ids():
    ctx = ToolContext()
    _add(ctx, "A", [{"title": "one"}])
    result = _add(ctx, "B", [{"title": "two"}, {"title": "three"}])
    assert result["batch_id"] == 2
    assert result["todo_ids"] == [2, 3]


def test_add_rejects_empty_items():
    with pytest.raises(ToolError):
        TodoAddTool().execute({"title": "X", "items": []}, ToolContext())


def test_list_empty_and_after_add():
    ctx = ToolContext()
    assert TodoListTool().execute({}, ctx) == "No todos."
    _add(ctx, "Release launch", [{"title": "Draft changelog"}])
    assert TodoListTool().execute({}, ctx) == "[Batch] Release launch\n  [○] 1 Draft changelog"


def test_complete_marks_done():
    ctx = ToolContext()
    _add(ctx, "T", [{"title": "a"}, {"title": "b"}])
    assert TodoCompleteTool().execute({"id": 2}, ctx) == "Todo #2 marked as done."
    done = {t.id: t.done for t in todos_from_user_state(ctx.user_state)}
    assert done == {1: False, 2: True}


def test_complete_unknown_id():
    ctx = ToolContext()
    assert TodoCompleteTool().execute({"id": 5}, ctx) == "Todo #5 not found."


@pytest.mark.parametrize("tool", [TodoCompleteTool(), TodoRemoveTool()])
@pytest.mark.parametrize("args", [{}, {"id": "1"}, {"id": -1}, {"id": True}])
def test_missing_id_raises(tool, args):
    with pytest.raises(ToolError) as info:
        tool.execute(args, ToolContext())
    assert "missing 'id'" in str(info.value)


def test_update_trims_and_changes_content():
    ctx = ToolContext()
    _add(ctx, "T", [{"title": "old"}])
    msg = TodoUpdateTool().execute({"id": 1, "content": "  new text  "}, ctx)
    assert msg == "Updated todo #1: new text"
    assert todos_from_user_state(ctx.user_state)[0].content == "new text"


@pytest.mark.parametrize("args", [{"id": 1}, {"id": 1, "content": "   "}, {"content": "x"}])
def test_update_rejects_bad_arguments(args):
    with pytest.raises(ToolError):
        TodoUpdateTool().execute(args, ToolContext())


def test_remove_existing_and_missing():
    ctx = ToolContext()
    _add(ctx, "T", [{"title": "a"}, {"title": "b"}])
    assert TodoRemoveTool().execute({"id": 1}, ctx) == "Removed todo #1."
    assert [t.id for t in todos_from_user_state(ctx.user_state)] == [2]
    assert TodoRemoveTool().execute({"id": 1}, ctx) == "Todo #1 not found."


def test_state_keeps_other_keys():
    ctx = ToolContext(user_state={"other": 1})
    _add(ctx, "T", [{"title": "a"}])
    assert ctx.user_state["other"] == 1
    assert len(todos_from_user_state(ctx.user_state)) == 1


def test_register_todo_tools():
    registry = ToolRegistry()
    register_todo_tools(registry)
    assert registry.names() == [
        "todo__add",
        "todo__list",
        "todo__complete",
        "todo__update",
        "todo__remove",
    ]
    ctx = ToolContext()
    registry.execute("todo__add", {"title": "T", "items": [{"title": "a"}]}, ctx)
    assert registry.execute("todo__complete", {"id": 1}, ctx) == "Todo #1 marked as done."
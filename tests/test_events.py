import json

from catcore.todo.events import (
    TodoAdded,
    TodoCompleted,
    TodoRemoved,
    TodoUpdated,
    make_todo_events,
)
from catcore.tooling import ParsedToolCall


def test_todo_add_emits_one_event_per_created_item():
    call = ParsedToolCall(
        id="call-1",
        name="todo__add",
        arguments={
            "title": "Release launch",
            "items": [
                {"title": "Draft changelog"},
                {"title": "Publish notes", "description": "Customer facing"},
            ],
        },
    )
    result = json.dumps(
        {
            "batch_id": 8,
            "batch_title": "Release launch",
            "todo_ids": [8, 9],
            "items": [
                {"id": 8, "title": "Draft changelog"},
                {"id": 9, "title": "Publish notes", "description": "Customer facing"},
            ],
        },
        indent=2,
    )
    events = make_todo_events(call, result)
    assert events == [
        TodoAdded(id=8, content="Draft changelog"),
        TodoAdded(id=9, content="Publish notes"),
    ]


def test_todo_add_with_unparsable_result_gives_no_events():
    call = ParsedToolCall(id="c", name="todo__add", arguments={})
    assert make_todo_events(call, "not json") == []
    assert make_todo_events(call, '{"items": [{"id": -1, "title": "x"}]}') == []


def test_complete_update_remove_events():
    complete = ParsedToolCall(id="c", name="todo__complete", arguments={"id": 3})
    update = ParsedToolCall(id="c", name="todo__update", arguments={"id": 4, "content": "New"})
    remove = ParsedToolCall(id="c", name="todo__remove", arguments={"id": 5})
    assert make_todo_events(complete, "") == [TodoCompleted(id=3)]
    assert make_todo_events(update, "") == [TodoUpdated(id=4, content="New")]
    assert make_todo_events(remove, "") == [TodoRemoved(id=5)]


def test_missing_or_invalid_arguments_give_no_events():
    assert make_todo_events(ParsedToolCall(id="c", name="todo__complete"), "") == []
    assert (
        make_todo_events(ParsedToolCall(id="c", name="todo__update", arguments={"id": 4}), "")
        == []
    )
    assert (
        make_todo_events(ParsedToolCall(id="c", name="todo__remove", arguments={"id": "5"}), "")
        == []
    )


def test_other_tools_give_no_events():
    call = ParsedToolCall(id="c", name="todo__list", arguments={"id": 1})
    assert make_todo_events(call, "No todos.") == []
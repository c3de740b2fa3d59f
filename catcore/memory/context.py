"""Context injection for each turn and the ``memory__get_detail`` tool."""

from __future__ import annotations

from typing import Any

from catcore.memory.store import MemoryContext, MemoryStore
from catcore.memory.tier import Message, build_tier_msg
from catcore.todo.state import latest_unfinished_batch_system_prompt
from catcore.tooling import Tool, ToolContext

__all__ = ["build_injected_history", "MemoryGetDetailTool"]


def build_injected_history(ctx: MemoryContext) -> list[Message]:
    """Messages injected ahead of a new user message.

    Order: Agent.md, Soul.md, latest unfinished todo batch, long-term index,
    mid-term index, then the short-term messages.
    """
    msgs: list[Message] = []
    if ctx.agent_md is not None:
        msgs.append(Message.system(ctx.agent_md))
    if ctx.soul_md is not None:
        msgs.append(Message.system(ctx.soul_md))
    todo_prompt = latest_unfinished_batch_system_prompt(ctx.user_state)
    if todo_prompt is not None:
        msgs.append(Message.system(todo_prompt))
    if ctx.long_term.entries:
        msgs.append(build_tier_msg("LONG-TERM", ctx.long_term.entries))
    if ctx.mid_term.entries:
        msgs.append(build_tier_msg("MID-TERM", ctx.mid_term.entries))
    msgs.extend(ctx.short_term)
    return msgs


class MemoryGetDetailTool(Tool):
    """Read the full text of a mid-term or long-term memory block.

    The thread id comes from ``ctx.metadata["thread_id"]``.
    """

    name = "memory__get_detail"
    description = (
        "Retrieve the full content of a long-term or mid-term memory block by its UUID. "
        "Use this when you see a memory entry listed in the context header and want to "
        "read the complete compressed summary."
    )
    parameters_schema = {
        "type": "object",
        "properties": {
            "uuid": {
                "type": "string",
                "description": "The UUID of the memory block to retrieve",
            }
        },
        "required": ["uuid"],
    }

    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        raw_uuid = arguments.get("uuid") if isinstance(arguments, dict) else None
        block_uuid = raw_uuid if isinstance(raw_uuid, str) else ""
        raw_thread = (ctx.metadata or {}).get("thread_id")
        thread_id = raw_thread if isinstance(raw_thread, str) else ""

        if not block_uuid:
            return "Error: uuid parameter is required"
        if not thread_id:
            return "Error: thread_id not found in context metadata"
        try:
            text = self.store.get_detail(thread_id, block_uuid)
        except OSError as exc:
            return f"Error reading memory block: {exc}"
        if text is None:
            return f"No memory block found for uuid: {block_uuid}"
        return text
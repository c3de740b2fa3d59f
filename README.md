# catcore

Building blocks for a long-running chat agent:

- **Tools** (`catcore.tooling`): a `Tool` base class, a `ToolRegistry`, a
  `ToolContext` carrying per-thread user state and metadata, and `ToolError`
  for rejected arguments.
- **Todo tools** (`catcore.todo`): batched todo lists kept in the thread's user
  state, with list formatting, a markdown card, and a system prompt for the
  latest unfinished batch.
- **Skill tools** (`catcore.skill`): save, get, list and delete named markdown
  skill documents, backed by files or by memory.
- **Three-tier memory** (`catcore.memory`): short-term JSONL history,
  LLM-compressed mid-term blocks, and a merged long-term summary, all on the
  filesystem. Inline base64 data URLs are moved out into blob files on write
  and restored on read.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Tools

Tools are registered into a `ToolRegistry` and run with a `ToolContext`.
Every tool returns its output as a string; bad arguments raise `ToolError`.

```python
from catcore.tooling import ToolContext, ToolRegistry
from catcore.todo.tools import register_todo_tools
from catcore.skill.store import InMemorySkillStore
from catcore.skill.tools import register_skill_tools

registry = ToolRegistry()
register_todo_tools(registry)
register_skill_tools(registry, InMemorySkillStore())

ctx = ToolContext()
registry.execute(
    "todo__add",
    {"title": "Release", "items": [{"title": "Draft changelog"}]},
    ctx,
)
print(registry.execute("todo__list", {}, ctx))
# [Batch] Release
#   [○] 1 Draft changelog
```

Todo tools: `todo__add`, `todo__list`, `todo__complete`, `todo__update`,
`todo__remove`. Todos are stored under `ctx.user_state["__todos"]`.
`catcore.todo.state` holds the helpers behind them, among them
`fmt_todos`, `latest_unfinished_batch_system_prompt` and
`current_todo_card_markdown`. `catcore.todo.events.make_todo_events` turns a
`ParsedToolCall` and the tool's output into `TodoAdded`, `TodoCompleted`,
`TodoUpdated` or `TodoRemoved` events.

Skill tools: `skill__save`, `skill__get`, `skill__list`, `skill__delete`.
`FileSkillStore(base_dir)` keeps each skill as `<base_dir>/<name>.md`;
`InMemorySkillStore` keeps them in a dict. `skill__save` writes a
frontmatter header with the name and optional description, replacing any
frontmatter already in the content. `catcore.skill.tools.make_skill_event`
gives a `SkillSaved` or `SkillDeleted` event for save and delete calls.

## Memory

```python
from catcore.memory.compress import LlmCompressor
from catcore.memory.store import MemoryStore
from catcore.memory.context import build_injected_history
from catcore.memory.tier import Message

compressor = LlmCompressor(
    api_key="placeholder",
    base_url="http://localhost:8000/v1",
    model="my-model",
)
store = MemoryStore(".data", compressor, short_term_tokens=32000, memory_days=7)

store.save_turn("thread-1", [Message.user("hello"), Message.assistant("hi")])
ctx = store.load_context("thread-1")
history = build_injected_history(ctx)
```

`MemoryStore` keeps each thread under `<data_dir>/memory/<thread_id>/`:

- `save_turn` appends messages to `short_term.jsonl`, stamping the first user
  message with a `timestamp` in its metadata. While the estimated token count
  is over `short_term_tokens`, the oldest half is compressed into a mid-term
  block; if compression fails, the oldest half is dropped instead.
- `load_context` first merges mid-term blocks older than `memory_days` into a
  single long-term block, then returns a `MemoryContext` with `Agent.md` and
  `Soul.md` from the data directory (or `agent_md_path`), both tier indexes,
  the short-term messages and the saved user state.
- `compact_now` compresses all short-term messages and mid-term summaries into
  one new mid-term block and clears short-term.
- `save_user_state` / `load_user_state` persist tool-managed state as
  `user_state.json`.
- `get_detail` returns the full text of a block by UUID.

Before compression the original messages are archived under
`mid_term/raw/<uuid>/`, and moved to `long_term/raw/` on promotion.

`build_injected_history` orders the context as: Agent.md, Soul.md, latest
unfinished todo batch, long-term index, mid-term index, short-term messages.
`MemoryGetDetailTool` exposes `get_detail` to the model as
`memory__get_detail`, reading the thread id from `ctx.metadata["thread_id"]`.

`LlmCompressor` makes one non-streaming request to
`<base_url>/chat/completions` and raises `CompressionError` if it fails or the
summary is empty. A custom `httpx.Client` can be passed as `client`.

`catcore.memory.blob` offers `extract_blobs` and `restore_blobs` on their own.

## What this package does not do

It is a library only: there is no command-line program, no chat loop that
drives the model with tools, and no messaging front end. It has no table of
model limits or endpoints; token budgets such as `short_term_tokens` must be
chosen by the caller.
"""Skill tools: save, get, list and delete named markdown skill documents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from catcore.skill.store import SkillStore
from catcore.tooling import ParsedToolCall, Tool, ToolContext, ToolError, ToolRegistry

__all__ = [
    "strip_frontmatter",
    "SkillSaveTool",
    "SkillGetTool",
    "SkillListTool",
    "SkillDeleteTool",
    "SkillSaved",
    "SkillDeleted",
    "make_skill_event",
    "register_skill_tools",
]

_FENCE = "---"
_CLOSING_FENCE = "\n---"


def strip_frontmatter(content: str) -> str:
    """Remove a leading YAML frontmatter block from ``content``, if there is one."""
    if not content.startswith(_FENCE):
        return content
    rest = content[len(_FENCE):].lstrip("\n")
    end = rest.find(_CLOSING_FENCE)
    if end < 0:
        return content
    return rest[end + len(_CLOSING_FENCE):].lstrip("\n")


def _required_str(tool_name: str, arguments: Any, key: str) -> str:
    value = arguments.get(key) if isinstance(arguments, dict) else None
    if not isinstance(value, str):
        raise ToolError(tool_name, f"missing '{key}'")
    return value


class _SkillTool(Tool):
    def __init__(self, store: SkillStore) -> None:
        self.store = store


class SkillSaveTool(_SkillTool):
    """Save a skill document with a generated frontmatter header."""

    name = "skill__save"
    description = (
        "Save a reusable skill as a named markdown document. Use this to record "
        "step-by-step procedures, best practices, or any knowledge worth reusing "
        "in later sessions."
    )
    parameters_schema = {
        "type": "object",
        "properties": {
            "name": {
                "type": "string",
                "description": "Short identifier (kebab-case, e.g. 'setup-rust-project')",
            },
            "description": {
                "type": "string",
                "description": "One-sentence summary of the skill",
            },
            "content": {
                "type": "string",
                "description": "Markdown body of the skill document",
            },
        },
        "required": ["name", "content"],
    }

    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        name = _required_str(self.name, arguments, "name")
        description = arguments.get("description")
        if not isinstance(description, str):
            description = ""
        content = _required_str(self.name, arguments, "content")

        body = strip_frontmatter(content.lstrip())
        header = f"name: {name}\n"
        if description:
            header += f"description: {description}\n"
        path = self.store.save(name, f"---\n{header}---\n\n{body}")
        return f"Skill '{name}' saved to {path}"


class SkillGetTool(_SkillTool):
    """Return the content of a saved skill."""

    name = "skill__get"
    description = "Retrieve the full markdown content of a previously saved skill by name."
    parameters_schema = {
        "type": "object",
        "properties": {"name": {"type": "string", "description": "Skill identifier"}},
        "required": ["name"],
    }

    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        name = _required_str(self.name, arguments, "name")
        content = self.store.get(name)
        if content is None:
            return f"Skill '{name}' not found."
        return content


class SkillListTool(_SkillTool):
    """List saved skill names."""

    name = "skill__list"
    description = "List the names of all saved skills."
    parameters_schema = {"type": "object", "properties": {}}

    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        names = self.store.list()
        if not names:
            return "No skills saved yet."
        return ", ".join(names)


class SkillDeleteTool(_SkillTool):
    """Delete a saved skill."""

    name = "skill__delete"
    description = "Permanently delete a saved skill by name."
    parameters_schema = {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Skill identifier to delete"}
        },
        "required": ["name"],
    }

    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        name = _required_str(self.name, arguments, "name")
        if self.store.delete(name):
            return f"Skill '{name}' deleted."
        return f"Skill '{name}' not found."


@dataclass(frozen=True)
class SkillSaved:
    name: str
    path: str


@dataclass(frozen=True)
class SkillDeleted:
    name: str


SkillEvent = Union[SkillSaved, SkillDeleted]


def make_skill_event(call: ParsedToolCall) -> Optional[SkillEvent]:
    """Event for a mutating skill tool call (save or delete), else None."""
    args = call.arguments if isinstance(call.arguments, dict) else {}
    name = args.get("name")
    if not isinstance(name, str):
        return None
    if call.name == "skill__save":
        return SkillSaved(name=name, path=f".skills/{name}.md")
    if call.name == "skill__delete":
        return SkillDeleted(name=name)
    return None


def register_skill_tools(registry: ToolRegistry, store: SkillStore) -> None:
    """Register all four skill tools, backed by ``store``."""
    for tool_class in (SkillSaveTool, SkillGetTool, SkillListTool, SkillDeleteTool):
        registry.register(tool_class(store))
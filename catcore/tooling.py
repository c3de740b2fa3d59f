"""Tool abstraction shared by the agent's built-in tools."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

__all__ = ["ToolError", "ToolContext", "ParsedToolCall", "Tool", "ToolRegistry"]


class ToolError(Exception):
    """A tool rejected its arguments or failed to run."""

    def __init__(self, tool: str, message: str) -> None:
        super().__init__(f"{tool}: {message}")
        self.tool = tool
        self.message = message


@dataclass
class ToolContext:
    """Per-call context handed to every tool.

    ``user_state`` is the thread's persisted tool-managed state; hold ``lock``
    while reading or modifying it. ``metadata`` carries request data such as
    the thread id.
    """

    user_state: Any = None
    metadata: Optional[dict[str, Any]] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)


@dataclass(frozen=True)
class ParsedToolCall:
    """A tool call requested by the model, with its arguments parsed from JSON."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


class Tool(ABC):
    """A named capability the agent can call."""

    name: str = ""
    description: str = ""
    parameters_schema: dict[str, Any] = {"type": "object", "properties": {}}

    @abstractmethod
    def execute(self, arguments: dict[str, Any], ctx: ToolContext) -> str:
        """Run the tool and return its text output; raise ToolError on bad input."""


class ToolRegistry:
    """Tools keyed by name, in registration order."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Add a tool, replacing any tool of the same name."""
        if not tool.name:
            raise ValueError("tool has no name")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        """Return the tool registered under ``name``, or None."""
        return self._tools.get(name)

    def names(self) -> list[str]:
        """Names of all registered tools."""
        return list(self._tools)

    def execute(self, name: str, arguments: dict[str, Any], ctx: ToolContext) -> str:
        """Run the named tool; raise ToolError if no such tool is registered."""
        tool = self._tools.get(name)
        if tool is None:
            raise ToolError(name, "unknown tool")
        return tool.execute(arguments, ctx)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())
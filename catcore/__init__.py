"""Core building blocks for a chat agent: tiered memory, todo and skill tools."""

__version__ = "0.1.0"
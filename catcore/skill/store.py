"""Persistent backends for named skill documents."""

from __future__ import annotations

import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

__all__ = ["SkillStore", "FileSkillStore", "InMemorySkillStore"]

_UNSAFE = str.maketrans({"/": "_", "\\": "_", ".": "_"})


class SkillStore(ABC):
    """Storage for named skill documents."""

    @abstractmethod
    def save(self, name: str, content: str) -> str:
        """Create or overwrite a skill; return its storage path or key."""

    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        """Return a skill's content, or None if it does not exist."""

    @abstractmethod
    def list(self) -> list[str]:
        """All skill names, sorted."""

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Delete a skill; return whether it existed."""


class FileSkillStore(SkillStore):
    """Keeps each skill as ``<base_dir>/<name>.md``."""

    def __init__(self, base_dir: Union[str, "os.PathLike[str]"]) -> None:
        self.base_dir = Path(base_dir)

    def _skill_path(self, name: str) -> Path:
        # Path separators and dots are replaced so names cannot escape base_dir.
        return self.base_dir / f"{name.translate(_UNSAFE)}.md"

    def save(self, name: str, content: str) -> str:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        path = self._skill_path(name)
        path.write_text(content, encoding="utf-8")
        return str(path)

    def get(self, name: str) -> Optional[str]:
        try:
            return self._skill_path(name).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def list(self) -> list[str]:
        try:
            entries = list(self.base_dir.iterdir())
        except FileNotFoundError:
            return []
        return sorted(p.stem for p in entries if p.suffix == ".md")

    def delete(self, name: str) -> bool:
        try:
            self._skill_path(name).unlink()
        except FileNotFoundError:
            return False
        return True


class InMemorySkillStore(SkillStore):
    """Skill store held in memory, for tests."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def save(self, name: str, content: str) -> str:
        with self._lock:
            self._data[name] = content
        return f"memory:{name}"

    def get(self, name: str) -> Optional[str]:
        with self._lock:
            return self._data.get(name)

    def list(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

    def delete(self, name: str) -> bool:
        with self._lock:
            return self._data.pop(name, None) is not None
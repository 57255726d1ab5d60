"""Typed payloads produced by the parsers and the patch engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class BlockKind(str, Enum):
    """Classification assigned to a detected content block."""

    FILE = "file"
    COMMAND = "command"
    TEXT = "text"


class ActionType(str, Enum):
    """Directive kinds carried by ``<boltAction type="...">`` tags."""

    FILE = "file"
    SHELL = "shell"


@dataclass(frozen=True, slots=True)
class ContentBlock:
    """File or command candidate detected in free-form markdown."""

    kind: BlockKind
    payload: str
    id: str
    file_path: str | None = None
    language: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "file_path": self.file_path,
            "language": self.language,
            "payload": self.payload,
        }


@dataclass(slots=True)
class Action:
    """Single file-write or shell directive inside an artifact.

    ``content`` grows across parse calls while the action is open and is
    immutable once ``closed`` is set.
    """

    id: str
    type: ActionType
    content: str = ""
    file_path: str | None = None
    closed: bool = False

    def snapshot(self) -> "Action":
        """Return a detached copy safe to hand to callers."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "file_path": self.file_path,
            "content": self.content,
        }


@dataclass(slots=True)
class Artifact:
    """Titled collection of actions emitted within one tagged response."""

    id: str
    title: str
    actions: list[Action] = field(default_factory=list)
    closed: bool = False

    def snapshot(self) -> "Artifact":
        """Return a copy whose action list is detached from parser state."""
        return Artifact(
            id=self.id,
            title=self.title,
            actions=[action.snapshot() for action in self.actions],
            closed=self.closed,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "closed": self.closed,
            "actions": [action.to_dict() for action in self.actions],
        }


@dataclass(frozen=True, slots=True)
class PatchBlock:
    """One SEARCH/REPLACE instruction pair, already trimmed."""

    search_text: str
    replace_text: str


@dataclass(slots=True)
class DiffResult:
    """Outcome of applying SEARCH/REPLACE blocks to a file's content."""

    modified_content: str
    touched_line_ranges: list[tuple[int, int]] = field(default_factory=list)
    has_changes: bool = False


__all__ = [
    "Action",
    "ActionType",
    "Artifact",
    "BlockKind",
    "ContentBlock",
    "DiffResult",
    "PatchBlock",
]

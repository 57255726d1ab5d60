"""Typed records exchanged between the scheduler, batcher and tracker."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=False)


class FrozenRecordModel(BaseModel):
    """Immutable variant used for values consumed exactly once."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class CommandKind(str, Enum):
    """Coarse category of a shell command."""

    INSTALL = "install"
    BUILD = "build"
    DEV = "dev"
    CUSTOM = "custom"


class CommandStatus(str, Enum):
    """Lifecycle states for a queued command."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class FileChangeType(str, Enum):
    """How a path differs between two snapshots."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class Command(RecordModel):
    """Shell command tracked by the command queue.

    ``duration`` is wall-clock seconds spent in the executor.
    """

    id: str
    text: str
    kind: CommandKind = CommandKind.CUSTOM
    status: CommandStatus = CommandStatus.PENDING
    output: Optional[str] = None
    error: Optional[str] = None
    enqueued_at: datetime = Field(default_factory=utc_now)
    duration: Optional[float] = None


class Batch(FrozenRecordModel):
    """Coalesced file writes and commands flushed together."""

    id: str
    files: Dict[str, str] = Field(default_factory=dict)
    commands: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def size(self) -> int:
        return len(self.files) + len(self.commands)


class FileChange(FrozenRecordModel):
    """Single path-level difference between consecutive snapshots."""

    path: str
    type: FileChangeType
    old_content: Optional[str] = None
    new_content: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)


class ProjectSnapshot(FrozenRecordModel):
    """Full copy of the file tree plus the changes since the previous one."""

    id: str
    files: Dict[str, str] = Field(default_factory=dict)
    changes: List[FileChange] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)


__all__ = [
    "Batch",
    "Command",
    "CommandKind",
    "CommandStatus",
    "FileChange",
    "FileChangeType",
    "ProjectSnapshot",
    "RecordModel",
    "utc_now",
]

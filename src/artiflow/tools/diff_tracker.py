"""Bounded history of project snapshots and the changes between them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from ..schema import FileChange, FileChangeType, ProjectSnapshot
from ..telemetry import emit_event
from ..utils.ids import generate_id

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class FileDiff:
    """Position-by-position line comparison of two file versions."""

    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ChangeStats:
    total_changes: int
    created: int
    modified: int
    deleted: int
    files_affected: int


def calculate_changes(old_files: Mapping[str, str], new_files: Mapping[str, str]) -> List[FileChange]:
    """Compare two ``{path: content}`` maps.

    Empty content is treated the same as a missing file, so a path going from
    ``""`` to text is reported as created.
    """
    changes: List[FileChange] = []
    for path in dict.fromkeys([*old_files, *new_files]):
        old_content = old_files.get(path)
        new_content = new_files.get(path)
        if not old_content and new_content:
            changes.append(FileChange(path=path, type=FileChangeType.CREATED, new_content=new_content))
        elif old_content and not new_content:
            changes.append(FileChange(path=path, type=FileChangeType.DELETED, old_content=old_content))
        elif old_content and new_content and old_content != new_content:
            changes.append(
                FileChange(
                    path=path,
                    type=FileChangeType.MODIFIED,
                    old_content=old_content,
                    new_content=new_content,
                )
            )
    return changes


class DiffTracker:
    """Record full-tree snapshots, keeping only the newest ``max_snapshots``."""

    def __init__(self, *, max_snapshots: int = 50) -> None:
        if max_snapshots < 1:
            raise ValueError("max_snapshots must be at least 1")
        self.max_snapshots = max_snapshots
        self._snapshots: List[ProjectSnapshot] = []
        self._current: ProjectSnapshot | None = None

    @property
    def current_snapshot(self) -> ProjectSnapshot | None:
        return self._current

    def create_snapshot(self, files: Mapping[str, str]) -> ProjectSnapshot:
        changes = calculate_changes(self._current.files, files) if self._current is not None else []
        snapshot = ProjectSnapshot(id=generate_id("snapshot"), files=dict(files), changes=changes)
        self._snapshots.append(snapshot)
        self._current = snapshot
        if len(self._snapshots) > self.max_snapshots:
            del self._snapshots[: len(self._snapshots) - self.max_snapshots]
        LOGGER.debug("Snapshot %s recorded (%d file(s), %d change(s))", snapshot.id, len(files), len(changes))
        emit_event(
            "snapshot_recorded",
            snapshot_id=snapshot.id,
            files=len(files),
            changes=[f"{change.type.value}:{change.path}" for change in changes],
        )
        return snapshot

    def get_snapshot(self, snapshot_id: str) -> ProjectSnapshot | None:
        for snapshot in self._snapshots:
            if snapshot.id == snapshot_id:
                return snapshot
        return None

    def get_changes(self, snapshot_id: str) -> List[FileChange]:
        snapshot = self.get_snapshot(snapshot_id)
        return list(snapshot.changes) if snapshot is not None else []

    def get_snapshot_history(self) -> List[ProjectSnapshot]:
        """Return retained snapshots, most recent first."""
        return list(reversed(self._snapshots))

    def generate_file_diff(self, old_content: str, new_content: str) -> FileDiff:
        old_lines = old_content.split("\n")
        new_lines = new_content.split("\n")
        diff = FileDiff()
        for index in range(max(len(old_lines), len(new_lines))):
            if index >= len(old_lines):
                diff.added.append(f"+ {new_lines[index]}")
            elif index >= len(new_lines):
                diff.removed.append(f"- {old_lines[index]}")
            elif old_lines[index] != new_lines[index]:
                diff.modified.append(f"~ {old_lines[index]} -> {new_lines[index]}")
        return diff

    def get_change_stats(self, snapshot_id: str) -> ChangeStats:
        changes = self.get_changes(snapshot_id)
        counts: Dict[FileChangeType, int] = {kind: 0 for kind in FileChangeType}
        for change in changes:
            counts[change.type] += 1
        return ChangeStats(
            total_changes=len(changes),
            created=counts[FileChangeType.CREATED],
            modified=counts[FileChangeType.MODIFIED],
            deleted=counts[FileChangeType.DELETED],
            files_affected=len({change.path for change in changes}),
        )

    def clear(self) -> None:
        self._snapshots.clear()
        self._current = None


__all__ = ["ChangeStats", "DiffTracker", "FileDiff", "calculate_changes"]

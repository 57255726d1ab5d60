"""Wiring of parsers, lock checks, batching, command scheduling and snapshots.

A :class:`Workbench` is an explicit, caller-owned instance; nothing in the
package keeps a process-wide default. Ingestion is synchronous and only
queues work. The batcher's timer (or :meth:`Workbench.flush`) moves queued
writes into the file store and queued commands into the command queue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Set, Tuple

from .config import ArtiflowConfig
from .errors import LockedPathError
from .parsing.classifier import BlockClassifier
from .parsing.stream import ParserCallbacks, StreamingTagParser
from .schema import Batch, ProjectSnapshot, utc_now
from .structured import Action, ActionType, Artifact, BlockKind, ContentBlock
from .telemetry import emit_event
from .tools.batcher import DebouncedBatcher
from .tools.command_queue import CommandExecutor, CommandQueue, ShellExecutor
from .tools.diff_patch import DEFAULT_HTML, apply_diff_patches, extract_diff_blocks, has_diff_blocks
from .tools.diff_tracker import DiffTracker
from .tools.file_store import FileStore
from .tools.perf import PerformanceTracker
from .tools.validator import FileValidator, ValidationResult

LOGGER = logging.getLogger(__name__)

INDEX_HTML = "/index.html"


@dataclass(slots=True)
class ArtifactRecord:
    """Registry entry for an artifact seen in a tagged response."""

    id: str
    title: str
    closed: bool = False
    files: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)


class Workbench:
    """Route parsed output through lock admission into batched mutations."""

    def __init__(
        self,
        *,
        executor: CommandExecutor | None = None,
        file_store: FileStore | None = None,
        max_concurrent: int = 2,
        batch_delay: float = 0.5,
        max_batch_size: int | None = 10,
        max_snapshots: int = 50,
        strict: bool = False,
    ) -> None:
        self.strict = strict
        self.file_store = file_store or FileStore()
        self.parser = StreamingTagParser(
            ParserCallbacks(
                on_artifact_open=self._on_artifact_open,
                on_action_close=self._on_action_close,
                on_artifact_complete=self._on_artifact_complete,
            )
        )
        self.classifier = BlockClassifier()
        self.command_queue = CommandQueue(executor, max_concurrent=max_concurrent)
        self.batcher = DebouncedBatcher(self._apply_batch, delay=batch_delay, max_batch_size=max_batch_size)
        self.tracker = DiffTracker(max_snapshots=max_snapshots)
        self.validator = FileValidator()
        self.perf = PerformanceTracker()
        self.refused_paths: List[str] = []
        self.validation_results: Dict[str, ValidationResult] = {}
        self._artifacts: Dict[str, ArtifactRecord] = {}
        self._routed_writes: Dict[str, Set[Tuple[str, str]]] = {}
        self._parsing_session: str | None = None

    @classmethod
    def from_config(
        cls,
        config: ArtiflowConfig,
        *,
        executor: CommandExecutor | None = None,
        file_store: FileStore | None = None,
        strict: bool = False,
    ) -> "Workbench":
        if executor is None:
            executor = ShellExecutor(
                shell=config.executor.shell,
                timeout=config.executor.timeout,
                cwd=config.executor.cwd,
            )
        return cls(
            executor=executor,
            file_store=file_store,
            max_concurrent=config.queue.max_concurrent,
            batch_delay=config.batcher.delay,
            max_batch_size=config.batcher.max_batch_size,
            max_snapshots=config.tracker.max_snapshots,
            strict=strict,
        )

    # Ingestion ---------------------------------------------------------

    def ingest_tagged(self, message_id: str, text: str) -> List[Artifact]:
        """Feed the cumulative tagged text for ``message_id`` to the tag parser."""
        self._parsing_session = message_id
        try:
            return self.perf.measure("parse_tagged", lambda: self.parser.parse(message_id, text))
        finally:
            self._parsing_session = None

    def ingest_markdown(self, message_id: str, text: str) -> List[ContentBlock]:
        """Classify markdown for ``message_id`` and queue the new blocks."""
        blocks = self.perf.measure("parse_markdown", lambda: self.classifier.parse(message_id, text))
        routed = self._routed_writes.setdefault(message_id, set())
        for block in blocks:
            if block.kind is BlockKind.FILE and block.file_path:
                # Overlapping patterns can report one fenced block twice under
                # different source text; a patch must only be resolved once.
                key = (block.file_path, self._write_key(block.payload))
                if key in routed:
                    LOGGER.debug("Skipping repeated block for %s in message %s", block.file_path, message_id)
                    continue
                routed.add(key)
                self.write_file(block.file_path, block.payload)
            elif block.kind is BlockKind.COMMAND:
                self.run_command(block.payload)
        return blocks

    def end_message(self, message_id: str) -> None:
        """Release parser and classifier state held for ``message_id``."""
        self.parser.destroy_session(message_id)
        self.classifier.forget(message_id)
        self._routed_writes.pop(message_id, None)

    def write_file(self, path: str, content: str) -> bool:
        """Queue a write after resolving patches and checking locks.

        Returns ``False`` when the write is refused or is a patch that
        changes nothing.
        """
        if not self._admit(path):
            return False

        if has_diff_blocks(content):
            base = self._current_content(path)
            result = apply_diff_patches(base, content)
            if not result.has_changes:
                LOGGER.info("Patch for %s matched nothing; dropping write", path)
                emit_event("patch_skipped", path=path)
                return False
            emit_event("patch_applied", path=path, ranges=result.touched_line_ranges)
            content = result.modified_content

        self.batcher.add_file(path, content)
        return True

    @staticmethod
    def _write_key(payload: str) -> str:
        if has_diff_blocks(payload):
            return extract_diff_blocks(payload)
        return payload

    def run_command(self, command: str) -> bool:
        text = command.strip()
        if not text:
            return False
        self.batcher.add_command(text)
        return True

    def _current_content(self, path: str) -> str:
        pending = self.batcher.get_pending_file(path)
        if pending is not None:
            return pending
        entry = self.file_store.get_file(path)
        if entry is not None:
            return entry.content
        if path == INDEX_HTML:
            return DEFAULT_HTML
        return ""

    def _admit(self, path: str) -> bool:
        status = self.file_store.is_file_locked(path)
        if not status.locked:
            return True
        self.refused_paths.append(path)
        LOGGER.warning("Refusing write to %s; locked by %s", path, status.locked_by)
        emit_event("write_refused", path=path, locked_by=status.locked_by)
        if self.strict:
            raise LockedPathError(
                f"{path} is locked",
                details={"path": path, "locked_by": status.locked_by},
            )
        return False

    # Parser callbacks ---------------------------------------------------

    def _on_artifact_open(self, artifact: Artifact) -> None:
        self.add_artifact(artifact.id, artifact.title)

    def _on_action_close(self, action: Action) -> None:
        if action.type is ActionType.SHELL:
            self.run_command(action.content)
            return
        if not action.file_path:
            LOGGER.warning("File action %s has no filePath; ignoring", action.id)
            return
        content = action.content.strip("\n")
        record = self._open_artifact_record()
        if record is not None:
            record.files[action.file_path] = content
        self.write_file(action.file_path, content)

    def _on_artifact_complete(self, artifact: Artifact) -> None:
        self.close_artifact(artifact.id)

    def _open_artifact_record(self) -> ArtifactRecord | None:
        if self._parsing_session is None:
            return None
        session = self.parser.get_session(self._parsing_session)
        if session is None or session.open_artifact is None:
            return None
        return self._artifacts.get(session.open_artifact.id)

    # Artifact registry --------------------------------------------------

    @property
    def artifacts(self) -> List[ArtifactRecord]:
        return list(self._artifacts.values())

    def get_artifact(self, artifact_id: str) -> ArtifactRecord | None:
        return self._artifacts.get(artifact_id)

    def add_artifact(self, artifact_id: str, title: str) -> ArtifactRecord:
        """Register ``artifact_id``; re-adding keeps its position and files."""
        record = self._artifacts.get(artifact_id)
        if record is None:
            record = ArtifactRecord(id=artifact_id, title=title)
            self._artifacts[artifact_id] = record
        else:
            record.title = title
            record.closed = False
        LOGGER.debug("Artifact added %s (%s)", artifact_id, title)
        return record

    def close_artifact(self, artifact_id: str) -> bool:
        record = self._artifacts.get(artifact_id)
        if record is None:
            LOGGER.warning("Trying to close non-existent artifact %s", artifact_id)
            return False
        record.closed = True
        LOGGER.debug("Artifact closed %s", artifact_id)
        return True

    def remove_artifact(self, artifact_id: str) -> bool:
        if self._artifacts.pop(artifact_id, None) is None:
            LOGGER.warning("Trying to remove non-existent artifact %s", artifact_id)
            return False
        LOGGER.debug("Artifact removed %s", artifact_id)
        return True

    @property
    def first_artifact(self) -> ArtifactRecord | None:
        return next(iter(self._artifacts.values()), None)

    @property
    def active_artifact(self) -> ArtifactRecord | None:
        """Return the earliest artifact that has not been closed."""
        return next((record for record in self._artifacts.values() if not record.closed), None)

    # Batch application --------------------------------------------------

    async def _apply_batch(self, batch: Batch) -> None:
        applied: List[str] = []
        for path, content in batch.files.items():
            # Locks may have changed while the write sat in the batcher.
            status = self.file_store.is_file_locked(path)
            if status.locked:
                self.refused_paths.append(path)
                LOGGER.warning("Dropping batched write to %s; locked by %s", path, status.locked_by)
                continue
            self.file_store.create_file(path, content)
            self.validation_results[path] = self.validator.validate_file(path, content)
            applied.append(path)

        for command in batch.commands:
            self.command_queue.add_command(command)

        if applied:
            self.tracker.create_snapshot(self.file_store.file_contents())
        LOGGER.info("Applied batch %s: %d file(s), %d command(s)", batch.id, len(applied), len(batch.commands))

    async def flush(self) -> Batch | None:
        """Apply pending writes and enqueue pending commands now."""
        return await self.batcher.flush()

    async def aclose(self) -> None:
        """Flush pending work and wait for every queued command to finish."""
        await self.batcher.aclose()
        await self.command_queue.join()

    @property
    def current_snapshot(self) -> ProjectSnapshot | None:
        return self.tracker.current_snapshot


__all__ = ["ArtifactRecord", "INDEX_HTML", "Workbench"]

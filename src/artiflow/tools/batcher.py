"""Debounced coalescing of file writes and commands into atomic batches."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List

from ..schema import Batch
from ..telemetry import emit_event
from ..utils.ids import generate_id

LOGGER = logging.getLogger(__name__)

BatchHandler = Callable[[Batch], Awaitable[None]]


@dataclass(slots=True)
class PendingStats:
    """Size of the not-yet-flushed buffers."""

    file_count: int
    command_count: int
    total_size: int


class DebouncedBatcher:
    """Collect additions and hand them to ``handler`` once activity settles.

    Every addition restarts a ``delay``-second timer. When it fires, or when
    :meth:`flush` is awaited, the pending buffers are swapped out for empty
    ones *before* the handler runs, so additions made while a handler is busy
    land in the next batch. Handlers run one at a time in flush order; a
    failing handler is logged and its batch is not retried.
    """

    def __init__(self, handler: BatchHandler, *, delay: float = 0.5, max_batch_size: int | None = 10) -> None:
        self._handler = handler
        self.delay = delay
        self.max_batch_size = max_batch_size
        self._pending_files: Dict[str, str] = {}
        self._pending_commands: List[str] = []
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Batch | None]] = set()
        self._handler_lock = asyncio.Lock()
        self.processed_batches = 0
        self.failed_batches = 0

    def add_file(self, path: str, content: str) -> None:
        self._pending_files[path] = content
        self._schedule()

    def add_command(self, command: str) -> None:
        self._pending_commands.append(command)
        self._schedule()

    def get_pending_file(self, path: str) -> str | None:
        """Return the not-yet-flushed content queued for ``path``."""
        return self._pending_files.get(path)

    def has_pending_updates(self) -> bool:
        return bool(self._pending_files or self._pending_commands)

    def get_pending_stats(self) -> PendingStats:
        return PendingStats(
            file_count=len(self._pending_files),
            command_count=len(self._pending_commands),
            total_size=sum(len(content) for content in self._pending_files.values()),
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running event loop; additions stay pending until flush()")
            return
        self._cancel_timer()
        pending = len(self._pending_files) + len(self._pending_commands)
        if self.max_batch_size and pending >= self.max_batch_size:
            self._spawn(loop)
            return
        self._timer = loop.call_later(self.delay, self._on_timer, loop)

    def _on_timer(self, loop: asyncio.AbstractEventLoop) -> None:
        self._timer = None
        self._spawn(loop)

    def _spawn(self, loop: asyncio.AbstractEventLoop) -> None:
        task = loop.create_task(self._process_batch())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _take_pending(self) -> Batch | None:
        if not self.has_pending_updates():
            return None
        batch = Batch(
            id=generate_id("batch"),
            files=dict(self._pending_files),
            commands=list(self._pending_commands),
        )
        self._pending_files = {}
        self._pending_commands = []
        return batch

    async def _process_batch(self) -> Batch | None:
        # Taking the pending state happens without awaiting, so a timer and a
        # manual flush can never both see the same additions.
        batch = self._take_pending()
        if batch is None:
            return None
        async with self._handler_lock:
            try:
                await self._handler(batch)
            except Exception:  # noqa: BLE001 - handler failures are reported, not raised
                self.failed_batches += 1
                LOGGER.exception("Batch %s failed", batch.id)
                emit_event("batch_failed", batch_id=batch.id, files=len(batch.files), commands=len(batch.commands))
            else:
                self.processed_batches += 1
                LOGGER.info(
                    "Processed batch %s with %d file(s) and %d command(s)",
                    batch.id,
                    len(batch.files),
                    len(batch.commands),
                )
                emit_event("batch_flushed", batch_id=batch.id, files=sorted(batch.files), commands=len(batch.commands))
        return batch

    async def flush(self) -> Batch | None:
        """Cancel the timer and emit pending additions immediately."""
        self._cancel_timer()
        return await self._process_batch()

    async def aclose(self) -> None:
        """Flush what is pending and wait for in-flight batches."""
        await self.flush()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


__all__ = ["BatchHandler", "DebouncedBatcher", "PendingStats"]

from __future__ import annotations

import asyncio
import logging
from typing import List

import pytest

from artiflow.schema import Batch
from artiflow.tools.batcher import DebouncedBatcher


class RecordingHandler:
    def __init__(self, *, fail: bool = False) -> None:
        self.batches: List[Batch] = []
        self.fail = fail

    async def __call__(self, batch: Batch) -> None:
        self.batches.append(batch)
        if self.fail:
            raise RuntimeError("handler exploded")


def test_additions_within_delay_form_one_batch() -> None:
    async def scenario() -> None:
        handler = RecordingHandler()
        batcher = DebouncedBatcher(handler, delay=0.05)

        batcher.add_file("/src/App.jsx", "app")
        await asyncio.sleep(0.02)
        batcher.add_command("npm install")
        await asyncio.sleep(0.15)

        assert len(handler.batches) == 1
        batch = handler.batches[0]
        assert batch.files == {"/src/App.jsx": "app"}
        assert batch.commands == ["npm install"]
        assert batch.id.startswith("batch_")
        assert batcher.has_pending_updates() is False

    asyncio.run(scenario())


def test_later_writes_to_same_path_win() -> None:
    async def scenario() -> None:
        handler = RecordingHandler()
        batcher = DebouncedBatcher(handler, delay=10)
        batcher.add_file("/a.js", "one")
        batcher.add_file("/a.js", "two")

        assert batcher.get_pending_file("/a.js") == "two"
        batch = await batcher.flush()

        assert batch is not None and batch.files == {"/a.js": "two"}

    asyncio.run(scenario())


def test_flush_cancels_timer_and_never_double_emits() -> None:
    async def scenario() -> None:
        handler = RecordingHandler()
        batcher = DebouncedBatcher(handler, delay=0.05)
        batcher.add_file("/a.js", "a")

        flushed = await batcher.flush()
        await asyncio.sleep(0.1)

        assert flushed is not None
        assert [batch.id for batch in handler.batches] == [flushed.id]
        assert await batcher.flush() is None

    asyncio.run(scenario())


def test_additions_during_handler_start_a_fresh_batch() -> None:
    async def scenario() -> None:
        batches: List[Batch] = []
        batcher: DebouncedBatcher

        async def handler(batch: Batch) -> None:
            batches.append(batch)
            if len(batches) == 1:
                batcher.add_command("npm run dev")
                await asyncio.sleep(0)

        batcher = DebouncedBatcher(handler, delay=10)
        batcher.add_file("/a.js", "a")
        await batcher.flush()

        assert batcher.get_pending_stats().command_count == 1
        await batcher.flush()

        assert [batch.commands for batch in batches] == [[], ["npm run dev"]]
        assert batches[0].files == {"/a.js": "a"}

    asyncio.run(scenario())


def test_handler_failure_is_logged_and_not_retried(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR, logger="artiflow")

    async def scenario() -> DebouncedBatcher:
        handler = RecordingHandler(fail=True)
        batcher = DebouncedBatcher(handler, delay=10)
        batcher.add_file("/a.js", "a")
        await batcher.flush()
        handler.fail = False
        batcher.add_file("/b.js", "b")
        await batcher.flush()
        assert [list(batch.files) for batch in handler.batches] == [["/a.js"], ["/b.js"]]
        return batcher

    batcher = asyncio.run(scenario())

    assert batcher.failed_batches == 1
    assert batcher.processed_batches == 1
    assert "handler exploded" in caplog.text


def test_reaching_max_batch_size_flushes_immediately() -> None:
    async def scenario() -> None:
        handler = RecordingHandler()
        batcher = DebouncedBatcher(handler, delay=10, max_batch_size=3)
        batcher.add_file("/a.js", "a")
        batcher.add_file("/b.js", "b")
        batcher.add_command("ls")
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert len(handler.batches) == 1
        assert handler.batches[0].size == 3

    asyncio.run(scenario())


def test_pending_stats_and_no_loop_behaviour() -> None:
    handler = RecordingHandler()
    batcher = DebouncedBatcher(handler, delay=0.01)
    batcher.add_file("/a.js", "12345")
    batcher.add_file("/b.js", "67")
    batcher.add_command("ls")

    stats = batcher.get_pending_stats()
    assert (stats.file_count, stats.command_count, stats.total_size) == (2, 1, 7)

    asyncio.run(batcher.aclose())

    assert len(handler.batches) == 1
    assert batcher.has_pending_updates() is False

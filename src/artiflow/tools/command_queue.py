"""Bounded-concurrency FIFO scheduler for shell commands."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections import deque
from pathlib import Path
from typing import Awaitable, Callable, Deque, Dict, List, Mapping

from ..errors import CommandExecutionError
from ..schema import Command, CommandKind, CommandStatus
from ..telemetry import emit_event
from ..utils.ids import generate_id

LOGGER = logging.getLogger(__name__)

CommandExecutor = Callable[[Command], Awaitable[str]]


def infer_command_kind(text: str) -> CommandKind:
    """Bucket ``text`` into install/build/dev/custom by keyword."""
    if "install" in text:
        return CommandKind.INSTALL
    if "build" in text:
        return CommandKind.BUILD
    if "dev" in text:
        return CommandKind.DEV
    return CommandKind.CUSTOM


class ShellExecutor:
    """Run commands through the system shell and capture combined output."""

    def __init__(
        self,
        *,
        shell: str | None = "/bin/sh",
        timeout: float | None = 300.0,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.shell = shell
        self.timeout = timeout
        self.cwd = Path(cwd) if cwd is not None else None
        self._env = dict(env) if env is not None else None

    def _merged_env(self) -> Dict[str, str] | None:
        if self._env is None:
            return None
        env = os.environ.copy()
        env.update(self._env)
        return env

    async def __call__(self, command: Command) -> str:
        process = await asyncio.create_subprocess_shell(
            command.text,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(self.cwd) if self.cwd is not None else None,
            env=self._merged_env(),
            executable=self.shell,
        )
        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as error:
            process.kill()
            await process.wait()
            raise CommandExecutionError(
                f"Command timed out after {self.timeout}s",
                details={"command": command.text, "timeout": self.timeout},
            ) from error

        output = (stdout or b"").decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise CommandExecutionError(
                f"Command failed with exit code {process.returncode}",
                details={"command": command.text, "returncode": process.returncode, "output": output},
            )
        return output


class CommandQueue:
    """FIFO queue that never runs more than ``max_concurrent`` commands at once.

    Commands are started as soon as a slot is free while an event loop is
    running; commands added outside a loop stay pending until :meth:`join`.
    Executor failures are recorded on the command and never propagate.
    """

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        *,
        max_concurrent: int = 2,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._executor: CommandExecutor = executor or ShellExecutor()
        self.max_concurrent = max_concurrent
        self._queue: Deque[Command] = deque()
        self._running: Dict[str, Command] = {}
        self._completed: List[Command] = []
        self._tasks: set[asyncio.Task[None]] = set()

    def add_command(self, text: str, kind: CommandKind | None = None) -> str:
        """Append ``text`` to the queue tail and return the command id."""
        command = Command(id=generate_id("cmd"), text=text, kind=kind or infer_command_kind(text))
        self._queue.append(command)
        LOGGER.debug("Queued command %s: %s", command.id, text)
        self._pump()
        return command.id

    def retry_command(self, command_id: str) -> bool:
        """Requeue a failed command at the tail. Other states are left alone."""
        for index, command in enumerate(self._completed):
            if command.id == command_id and command.status is CommandStatus.FAILED:
                del self._completed[index]
                command.status = CommandStatus.PENDING
                command.error = None
                command.output = None
                command.duration = None
                self._queue.append(command)
                LOGGER.info("Retrying command %s", command_id)
                self._pump()
                return True
        return False

    def _pump(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        while self._queue and len(self._running) < self.max_concurrent:
            command = self._queue.popleft()
            command.status = CommandStatus.RUNNING
            self._running[command.id] = command
            task = loop.create_task(self._execute(command))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _execute(self, command: Command) -> None:
        started = time.perf_counter()
        try:
            output = await self._executor(command)
        except asyncio.CancelledError:
            command.status = CommandStatus.FAILED
            command.error = "cancelled"
            raise
        except Exception as error:  # noqa: BLE001 - executor failures become command state
            command.status = CommandStatus.FAILED
            command.error = str(error) or error.__class__.__name__
            if isinstance(error, CommandExecutionError):
                captured = error.details.get("output")
                if isinstance(captured, str):
                    command.output = captured
            LOGGER.warning("Command %s failed: %s", command.text, command.error)
        else:
            command.status = CommandStatus.COMPLETED
            command.output = output
            LOGGER.info("Command %s completed", command.text)
        finally:
            command.duration = time.perf_counter() - started
            self._running.pop(command.id, None)
            self._completed.append(command)
            emit_event(
                "command_finished",
                command_id=command.id,
                command=command.text,
                status=command.status.value,
                duration=round(command.duration, 6),
            )
        self._pump()

    async def join(self) -> None:
        """Start any pending commands and wait until nothing is queued or running."""
        self._pump()
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            self._pump()

    def get_queue_status(self) -> Dict[str, int]:
        return {
            "pending": len(self._queue),
            "running": len(self._running),
            "completed": len(self._completed),
            "failed": sum(1 for command in self._completed if command.status is CommandStatus.FAILED),
        }

    def get_pending_commands(self) -> List[Command]:
        return list(self._queue)

    def get_running_commands(self) -> List[Command]:
        return list(self._running.values())

    def get_completed_commands(self) -> List[Command]:
        """Return finished commands, most recent first."""
        return list(reversed(self._completed))

    def get_command_by_id(self, command_id: str) -> Command | None:
        for command in (*self._queue, *self._running.values(), *self._completed):
            if command.id == command_id:
                return command
        return None

    def clear_completed(self) -> None:
        self._completed.clear()


__all__ = ["CommandExecutor", "CommandQueue", "ShellExecutor", "infer_command_kind"]

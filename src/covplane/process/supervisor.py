"""Child process supervision with line-split output streams.

Every process is started in its own session so that ``kill_group`` can take
down whatever it spawned (content_shell renderers, selenium browsers, the
isolates behind an instrumentation port).

Each of stdout/stderr is pumped into a queue as soon as the process starts,
so no output is lost between spawn and the first consumer. A stream can be
consumed once, either by iterating ``lines()`` or by ``forward()``ing it to
a sink::

    proc = await TaskProcess.spawn("dart", ["--observe=8181", "a_test.dart"])
    proc.forward("stderr", errors.publish)
    async with aclosing(proc.lines("stdout")) as stream:
        async for _source, line in stream:
            ...
    await proc.kill_group()
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
from collections.abc import AsyncIterator, Callable, Sequence
from pathlib import Path
from typing import Literal

import structlog

logger = structlog.get_logger()

Source = Literal["stdout", "stderr"]

_POSIX = os.name == "posix"
_LINE_LIMIT = 1024 * 1024  # content_shell dumps whole render trees on one line
_SOURCES: tuple[Source, Source] = ("stdout", "stderr")


class TaskProcess:
    """A running child process with line streams and forced termination."""

    def __init__(
        self,
        proc: asyncio.subprocess.Process,
        command: list[str],
        *,
        cwd: Path | None = None,
        shutdown_timeout: float = 5.0,
    ) -> None:
        self._proc = proc
        self.command = command
        self.cwd = cwd
        self._shutdown_timeout = shutdown_timeout
        self._queues: dict[Source, asyncio.Queue[str | None]] = {
            "stdout": asyncio.Queue(),
            "stderr": asyncio.Queue(),
        }
        self._claimed: set[Source] = set()
        self._pumps = [
            asyncio.create_task(self._pump(proc.stdout, self._queues["stdout"])),
            asyncio.create_task(self._pump(proc.stderr, self._queues["stderr"])),
        ]
        self._forwarders: list[asyncio.Task[None]] = []

    @classmethod
    async def spawn(
        cls,
        executable: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
        shutdown_timeout: float = 5.0,
    ) -> TaskProcess:
        """Start ``executable`` with ``args``.

        Raises:
            OSError: If the executable cannot be launched.
        """
        command = [executable, *args]
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            limit=_LINE_LIMIT,
            start_new_session=_POSIX,
        )
        logger.debug("process_spawned", command=command, pid=proc.pid, cwd=str(cwd or ""))
        return cls(proc, command, cwd=cwd, shutdown_timeout=shutdown_timeout)

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode

    @property
    def display(self) -> str:
        """Command line as it would be typed."""
        return " ".join(self.command)

    @staticmethod
    async def _pump(reader: asyncio.StreamReader | None, queue: asyncio.Queue[str | None]) -> None:
        try:
            if reader is None:
                return
            while raw := await reader.readline():
                await queue.put(raw.decode(errors="replace").rstrip("\r\n"))
        finally:
            queue.put_nowait(None)

    def _claim(self, source: Source) -> asyncio.Queue[str | None]:
        if source in self._claimed:
            raise RuntimeError(f"{source} of {self.display} is already being consumed")
        self._claimed.add(source)
        return self._queues[source]

    async def lines(self, *sources: Source) -> AsyncIterator[tuple[Source, str]]:
        """Yield ``(source, line)`` pairs until every requested stream ends.

        With several sources, lines are interleaved in arrival order.
        """
        sources = sources or _SOURCES
        queues = {source: self._claim(source) for source in sources}

        if len(queues) == 1:
            [(source, queue)] = queues.items()
            while (line := await queue.get()) is not None:
                yield source, line
            return

        merged: asyncio.Queue[tuple[Source, str | None]] = asyncio.Queue()

        async def relay(source: Source, queue: asyncio.Queue[str | None]) -> None:
            while True:
                line = await queue.get()
                await merged.put((source, line))
                if line is None:
                    return

        relays = [asyncio.create_task(relay(s, q)) for s, q in queues.items()]
        remaining = len(relays)
        try:
            while remaining:
                source, line = await merged.get()
                if line is None:
                    remaining -= 1
                    continue
                yield source, line
        finally:
            for task in relays:
                task.cancel()

    def forward(self, source: Source, sink: Callable[[str], None]) -> asyncio.Task[None]:
        """Send every line of ``source`` to ``sink`` in the background."""
        queue = self._claim(source)

        async def run() -> None:
            while (line := await queue.get()) is not None:
                sink(line)

        task = asyncio.create_task(run())
        self._forwarders.append(task)
        return task

    async def wait(self) -> int:
        """Wait for exit and for both streams to be fully read."""
        returncode = await self._proc.wait()
        await asyncio.gather(*self._pumps, return_exceptions=True)
        await asyncio.gather(*self._forwarders, return_exceptions=True)
        return returncode

    def _signal(self, sig: int) -> None:
        with contextlib.suppress(ProcessLookupError, PermissionError):
            if _POSIX:
                os.killpg(self._proc.pid, sig)
            else:
                self._proc.terminate()

    async def kill_group(self) -> None:
        """Terminate the process and everything in its process group.

        SIGTERM first, SIGKILL after ``shutdown_timeout``. The group is signalled
        even when the leader has already exited.
        """
        self._signal(signal.SIGTERM)
        try:
            await asyncio.wait_for(self._proc.wait(), self._shutdown_timeout)
        except TimeoutError:
            logger.warning("process_kill_escalated", command=self.command, pid=self.pid)
            self._signal(signal.SIGKILL if _POSIX else signal.SIGTERM)
            await self._proc.wait()

        # Orphans outside the group can keep a pipe open; stop reading after the grace period.
        _, pending = await asyncio.wait(
            [*self._pumps, *self._forwarders], timeout=self._shutdown_timeout
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        logger.debug("process_killed", command=self.command, pid=self.pid)


async def run_command(
    executable: str,
    args: Sequence[str] = (),
    *,
    cwd: Path | None = None,
    stdout: Callable[[str], None] | None = None,
    stderr: Callable[[str], None] | None = None,
    shutdown_timeout: float = 5.0,
) -> int:
    """Run a command to completion, forwarding its lines, and return its exit code.

    Raises:
        OSError: If the executable cannot be launched.
    """
    process = await TaskProcess.spawn(
        executable, args, cwd=cwd, shutdown_timeout=shutdown_timeout
    )
    try:
        process.forward("stdout", stdout or _discard)
        process.forward("stderr", stderr or _discard)
        returncode = await process.wait()
    finally:
        if process.returncode is None:
            await process.kill_group()
    logger.debug("command_finished", command=process.command, returncode=returncode)
    return returncode


def _discard(_line: str) -> None:
    pass

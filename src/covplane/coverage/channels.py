"""Broadcast line channels.

A coverage run funnels every subprocess line into two channels, combined
output and combined error, which callers can watch live. Each subscriber
receives every line published since the channel opened, so subscribing after
``CoverageTask.start`` loses nothing. Channels stay open until the run ends.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import structlog

logger = structlog.get_logger()


class LineChannel:
    """Append-only line log with async fan-out."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._lines: list[str] = []
        self._closed = False
        self._waiter: asyncio.Future[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def lines(self) -> list[str]:
        """Snapshot of everything published so far."""
        return list(self._lines)

    def publish(self, line: str) -> None:
        if self._closed:
            logger.debug("channel_publish_after_close", channel=self.name, line=line)
            return
        self._lines.append(line)
        self._wake()

    def close(self) -> None:
        self._closed = True
        self._wake()

    def _wake(self) -> None:
        waiter, self._waiter = self._waiter, None
        if waiter is not None and not waiter.done():
            waiter.set_result(None)

    async def subscribe(self) -> AsyncIterator[str]:
        """Yield lines until the channel is closed and drained."""
        index = 0
        while True:
            while index < len(self._lines):
                yield self._lines[index]
                index += 1
            if self._closed:
                return
            if self._waiter is None:
                self._waiter = asyncio.get_running_loop().create_future()
            await self._waiter

    def __aiter__(self) -> AsyncIterator[str]:
        return self.subscribe()

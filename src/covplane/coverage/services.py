"""Auxiliary services for functional tests.

Functional tests drive a served application through a browser, so two
long-running processes must be up first:

- the application server, ``pub serve --port=<serve_port>`` in the
  functional root
- the driver server, ``selenium-server``, which launches instrumented
  browsers and announces their VM service ports

Both start concurrently. Each is watched for its ready marker, its failure
marker and early exit; a failure of either tears both down and raises
``PortBoundError``. The driver's port announcements are recorded in a
``PortRegistry`` for as long as the services run.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from covplane.config.models import ServicesConfig, ToolsConfig
from covplane.core.errors import PortBoundError
from covplane.coverage.channels import LineChannel
from covplane.coverage.signals import LineClassifier, LineEvent
from covplane.process import TaskProcess

logger = structlog.get_logger()

APP_SERVER = "pub serve"
DRIVER_SERVER = "selenium-server"


class PortRegistry:
    """Instrumentation ports announced during a run, in discovery order.

    Runners take a ``mark()`` before a test and read ``since(mark)`` after
    it to learn which ports that test opened.
    """

    def __init__(self) -> None:
        self._ports: list[int] = []

    def add(self, port: int) -> None:
        self._ports.append(port)
        logger.debug("port_registered", port=port, total=len(self._ports))

    def mark(self) -> int:
        return len(self._ports)

    def since(self, mark: int) -> list[int]:
        return self._ports[mark:]

    @property
    def ports(self) -> list[int]:
        return list(self._ports)

    def __len__(self) -> int:
        return len(self._ports)


def _consume_failure(future: asyncio.Future[None]) -> None:
    # Only the first failure is re-raised; the other one is reported via logs.
    if not future.cancelled():
        future.exception()


@dataclass
class _Service:
    name: str
    process: TaskProcess
    classifier: LineClassifier
    ready: asyncio.Future[None]
    watcher: asyncio.Task[None] | None = field(default=None)

    def fail(self, reason: str) -> None:
        if not self.ready.done():
            self.ready.set_exception(PortBoundError.service(self.name, reason))


class AuxiliaryServices:
    """Lifecycle of the application server and the driver server."""

    def __init__(
        self,
        tools: ToolsConfig,
        config: ServicesConfig,
        root: Path,
        registry: PortRegistry,
        output: LineChannel,
        errors: LineChannel,
    ) -> None:
        self._tools = tools
        self._config = config
        self._root = root
        self._registry = registry
        self._output = output
        self._errors = errors
        self._services: list[_Service] = []

    @property
    def running(self) -> bool:
        return bool(self._services)

    async def start(self) -> None:
        """Start both servers and wait until each reports ready.

        Raises:
            PortBoundError: A server could not be launched, reported a
                failure, exited early, or was not ready in time. Both servers
                are stopped before this is raised.
        """
        logger.info("services_starting", root=str(self._root), port=self._config.serve_port)
        try:
            await self._launch(
                APP_SERVER,
                self._tools.pub,
                ["serve", f"--port={self._config.serve_port}"],
                LineClassifier.app_server(self._config.serve_port),
            )
            await self._launch(
                DRIVER_SERVER, self._tools.selenium_server, [], LineClassifier.driver_server()
            )
            await self._await_ready()
        except PortBoundError as e:
            logger.error("services_failed", error=e.message)
            await self.stop()
            raise
        logger.info("services_ready", services=[s.name for s in self._services])

    async def _launch(
        self, name: str, executable: str, args: list[str], classifier: LineClassifier
    ) -> None:
        self._output.publish(f"Starting {name}")
        try:
            process = await TaskProcess.spawn(
                executable,
                args,
                cwd=self._root,
                shutdown_timeout=self._config.shutdown_timeout_sec,
            )
        except OSError as e:
            raise PortBoundError.service(name, f"could not launch {executable}: {e}") from e

        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        ready.add_done_callback(_consume_failure)
        service = _Service(name, process, classifier, ready)
        service.watcher = asyncio.create_task(self._watch(service))
        self._services.append(service)

    async def _await_ready(self) -> None:
        try:
            async with asyncio.timeout(self._config.startup_timeout_sec):
                await asyncio.gather(*(s.ready for s in self._services))
        except TimeoutError:
            # gather cancels the futures it was still waiting on
            pending = ", ".join(
                s.name for s in self._services if s.ready.cancelled() or not s.ready.done()
            )
            raise PortBoundError.service(
                pending, f"not ready after {self._config.startup_timeout_sec}s"
            ) from None

    async def _watch(self, service: _Service) -> None:
        async with aclosing(service.process.lines("stdout", "stderr")) as stream:
            async for source, line in stream:
                channel = self._errors if source == "stderr" else self._output
                channel.publish(f"    {line}")
                signal = service.classifier.classify(line)
                if signal is None:
                    continue
                if signal.event is LineEvent.INSPECTION_PORT and signal.port is not None:
                    self._registry.add(signal.port)
                elif signal.event is LineEvent.SERVICE_FAILED:
                    service.fail(line.strip())
                elif signal.event is LineEvent.SERVICE_READY and not service.ready.done():
                    logger.info("service_ready", service=service.name)
                    service.ready.set_result(None)
        service.fail("exited before becoming ready")

    async def stop(self) -> None:
        """Kill both servers. Safe to call when nothing is running."""
        services, self._services = self._services, []
        if not services:
            return
        await asyncio.gather(*(s.process.kill_group() for s in services))
        watchers = [s.watcher for s in services if s.watcher is not None]
        for service in services:
            if not service.ready.done():
                service.ready.cancel()
        _, pending = await asyncio.wait(watchers, timeout=self._config.shutdown_timeout_sec)
        for task in pending:
            task.cancel()
        await asyncio.gather(*watchers, return_exceptions=True)
        logger.info("services_stopped", services=[s.name for s in services])

    @asynccontextmanager
    async def running_services(self) -> AsyncIterator[PortRegistry]:
        """Run both servers for the duration of the block."""
        await self.start()
        try:
            yield self._registry
        finally:
            await self.stop()

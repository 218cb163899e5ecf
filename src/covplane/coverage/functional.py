"""Functional-test runner.

Functional tests are scripts run with ``pub run`` from the functional root
while the auxiliary services are up. They do not expose a port of their own;
instead, every port the driver server announced during the test is a
candidate, and those still hosting isolates are handed to the collector.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import aclosing, asynccontextmanager
from pathlib import Path

import structlog

from covplane.config.models import ServicesConfig, ToolsConfig
from covplane.core.errors import ConfigError, TestSuiteFailed
from covplane.coverage.channels import LineChannel
from covplane.coverage.models import TestFile
from covplane.coverage.runner import indented
from covplane.coverage.services import PortRegistry
from covplane.coverage.signals import LineClassifier, LineEvent
from covplane.coverage.vm_service import filter_live_ports
from covplane.process import TaskProcess, run_command

logger = structlog.get_logger()


def resolve_functional_root(
    configured: str | Path | None, functional_paths: Iterable[str | Path]
) -> Path | None:
    """The configured root, else the first functional path that is a directory."""
    if configured is not None:
        return Path(configured).absolute()
    for raw in functional_paths:
        path = Path(raw)
        if path.is_dir():
            return path.absolute()
    return None


def check_under_root(tests: Iterable[TestFile], root: Path) -> None:
    """Raise ConfigError for the first functional test outside ``root``."""
    for test in tests:
        if not test.path.is_relative_to(root):
            raise ConfigError.outside_root(str(test.path), str(root))


class FunctionalTestRunner:
    """Runs functional test scripts against the auxiliary services."""

    def __init__(
        self,
        tools: ToolsConfig,
        services: ServicesConfig,
        root: Path,
        registry: PortRegistry,
        output: LineChannel,
        errors: LineChannel,
    ) -> None:
        self._tools = tools
        self._services = services
        self.root = root
        self._registry = registry
        self._output = output
        self._errors = errors
        self._prepared = False

    async def prepare(self) -> None:
        """Run ``pub get`` in the functional root, once per runner.

        Failures are reported on the error channel; the tests still run.
        """
        if self._prepared:
            return
        self._prepared = True
        self._output.publish(f"Fetching dependencies in {self.root}")
        try:
            returncode = await run_command(
                self._tools.pub,
                ["get"],
                cwd=self.root,
                stdout=indented(self._output),
                stderr=indented(self._errors),
                shutdown_timeout=self._services.shutdown_timeout_sec,
            )
        except OSError as e:
            self._errors.publish(f"pub get failed in {self.root}: {e}")
            logger.warning("dependencies_failed", root=str(self.root), error=str(e))
            return
        if returncode != 0:
            self._errors.publish(f"pub get failed in {self.root} (exit code {returncode})")
            logger.warning("dependencies_failed", root=str(self.root), returncode=returncode)

    @asynccontextmanager
    async def run(self, test: TestFile) -> AsyncIterator[list[int]]:
        """Run ``test`` and yield the live instrumentation ports it opened.

        Raises:
            TestSuiteFailed: The script failed or ended without a verdict.
        """
        relative = test.path.relative_to(self.root)
        mark = self._registry.mark()
        self._output.publish("")
        self._output.publish(f"Running functional test {test}")
        self._output.publish(f"{self._tools.pub} run {relative}")
        logger.info("functional_test_started", test=str(test), root=str(self.root))
        try:
            process = await TaskProcess.spawn(
                self._tools.pub,
                ["run", str(relative)],
                cwd=self.root,
                shutdown_timeout=self._services.shutdown_timeout_sec,
            )
        except OSError as e:
            reason = f"could not launch {self._tools.pub}: {e}"
            raise TestSuiteFailed.for_test(str(test), reason) from e

        try:
            await self._verdict(test, process)
            candidates = self._registry.since(mark)
            live = await filter_live_ports(candidates, self._services.probe_timeout_sec)
            logger.info("functional_test_passed", test=str(test), ports=live)
            yield live
        finally:
            await process.kill_group()

    async def _verdict(self, test: TestFile, process: TaskProcess) -> None:
        classifier = LineClassifier.functional_test()
        async with aclosing(process.lines("stdout", "stderr")) as stream:
            async for source, line in stream:
                channel = self._errors if source == "stderr" else self._output
                channel.publish(f"    {line}")
                signal = classifier.classify(line)
                if signal is None:
                    continue
                if signal.is_failure:
                    raise TestSuiteFailed.for_test(str(test), signal.event.value)
                if signal.event is LineEvent.TESTS_PASSED:
                    return
        raise TestSuiteFailed.for_test(str(test), "output ended without a test result")

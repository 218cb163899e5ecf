"""Single-test runner.

Runs one unit test file under instrumentation and exposes the port of its
live VM service while the caller harvests coverage::

    async with runner.run(test) as port:
        await snapshot(port)

Leaving the block kills the test's process group and deletes any generated
HTML harness, whether the test passed, failed, or the harvest raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing, asynccontextmanager
from pathlib import Path

import structlog

from covplane.config.constants import BROWSER_LIBRARY_MARKER
from covplane.config.models import ServicesConfig, ToolsConfig
from covplane.core.errors import TestSuiteFailed
from covplane.coverage.channels import LineChannel
from covplane.coverage.harness import custom_html_for, write_harness
from covplane.coverage.models import TestFile
from covplane.coverage.signals import LineClassifier, LineEvent
from covplane.process import TaskProcess, get_open_port

logger = structlog.get_logger()


def indented(channel: LineChannel) -> Callable[[str], None]:
    """Sink that publishes subprocess lines indented under their heading."""
    return lambda line: channel.publish(f"    {line}")


class TestRunner:
    """Runs unit tests one at a time, VM or browser variant."""

    __test__ = False  # not a pytest class

    def __init__(
        self,
        tools: ToolsConfig,
        services: ServicesConfig,
        output: LineChannel,
        errors: LineChannel,
    ) -> None:
        self._tools = tools
        self._services = services
        self._output = output
        self._errors = errors

    async def is_browser_test(self, test: TestFile) -> bool:
        """Decide whether ``test`` needs a browser.

        A custom HTML page next to the test means yes. Otherwise dart2js
        analyses the test in the Server category; "Library not found" there
        means it imports a browser-only library such as dart:html. dart2js's
        exit code is not reliable for this, so only stdout is checked.
        """
        if custom_html_for(test.path).is_file():
            return True
        try:
            proc = await asyncio.create_subprocess_exec(
                self._tools.dart2js,
                "--analyze-only",
                "--categories=Server",
                f"--package-root={self._tools.package_root}",
                str(test.path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout_bytes, _ = await proc.communicate()
        except OSError as e:
            logger.warning("browser_check_unavailable", test=str(test), error=str(e))
            return False
        return BROWSER_LIBRARY_MARKER in stdout_bytes.decode(errors="replace")

    @asynccontextmanager
    async def run(self, test: TestFile) -> AsyncIterator[int]:
        """Run ``test`` and yield its instrumentation port once it passes.

        Raises:
            TestSuiteFailed: The test failed, could not start its VM service,
                or ended without reporting a result.
        """
        harness: Path | None = None
        process: TaskProcess | None = None
        try:
            if await self.is_browser_test(test):
                harness = write_harness(test.path)
                process = await self._spawn(test, self._tools.content_shell, [str(harness)])
                port = await self._browser_verdict(test, process)
            else:
                chosen = get_open_port()
                process = await self._spawn(
                    test, self._tools.dart, [f"--observe={chosen}", str(test.path)]
                )
                port = await self._vm_verdict(test, process, chosen)
            logger.info("test_passed", test=str(test), port=port)
            yield port
        finally:
            if process is not None:
                await process.kill_group()
            if harness is not None:
                harness.unlink(missing_ok=True)

    async def _spawn(self, test: TestFile, executable: str, args: list[str]) -> TaskProcess:
        self._output.publish("")
        self._output.publish(f"Running test suite {test}")
        self._output.publish(" ".join([executable, *args]))
        logger.info("test_started", test=str(test), executable=executable)
        try:
            return await TaskProcess.spawn(
                executable, args, shutdown_timeout=self._services.shutdown_timeout_sec
            )
        except OSError as e:
            raise TestSuiteFailed.for_test(str(test), f"could not launch {executable}: {e}") from e

    async def _vm_verdict(self, test: TestFile, process: TaskProcess, port: int) -> int:
        process.forward("stderr", indented(self._errors))
        classifier = LineClassifier.vm_test()
        async with aclosing(process.lines("stdout")) as stream:
            async for _, line in stream:
                self._output.publish(f"    {line}")
                signal = classifier.classify(line)
                if signal is None:
                    continue
                if signal.is_failure:
                    raise TestSuiteFailed.for_test(str(test), signal.event.value)
                if signal.event is LineEvent.TESTS_PASSED:
                    return port
        raise TestSuiteFailed.for_test(str(test), "output ended without a test result")

    async def _browser_verdict(self, test: TestFile, process: TaskProcess) -> int:
        # content_shell writes results into the render tree dump on stderr. The
        # port is announced on stderr too, but is sometimes garbled there and
        # repeated correctly on stdout, so both streams are scanned for it.
        classifier = LineClassifier.browser_test()
        port: int | None = None
        async with aclosing(process.lines("stdout", "stderr")) as stream:
            async for source, line in stream:
                self._output.publish(f"    {line}")
                signal = classifier.classify(line)
                if signal is None:
                    continue
                if signal.event is LineEvent.INSPECTION_PORT:
                    port = signal.port
                    continue
                if source != "stderr":
                    continue
                if signal.is_failure:
                    raise TestSuiteFailed.for_test(str(test), signal.event.value)
                if signal.event is LineEvent.TESTS_PASSED:
                    if port is None:
                        raise TestSuiteFailed.for_test(str(test), "no inspection port announced")
                    return port
        raise TestSuiteFailed.for_test(str(test), "output ended without a test result")

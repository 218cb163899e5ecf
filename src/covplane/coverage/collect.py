"""Collection aggregation.

Runs tests one at a time and snapshots coverage from each live port with
``pub run coverage:collect_coverage`` while the test process is still up.
A failing test or a failed snapshot is skipped and reported on the error
channel; the batch always continues.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import structlog

from covplane.config.constants import COLLECTION_DIR
from covplane.config.models import ToolsConfig
from covplane.core.errors import TestSuiteFailed
from covplane.coverage.channels import LineChannel
from covplane.coverage.functional import FunctionalTestRunner
from covplane.coverage.models import TestFile
from covplane.coverage.runner import TestRunner, indented
from covplane.process import run_command

logger = structlog.get_logger()


class CoverageCollector:
    """Writes one collection file per harvested port."""

    def __init__(
        self,
        tools: ToolsConfig,
        output_dir: Path,
        output: LineChannel,
        errors: LineChannel,
        *,
        shutdown_timeout: float = 5.0,
    ) -> None:
        self._tools = tools
        self.collection_dir = output_dir / COLLECTION_DIR
        self._output = output
        self._errors = errors
        self._shutdown_timeout = shutdown_timeout

    async def snapshot(self, port: int, destination: Path) -> bool:
        """Collect coverage from ``port`` into ``destination``.

        Returns:
            True if the tool exited cleanly and wrote the file.
        """
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.unlink(missing_ok=True)
        args = ["run", "coverage:collect_coverage", f"--port={port}", "-o", str(destination)]
        self._output.publish(" ".join([self._tools.pub, *args]))
        try:
            returncode = await run_command(
                self._tools.pub,
                args,
                stdout=indented(self._output),
                stderr=indented(self._errors),
                shutdown_timeout=self._shutdown_timeout,
            )
        except OSError as e:
            logger.warning("snapshot_failed", port=port, error=str(e))
            return False
        if returncode != 0 or not destination.is_file():
            logger.warning("snapshot_failed", port=port, returncode=returncode)
            return False
        logger.debug("snapshot_written", port=port, destination=str(destination))
        return True

    async def collect_unit(self, tests: Sequence[TestFile], runner: TestRunner) -> list[Path]:
        """Run each unit test and snapshot it. Returns the files written, in order."""
        collected: list[Path] = []
        for index, test in enumerate(tests):
            destination = self.collection_dir / f"{test.collection_name(index)}.json"
            try:
                async with runner.run(test) as port:
                    written = await self.snapshot(port, destination)
            except TestSuiteFailed as e:
                self._skip_failed(test, e)
                continue
            if written:
                collected.append(destination)
            else:
                self._errors.publish(f"Coverage collection failed: {test}")
        logger.info("unit_collected", tests=len(tests), collections=len(collected))
        return collected

    async def collect_functional(
        self, tests: Sequence[TestFile], runner: FunctionalTestRunner
    ) -> list[Path]:
        """Run each functional test and snapshot every live port it opened."""
        collected: list[Path] = []
        for index, test in enumerate(tests):
            name = test.collection_name(index)
            try:
                async with runner.run(test) as ports:
                    for port_index, port in enumerate(ports):
                        destination = self.collection_dir / f"{name}.{port_index}.json"
                        if await self.snapshot(port, destination):
                            collected.append(destination)
                        else:
                            self._errors.publish(f"Coverage collection failed: {test} ({port})")
            except TestSuiteFailed as e:
                self._skip_failed(test, e)
        logger.info("functional_collected", tests=len(tests), collections=len(collected))
        return collected

    def _skip_failed(self, test: TestFile, error: TestSuiteFailed) -> None:
        self._errors.publish(f"Tests failed: {test}")
        logger.warning("test_skipped", test=str(test), reason=error.details.get("reason"))

"""Coverage run orchestration.

One run moves through these stages::

    check renderer → [functional: pub get → start services → run & collect
    → stop services] → run & collect unit tests → merge → format → [html]

``CoverageTask.start`` schedules the run and returns at once so callers can
subscribe to ``output`` and ``error_output`` while it progresses; ``done``
resolves to the ``CoverageResult``.

Failure policy:

- a failing test is skipped and reported on ``error_output``
- a missing HTML renderer is raised from ``done`` before any work starts
- other ``CovPlaneError``s end the run with a failed result
- anything else propagates from ``done``

Services are stopped, test processes killed and both channels closed on every
path out of the run. The transient ``collection/`` directory is removed
whether or not the merge succeeds.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import structlog

from covplane.config.constants import LCOV_FILE, MERGED_FILE
from covplane.config.models import CovPlaneConfig
from covplane.core.errors import ConfigError, CovPlaneError
from covplane.core.logging import clear_run_id, set_run_id
from covplane.coverage.channels import LineChannel
from covplane.coverage.collect import CoverageCollector
from covplane.coverage.format import format_coverage
from covplane.coverage.functional import (
    FunctionalTestRunner,
    check_under_root,
    resolve_functional_root,
)
from covplane.coverage.merge import merge_collections
from covplane.coverage.models import CoverageResult, ResolvedTests
from covplane.coverage.report import check_renderer, generate_html
from covplane.coverage.resolver import resolve_tests
from covplane.coverage.runner import TestRunner
from covplane.coverage.services import AuxiliaryServices, PortRegistry

logger = structlog.get_logger()


class CoverageTask:
    """A single coverage run and its live output."""

    def __init__(self, config: CovPlaneConfig) -> None:
        self.config = config
        self.output = LineChannel("output")
        self.error_output = LineChannel("error")
        self.resolved = ResolvedTests()
        self._done: asyncio.Task[CoverageResult] | None = None

    @classmethod
    def start(cls, config: CovPlaneConfig) -> CoverageTask:
        """Schedule a run on the running event loop."""
        task = cls(config)
        task._done = asyncio.get_running_loop().create_task(task._run())
        return task

    @classmethod
    async def run(cls, config: CovPlaneConfig) -> CoverageResult:
        """Run to completion."""
        return await cls.start(config).done

    @property
    def done(self) -> asyncio.Task[CoverageResult]:
        if self._done is None:
            raise RuntimeError("CoverageTask was not started; use CoverageTask.start()")
        return self._done

    async def _run(self) -> CoverageResult:
        run_id = set_run_id()
        logger.info("coverage_started", run_id=run_id)
        try:
            return await self._execute()
        finally:
            self.output.close()
            self.error_output.close()
            clear_run_id()

    async def _execute(self) -> CoverageResult:
        cov = self.config.coverage
        tools = self.config.tools

        if cov.html:
            check_renderer(tools)

        self.resolved = resolved = resolve_tests(cov.tests, cov.functional_tests)
        logger.info(
            "tests_resolved", unit=len(resolved.unit), functional=len(resolved.functional)
        )

        output_dir = Path(cov.output)
        merged_path = output_dir / MERGED_FILE
        lcov_path = output_dir / LCOV_FILE
        collector = CoverageCollector(
            tools,
            output_dir,
            self.output,
            self.error_output,
            shutdown_timeout=self.config.services.shutdown_timeout_sec,
        )
        merged: Path | None = None
        lcov: Path | None = None

        try:
            try:
                functional = await self._collect_functional(collector)
                unit = await collector.collect_unit(resolved.unit, self._unit_runner())
                merged = merge_collections([*unit, *functional], merged_path)
            finally:
                shutil.rmtree(collector.collection_dir, ignore_errors=True)
            lcov = await format_coverage(
                tools,
                merged,
                lcov_path,
                cov.report_on,
                self.output,
                self.error_output,
                shutdown_timeout=self.config.services.shutdown_timeout_sec,
            )
            report = None
            if cov.html:
                report = await generate_html(
                    tools,
                    lcov,
                    output_dir,
                    self.output,
                    self.error_output,
                    shutdown_timeout=self.config.services.shutdown_timeout_sec,
                )
        except CovPlaneError as e:
            self.error_output.publish(e.message)
            logger.error("coverage_failed", error=e.error_name, message=e.message)
            return CoverageResult.fail(resolved, merged, lcov, errors=(e.message,))

        logger.info("coverage_finished", collection=str(merged), lcov=str(lcov))
        return CoverageResult.success(resolved, merged, lcov, report=report)

    def _unit_runner(self) -> TestRunner:
        return TestRunner(
            self.config.tools, self.config.services, self.output, self.error_output
        )

    async def _collect_functional(self, collector: CoverageCollector) -> list[Path]:
        tests = self.resolved.functional
        if not tests:
            return []

        cov = self.config.coverage
        root = resolve_functional_root(cov.functional_root, cov.functional_tests)
        if root is None:
            raise ConfigError.invalid_value(
                "coverage.functional_root", None, "no functional test directory to run from"
            )
        check_under_root(tests, root)

        registry = PortRegistry()
        runner = FunctionalTestRunner(
            self.config.tools,
            self.config.services,
            root,
            registry,
            self.output,
            self.error_output,
        )
        await runner.prepare()

        services = AuxiliaryServices(
            self.config.tools,
            self.config.services,
            root,
            registry,
            self.output,
            self.error_output,
        )
        async with services.running_services():
            return await collector.collect_functional(tests, runner)

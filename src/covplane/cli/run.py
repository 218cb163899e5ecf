"""covplane run command - collect coverage for a set of tests."""

import asyncio
import os
from pathlib import Path
from typing import Any

import click

from covplane.config.loader import load_config
from covplane.config.models import CovPlaneConfig
from covplane.core.errors import ConfigError, CovPlaneError
from covplane.core.logging import configure_logging, get_log_file_path
from covplane.core.progress import echo_line, pluralize, status
from covplane.coverage.channels import LineChannel
from covplane.coverage.models import CoverageResult
from covplane.coverage.task import CoverageTask


async def _echo_channel(channel: LineChannel, *, error: bool) -> None:
    async for line in channel:
        echo_line(line, error=error)


async def _run_streaming(config: CovPlaneConfig) -> CoverageResult:
    """Run a coverage task, printing both channels as lines arrive."""
    task = CoverageTask.start(config)
    printers = [
        asyncio.create_task(_echo_channel(task.output, error=False)),
        asyncio.create_task(_echo_channel(task.error_output, error=True)),
    ]
    try:
        return await task.done
    finally:
        await asyncio.gather(*printers)


def _from_cwd(paths: tuple[str, ...]) -> list[str]:
    return [str(Path(p).absolute()) for p in paths]


def _overrides(
    tests: tuple[str, ...],
    functional_tests: tuple[str, ...],
    html: bool | None,
    output: str | None,
    report_on: tuple[str, ...],
) -> dict[str, Any]:
    coverage: dict[str, Any] = {}
    if tests:
        coverage["tests"] = _from_cwd(tests)
    if functional_tests:
        coverage["functional_tests"] = _from_cwd(functional_tests)
    if html is not None:
        coverage["html"] = html
    if output is not None:
        coverage["output"] = str(Path(output).absolute())
    if report_on:
        coverage["report_on"] = list(report_on)
    return {"coverage": coverage} if coverage else {}


def _print_result(result: CoverageResult) -> None:
    tests = pluralize(len(result.tests), "unit test")
    functional = pluralize(len(result.functional_tests), "functional test")
    status(f"Ran {tests} and {functional}")
    if result.collection is not None:
        status(f"Coverage collection: {result.collection}")
    if result.lcov is not None:
        status(f"LCOV report: {result.lcov}")
    if result.report_index is not None:
        status(f"HTML report: {result.report_index}")
    if result.succeeded:
        status("Coverage complete", style="success")
    else:
        for error in result.errors:
            status(error, style="error")
        log_file = get_log_file_path()
        if log_file:
            status(f"See {log_file} for details")


@click.command()
@click.argument("tests", nargs=-1)
@click.option(
    "--functional",
    "functional_tests",
    multiple=True,
    help="Functional test file or directory (repeatable)",
)
@click.option("--html/--no-html", default=None, help="Render an HTML report with genhtml")
@click.option("--output", "-o", default=None, help="Output directory")
@click.option("--report-on", multiple=True, help="Source prefix to report on (repeatable)")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help=(
        "Project root holding covplane.yaml (default: current directory). "
        "Paths in covplane.yaml are relative to it; paths on the command line "
        "are relative to the current directory."
    ),
)
@click.pass_context
def run_command(
    ctx: click.Context,
    tests: tuple[str, ...],
    functional_tests: tuple[str, ...],
    html: bool | None,
    output: str | None,
    report_on: tuple[str, ...],
    project: Path | None,
) -> None:
    """Run tests under instrumentation and collect coverage.

    TESTS are test files or directories searched for *_test.dart. Options
    not given fall back to covplane.yaml, then to built-in defaults.
    """
    project_root = (project or Path.cwd()).resolve()
    try:
        config = load_config(
            project_root, **_overrides(tests, functional_tests, html, output, report_on)
        )
    except ConfigError as e:
        raise click.ClickException(e.message) from e

    if not (ctx.obj or {}).get("verbose"):
        configure_logging(config=config.logging)

    # Paths from covplane.yaml are relative to the project root.
    os.chdir(project_root)

    try:
        result = asyncio.run(_run_streaming(config))
    except KeyboardInterrupt:
        click.echo("\nStopped")
        ctx.exit(130)
    except CovPlaneError as e:
        status(e.message, style="error")
        ctx.exit(1)

    _print_result(result)
    if not result.succeeded:
        ctx.exit(1)

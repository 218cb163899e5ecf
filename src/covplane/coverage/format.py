"""LCOV formatting of merged coverage."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import structlog

from covplane.config.models import ToolsConfig
from covplane.core.errors import FormattingFailed
from covplane.coverage.channels import LineChannel
from covplane.coverage.lcov import LcovParseError, parse_lcov, text_summary
from covplane.coverage.runner import indented
from covplane.process import run_command

logger = structlog.get_logger()


async def format_coverage(
    tools: ToolsConfig,
    collection: Path,
    lcov: Path,
    report_on: Sequence[str],
    output: LineChannel,
    errors: LineChannel,
    *,
    shutdown_timeout: float = 5.0,
) -> Path:
    """Convert merged coverage JSON to LCOV with ``format_coverage``.

    Only sources under the ``report_on`` prefixes are kept. The tool's exit
    code is not trusted; success means ``lcov`` exists afterwards.

    Raises:
        FormattingFailed: ``lcov`` was not written.
    """
    lcov.unlink(missing_ok=True)
    args = [
        "run",
        "coverage:format_coverage",
        "-l",
        f"--package-root={tools.package_root}",
        "-i",
        str(collection),
        "-o",
        str(lcov),
        "--verbose",
        *(f"--report-on={prefix}" for prefix in report_on),
    ]
    output.publish("")
    output.publish(" ".join([tools.pub, *args]))
    try:
        returncode = await run_command(
            tools.pub,
            args,
            stdout=indented(output),
            stderr=indented(errors),
            shutdown_timeout=shutdown_timeout,
        )
    except OSError as e:
        logger.error("format_failed", error=str(e))
        raise FormattingFailed.missing_output(str(lcov)) from e

    if not lcov.is_file():
        logger.error("format_failed", returncode=returncode, lcov=str(lcov))
        raise FormattingFailed.missing_output(str(lcov))

    output.publish(f"Coverage formatted to LCOV: {lcov}")
    try:
        summary = text_summary(parse_lcov(lcov))
    except LcovParseError as e:
        logger.warning("lcov_summary_failed", error=str(e))
    else:
        output.publish(summary)
        logger.info("coverage_formatted", lcov=str(lcov), summary=summary)
    return lcov

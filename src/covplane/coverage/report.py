"""HTML report rendering with genhtml."""

from __future__ import annotations

from pathlib import Path

import structlog

from covplane.config.models import ToolsConfig
from covplane.core.errors import MissingRenderer
from covplane.coverage.channels import LineChannel
from covplane.coverage.runner import indented
from covplane.process import is_executable_installed, run_command

logger = structlog.get_logger()


def check_renderer(tools: ToolsConfig) -> None:
    """Raise MissingRenderer unless genhtml is on PATH."""
    if not is_executable_installed(tools.genhtml):
        raise MissingRenderer.for_executable(tools.genhtml)


async def generate_html(
    tools: ToolsConfig,
    lcov: Path,
    output_dir: Path,
    output: LineChannel,
    errors: LineChannel,
    *,
    shutdown_timeout: float = 5.0,
) -> Path:
    """Render ``lcov`` into ``output_dir`` and return the directory.

    genhtml's own result is not checked.
    """
    args = ["-o", str(output_dir), str(lcov)]
    output.publish("")
    output.publish(" ".join([tools.genhtml, *args]))
    try:
        returncode = await run_command(
            tools.genhtml,
            args,
            stdout=indented(output),
            stderr=indented(errors),
            shutdown_timeout=shutdown_timeout,
        )
    except OSError as e:
        raise MissingRenderer.for_executable(tools.genhtml) from e
    logger.info("html_generated", output=str(output_dir), returncode=returncode)
    return output_dir

"""covplane CLI - covplane command."""

import click

from covplane.cli.run import run_command
from covplane.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="covplane")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """covplane - Coverage collection for Dart test suites."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(run_command, name="run")


if __name__ == "__main__":
    cli()

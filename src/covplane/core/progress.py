"""User-facing console output for CLI operations.

Usage::

    from covplane.core.progress import status, echo_line

    status("Formatting coverage")
    status("Coverage formatted", style="success")  # ✓ Coverage formatted
    status("Tests failed: test/a_test.dart", style="error")  # ✗ ...

    echo_line("    00:01 +3: All tests passed!")
    echo_line("    Unhandled exception", error=True)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}


def _get_logger() -> BoundLogger:
    """Get logger lazily to respect runtime config."""
    from covplane.core.logging import get_logger

    return get_logger("progress")


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message to stderr."""
    prefix = _STYLES.get(style, "")
    padding = " " * indent
    _console.print(f"{padding}{prefix}{message}", highlight=False)

    _get_logger().debug("status", message=message, style=style)


def echo_line(line: str, *, error: bool = False) -> None:
    """Print one raw line from a subprocess channel.

    Lines are printed without markup so brackets in tool output survive.
    """
    _console.print(line, style="red" if error else None, markup=False, highlight=False)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Return grammatically correct singular/plural form.

    Args:
        count: The number of items
        singular: Singular form (e.g., "file")
        plural: Plural form (default: singular + "s")

    Returns:
        Formatted string like "1 file" or "3 files"
    """
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"


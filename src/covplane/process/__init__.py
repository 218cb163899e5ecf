"""Subprocess supervision primitives."""

from covplane.process.ports import get_open_port
from covplane.process.supervisor import Source, TaskProcess, run_command
from covplane.process.tools import is_executable_installed

__all__ = [
    "Source",
    "TaskProcess",
    "get_open_port",
    "is_executable_installed",
    "run_command",
]

"""External tool lookup."""

import shutil


def is_executable_installed(executable: str) -> bool:
    """True when ``executable`` resolves on PATH (or is an executable path)."""
    return shutil.which(executable) is not None

"""Core module exports."""

from covplane.core.errors import (
    ConfigError,
    CovPlaneError,
    EmptyMergeInput,
    ErrorCode,
    FormattingFailed,
    InternalError,
    MissingRenderer,
    PortBoundError,
    TestSuiteFailed,
)
from covplane.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from covplane.core.progress import echo_line, pluralize, status

__all__ = [
    # Errors
    "ConfigError",
    "CovPlaneError",
    "EmptyMergeInput",
    "ErrorCode",
    "FormattingFailed",
    "InternalError",
    "MissingRenderer",
    "PortBoundError",
    "TestSuiteFailed",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Console
    "echo_line",
    "pluralize",
    "status",
]

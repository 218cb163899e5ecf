"""covplane error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 6xxx: Auxiliary services
- 7xxx: Test runs and coverage artifacts
- 9xxx: Internal

Only TestSuiteFailed is recovered locally (the test is skipped). Everything
else ends the run.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_PATH_OUTSIDE_ROOT = 2005

    # Services (6xxx)
    SERVICE_PORT_BOUND = 6001

    # Test / coverage (7xxx)
    TEST_SUITE_FAILED = 7001
    COVERAGE_EMPTY_MERGE = 7101
    COVERAGE_FORMAT_FAILED = 7102
    COVERAGE_RENDERER_MISSING = 7103

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class CovPlaneError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'TEST_SUITE_FAILED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CovPlaneError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def outside_root(cls, path: str, root: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PATH_OUTSIDE_ROOT,
            message=f"Functional test {path} is not inside the functional root {root}",
            details={"path": path, "root": root},
        )


class PortBoundError(CovPlaneError):
    """An auxiliary service could not bind its port or failed to start."""

    @classmethod
    def service(cls, service: str, reason: str) -> "PortBoundError":
        return cls(
            code=ErrorCode.SERVICE_PORT_BOUND,
            message=f"{service} failed to start: {reason}",
            details={"service": service, "reason": reason},
        )


class TestSuiteFailed(CovPlaneError):
    """A single test reported failure or never started instrumentation."""

    __test__ = False  # not a pytest class

    @classmethod
    def for_test(cls, path: str, reason: str) -> "TestSuiteFailed":
        return cls(
            code=ErrorCode.TEST_SUITE_FAILED,
            message=f"Tests failed: {path} ({reason})",
            details={"path": path, "reason": reason},
        )


class EmptyMergeInput(CovPlaneError):
    """No test produced a usable coverage collection."""

    @classmethod
    def create(cls) -> "EmptyMergeInput":
        return cls(
            code=ErrorCode.COVERAGE_EMPTY_MERGE,
            message="Cannot merge an empty list of coverages.",
        )


class FormattingFailed(CovPlaneError):
    """The LCOV formatter did not produce its output file."""

    @classmethod
    def missing_output(cls, path: str) -> "FormattingFailed":
        return cls(
            code=ErrorCode.COVERAGE_FORMAT_FAILED,
            message=f"Coverage formatting failed. Could not generate {path}",
            details={"path": path},
        )


class MissingRenderer(CovPlaneError):
    """HTML output was requested but the renderer is not installed."""

    @classmethod
    def for_executable(cls, executable: str) -> "MissingRenderer":
        return cls(
            code=ErrorCode.COVERAGE_RENDERER_MISSING,
            message=f"{executable} is required to generate an HTML report. "
            "Install lcov or run without --html.",
            details={"executable": executable},
        )


class InternalError(CovPlaneError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )

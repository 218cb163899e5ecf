"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config() (the CLI passes its options this way)
2. Environment variables (COVPLANE__SECTION__KEY)
3. Project YAML (covplane.yaml)
4. Built-in defaults (this file)

Environment Variable Format:
    COVPLANE__<SECTION>__<KEY>=<VALUE>

Examples:
    COVPLANE__LOGGING__LEVEL=DEBUG
    COVPLANE__COVERAGE__HTML=false
    COVPLANE__TOOLS__DART=/opt/dart-sdk/bin/dart
    COVPLANE__SERVICES__SERVE_PORT=8081
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from covplane.config.constants import PORT_MAX, PORT_MIN

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        COVPLANE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. Subprocess output is shown separately, "
        "so the log stays quiet unless something goes wrong.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class CoverageConfig(BaseModel):
    """What to run and where to put the artifacts.

    Env vars:
        COVPLANE__COVERAGE__HTML: Generate the genhtml report
        COVPLANE__COVERAGE__OUTPUT: Output directory
    """

    tests: list[str] = Field(
        default_factory=lambda: ["test/"],
        description="Unit test files or directories. Directories are searched for *_test.dart.",
    )
    functional_tests: list[str] = Field(
        default_factory=list,
        description="Functional test files or directories, run against pub serve + selenium.",
    )
    functional_root: str | None = Field(
        default=None,
        description="Package directory the functional tests run from. "
        "Defaults to the first functional test path that is a directory.",
    )
    html: bool = Field(
        default=True,
        description="Render an HTML report with genhtml. Requires lcov to be installed.",
    )
    output: str = Field(
        default="coverage/",
        description="Directory for coverage.json, coverage.lcov and the HTML report.",
    )
    report_on: list[str] = Field(
        default_factory=lambda: ["lib/"],
        description="Path prefixes to report on. Each becomes one --report-on argument.",
    )


class ToolsConfig(BaseModel):
    """External executables. Bare names are resolved on PATH.

    Env vars:
        COVPLANE__TOOLS__DART, COVPLANE__TOOLS__PUB, ...
    """

    dart: str = "dart"
    pub: str = "pub"
    dart2js: str = "dart2js"
    content_shell: str = "content_shell"
    genhtml: str = "genhtml"
    selenium_server: str = "selenium-server"
    package_root: str = Field(
        default="packages",
        description="Package root passed to dart2js and format_coverage.",
    )


class ServicesConfig(BaseModel):
    """Auxiliary services and probe timings.

    Env vars:
        COVPLANE__SERVICES__SERVE_PORT: Port for pub serve
        COVPLANE__SERVICES__STARTUP_TIMEOUT_SEC: Max wait for both services
    """

    serve_port: int = Field(
        default=8080,
        description="Port pub serve binds. Must be free before functional tests start.",
    )
    startup_timeout_sec: float = Field(
        default=120.0,
        description="Max wait for pub serve and selenium-server to report readiness.",
    )
    shutdown_timeout_sec: float = Field(
        default=5.0,
        description="Grace period after SIGTERM before a process group is SIGKILLed.",
    )
    probe_timeout_sec: float = Field(
        default=5.0,
        description="Timeout for one getVM probe against an instrumentation port.",
    )

    @field_validator("serve_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (PORT_MIN <= v <= PORT_MAX):
            raise ValueError(f"Port must be {PORT_MIN}-{PORT_MAX}, got {v}")
        return v


class CovPlaneConfig(BaseModel):
    """Root configuration for covplane."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    coverage: CoverageConfig = Field(default_factory=CoverageConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    services: ServicesConfig = Field(default_factory=ServicesConfig)

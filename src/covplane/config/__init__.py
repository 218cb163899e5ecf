"""Config module exports."""

from covplane.config.loader import load_config
from covplane.config.models import (
    CoverageConfig,
    CovPlaneConfig,
    LoggingConfig,
    ServicesConfig,
    ToolsConfig,
)

__all__ = [
    "load_config",
    "CovPlaneConfig",
    "CoverageConfig",
    "LoggingConfig",
    "ServicesConfig",
    "ToolsConfig",
]

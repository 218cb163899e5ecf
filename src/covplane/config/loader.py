"""Configuration loading with pydantic-settings.

Sources, highest precedence first:
1. Direct kwargs (the CLI passes its explicit options here)
2. Environment variables (COVPLANE__SECTION__KEY)
3. Project config (covplane.yaml in the project root)
4. Built-in defaults

Sources are deep-merged, so ``load_config(coverage={"html": False})`` only
overrides that one key and keeps the rest of the coverage section.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from covplane.config.models import (
    CoverageConfig,
    CovPlaneConfig,
    LoggingConfig,
    ServicesConfig,
    ToolsConfig,
)
from covplane.core.errors import ConfigError

CONFIG_FILE_NAME = "covplane.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class bound to one YAML document."""

    class CovPlaneSettings(BaseSettings):
        """Root config. Env vars: COVPLANE__COVERAGE__HTML, COVPLANE__TOOLS__PUB, etc."""

        model_config = SettingsConfigDict(
            env_prefix="COVPLANE__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        coverage: CoverageConfig = CoverageConfig()
        tools: ToolsConfig = ToolsConfig()
        services: ServicesConfig = ServicesConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml file
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return CovPlaneSettings


def load_config(project_root: Path | None = None, **kwargs: Any) -> CovPlaneConfig:
    """Load config: defaults < covplane.yaml < env vars < kwargs.

    Args:
        project_root: Directory holding covplane.yaml.
                      Defaults to current working directory.
        **kwargs: Per-section override dicts (highest precedence).

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    project_root = project_root or Path.cwd()
    yaml_config = _load_yaml(project_root / CONFIG_FILE_NAME)

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return CovPlaneConfig.model_validate(settings.model_dump())

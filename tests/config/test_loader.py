"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- load_config() precedence: kwargs > env > covplane.yaml > defaults
- validation failures mapped to ConfigError
"""

from __future__ import annotations

from pathlib import Path

import pytest

from covplane.config.loader import CONFIG_FILE_NAME, _load_yaml, load_config
from covplane.core.errors import ConfigError, ErrorCode


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("coverage:\n  html: false\n")

        assert _load_yaml(yaml_file) == {"coverage": {"html": False}}

    def test_returns_empty_for_empty_file(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert _load_yaml(yaml_file) == {}

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("coverage:\n  tests:\n    - [unclosed")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_raises_config_error_for_non_mapping(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            _load_yaml(yaml_file)


class TestLoadConfig:
    """Tests for load_config precedence."""

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("COVPLANE__COVERAGE__HTML", raising=False)
        monkeypatch.delenv("COVPLANE__COVERAGE__OUTPUT", raising=False)
        monkeypatch.delenv("COVPLANE__SERVICES__SERVE_PORT", raising=False)

    def test_given_no_sources_when_load_then_defaults(self, tmp_path: Path) -> None:
        # When
        config = load_config(tmp_path)

        # Then
        assert config.coverage.tests == ["test/"]
        assert config.coverage.html is True
        assert config.coverage.output == "coverage/"
        assert config.coverage.report_on == ["lib/"]
        assert config.tools.pub == "pub"
        assert config.services.serve_port == 8080

    def test_given_yaml_when_load_then_yaml_applies(self, tmp_path: Path) -> None:
        # Given
        (tmp_path / CONFIG_FILE_NAME).write_text(
            "coverage:\n  html: false\n  report_on: [lib/src/]\ntools:\n  dart: /opt/dart\n"
        )

        # When
        config = load_config(tmp_path)

        # Then
        assert config.coverage.html is False
        assert config.coverage.report_on == ["lib/src/"]
        assert config.tools.dart == "/opt/dart"
        assert config.tools.pub == "pub"

    def test_given_env_and_yaml_when_load_then_env_wins(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Given
        (tmp_path / CONFIG_FILE_NAME).write_text("coverage:\n  output: from-yaml/\n")
        monkeypatch.setenv("COVPLANE__COVERAGE__OUTPUT", "from-env/")

        # When
        config = load_config(tmp_path)

        # Then
        assert config.coverage.output == "from-env/"

    def test_given_kwargs_and_env_when_load_then_kwargs_win_per_key(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Given
        (tmp_path / CONFIG_FILE_NAME).write_text("coverage:\n  report_on: [lib/a/]\n")
        monkeypatch.setenv("COVPLANE__COVERAGE__HTML", "true")

        # When
        config = load_config(tmp_path, coverage={"html": False})

        # Then
        assert config.coverage.html is False
        assert config.coverage.report_on == ["lib/a/"]

    def test_given_invalid_port_when_load_then_config_error(self, tmp_path: Path) -> None:
        # Given
        (tmp_path / CONFIG_FILE_NAME).write_text("services:\n  serve_port: 70000\n")

        # When / Then
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert "serve_port" in exc_info.value.details["field"]

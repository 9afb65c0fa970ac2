"""Unit tests for depmigrate.config."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from packaging.version import Version

from depmigrate.config import (
    DepMigrateConfig,
    _parse_section,
    _pyproject_has_depmigrate_section,
    _read_toml,
    discover_config_file,
    load_config,
)
from depmigrate.exceptions import ConfigError


@pytest.mark.unit
class TestDepMigrateConfig:
    """Tests for DepMigrateConfig dataclass."""

    def test_default_initialization(self) -> None:
        """Test DepMigrateConfig initializes with correct defaults."""
        config = DepMigrateConfig()

        assert config.hosted_url == "https://pub.dev"
        assert config.cache_dir == "~/.cache/depmigrate"
        assert config.concurrent_limit == 10
        assert config.timeout == 30
        assert config.source_path is None

    def test_builtin_null_safety(self) -> None:
        feature = DepMigrateConfig().get_feature("null-safety")

        assert feature.min_language_version == Version("2.12")
        assert feature.guide_url

    def test_unknown_feature(self) -> None:
        with pytest.raises(ConfigError, match="Unknown language feature 'records'") as exc_info:
            DepMigrateConfig().get_feature("records")

        assert "null-safety" in exc_info.value.message
        assert exc_info.value.exit_code == 64

    def test_instances_do_not_share_features(self) -> None:
        first = DepMigrateConfig()
        first.features.clear()

        assert "null-safety" in DepMigrateConfig().features

    def test_to_log_dict(self) -> None:
        """Test to_log_dict omits metadata."""
        result = DepMigrateConfig(source_path=Path("/test/path.toml")).to_log_dict()

        assert result["features"] == ["null-safety"]
        assert "source_path" not in result


@pytest.mark.unit
class TestDiscoverConfigFile:
    """Tests for discover_config_file function."""

    def test_explicit_path_priority(self, tmp_path: Path) -> None:
        """Test explicit path is used when provided and exists."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text("[depmigrate]\n", encoding="utf-8")
        (tmp_path / "depmigrate.toml").write_text("[depmigrate]\n", encoding="utf-8")

        with patch("depmigrate.config.Path.cwd", return_value=tmp_path):
            result = discover_config_file(config_file)

        assert result == config_file.resolve()

    def test_explicit_path_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            discover_config_file(tmp_path / "missing.toml")

    def test_depmigrate_toml_before_pyproject(self, tmp_path: Path) -> None:
        (tmp_path / "depmigrate.toml").write_text("[depmigrate]\n", encoding="utf-8")
        (tmp_path / "pyproject.toml").write_text("[tool.depmigrate]\n", encoding="utf-8")

        with patch("depmigrate.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() == tmp_path / "depmigrate.toml"

    def test_pyproject_with_section(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(
            "[tool.depmigrate]\ntimeout = 5\n", encoding="utf-8"
        )

        with patch("depmigrate.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() == tmp_path / "pyproject.toml"

    def test_pyproject_without_section_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text("[tool.other]\nx = 1\n", encoding="utf-8")

        with patch("depmigrate.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() is None

    def test_invalid_pyproject_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "pyproject.toml"
        path.write_text("[tool.depmigrate\n", encoding="utf-8")

        assert _pyproject_has_depmigrate_section(path) is False


@pytest.mark.unit
class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self, tmp_path: Path) -> None:
        with patch("depmigrate.config.Path.cwd", return_value=tmp_path):
            config = load_config()

        assert config == DepMigrateConfig()

    def test_depmigrate_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "depmigrate.toml"
        path.write_text(
            "[depmigrate]\n"
            'hosted_url = "https://pub.example.com/"\n'
            'cache_dir = "/var/cache/dm"\n'
            "concurrent_limit = 4\n"
            "timeout = 12\n"
            "\n[depmigrate.features]\n"
            'records = "3.0"\n',
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.hosted_url == "https://pub.example.com"
        assert config.cache_dir == "/var/cache/dm"
        assert config.concurrent_limit == 4
        assert config.timeout == 12
        assert config.get_feature("records").min_language_version == Version("3.0")
        assert "null-safety" in config.features
        assert config.source_path == path.resolve()

    def test_pyproject_section(self, tmp_path: Path) -> None:
        path = tmp_path / "pyproject.toml"
        path.write_text("[tool.depmigrate]\ntimeout = 5\n", encoding="utf-8")

        assert load_config(path).timeout == 5

    def test_empty_section_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "depmigrate.toml"
        path.write_text("[other]\n", encoding="utf-8")

        config = load_config(path)

        assert config.timeout == 30
        assert config.source_path == path.resolve()

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "depmigrate.toml"
        path.write_text("[depmigrate\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            _read_toml(path)


@pytest.mark.unit
class TestParseSection:
    """Tests for _parse_section validation."""

    def test_unknown_keys(self) -> None:
        with pytest.raises(ConfigError, match="Unknown configuration keys: bogus"):
            _parse_section({"bogus": 1}, config_path="x.toml")

    @pytest.mark.parametrize(
        "section, option",
        [
            ({"hosted_url": 3}, "hosted_url"),
            ({"cache_dir": "  "}, "cache_dir"),
            ({"timeout": 0}, "timeout"),
            ({"concurrent_limit": True}, "concurrent_limit"),
            ({"timeout": "10"}, "timeout"),
            ({"features": ["null-safety"]}, "features"),
            ({"features": {"records": "three"}}, "features.records"),
        ],
        ids=[
            "url-not-string",
            "blank-cache-dir",
            "zero-timeout",
            "bool-limit",
            "string-timeout",
            "features-not-table",
            "bad-feature-version",
        ],
    )
    def test_invalid_values(self, section, option: str) -> None:
        with pytest.raises(ConfigError) as exc_info:
            _parse_section(section, config_path="x.toml")

        assert exc_info.value.option == option

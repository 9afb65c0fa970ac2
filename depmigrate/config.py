"""Configuration file loader for depmigrate.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``depmigrate.toml``: settings under ``[depmigrate]`` table
- ``pyproject.toml``: settings under ``[tool.depmigrate]`` table

Discovery order:

1. Explicit path from ``--config`` or ``DEPMIGRATE_CONFIG``
2. ``depmigrate.toml`` in current directory
3. ``pyproject.toml`` with ``[tool.depmigrate]`` section

Configuration precedence: defaults < config file < environment < CLI args.

Example (``depmigrate.toml``)::

    [depmigrate]
    hosted_url = "https://pub.example.com"
    concurrent_limit = 8

    [depmigrate.features]
    records = "3.0"
"""

from __future__ import annotations

import tomli as tomllib
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from packaging.version import InvalidVersion, Version

from depmigrate.exceptions import ConfigError
from depmigrate.utils.logger import get_logger
from depmigrate.models.capability import LanguageFeature, builtin_features
from depmigrate.constants import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CONCURRENT_LIMIT,
    DEFAULT_HOSTED_URL,
    DEFAULT_TIMEOUT,
)

logger = get_logger("config")

_STRING_OPTIONS = ("hosted_url", "cache_dir")
_POSITIVE_INT_OPTIONS = ("concurrent_limit", "timeout")
_KNOWN_OPTIONS = frozenset((*_STRING_OPTIONS, *_POSITIVE_INT_OPTIONS, "features"))


@dataclass
class DepMigrateConfig:
    """Parsed and validated depmigrate configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        hosted_url: Base url of the hosted package registry.
        cache_dir: Directory of the on-disk registry cache.
        concurrent_limit: Maximum registry requests in flight.
        timeout: Network timeout in seconds.
        features: Known language features by name (built-ins plus the
            ``[features]`` table).
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    hosted_url: str = DEFAULT_HOSTED_URL
    cache_dir: str = DEFAULT_CACHE_DIR
    concurrent_limit: int = DEFAULT_CONCURRENT_LIMIT
    timeout: int = DEFAULT_TIMEOUT
    features: Dict[str, LanguageFeature] = field(default_factory=builtin_features)

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def get_feature(self, name: str) -> LanguageFeature:
        """Look up a configured feature by name.

        Raises:
            ConfigError: The feature is unknown.
        """
        try:
            return self.features[name]
        except KeyError:
            known = ", ".join(sorted(self.features)) or "<none>"
            raise ConfigError(
                f"Unknown language feature '{name}' (known: {known})",
                config_path=str(self.source_path) if self.source_path else None,
                option="features",
            ) from None

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging."""
        return {
            "hosted_url": self.hosted_url,
            "cache_dir": self.cache_dir,
            "concurrent_limit": self.concurrent_limit,
            "timeout": self.timeout,
            "features": sorted(self.features),
        }


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    depmigrate_toml = cwd / "depmigrate.toml"
    if depmigrate_toml.is_file():
        logger.debug("Found depmigrate.toml: %s", depmigrate_toml)
        return depmigrate_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.is_file() and _pyproject_has_depmigrate_section(pyproject_toml):
        logger.debug("Found [tool.depmigrate] in pyproject.toml: %s", pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found")
    return None


def _pyproject_has_depmigrate_section(path: Path) -> bool:
    """Check if pyproject.toml contains a [tool.depmigrate] section.

    A pyproject.toml that cannot be read is not ours to report on, so
    read errors count as "no section".
    """
    try:
        raw = _read_toml(path)
    except ConfigError:
        return False
    return "depmigrate" in raw.get("tool", {})


def load_config(config_path: Optional[Path] = None) -> DepMigrateConfig:
    """Load and validate depmigrate configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        Validated :class:`DepMigrateConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return DepMigrateConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == "pyproject.toml":
        section = raw.get("tool", {}).get("depmigrate", {})
    else:
        section = raw.get("depmigrate", {})

    if not section:
        logger.debug("Config file found but no depmigrate section, using defaults")
        return DepMigrateConfig(source_path=resolved)

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> DepMigrateConfig:
    """Validate a ``[depmigrate]`` / ``[tool.depmigrate]`` table.

    Raises:
        ConfigError: Unknown keys or values of the wrong type.
    """
    config = DepMigrateConfig()

    unknown = set(section.keys()) - _KNOWN_OPTIONS
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=config_path,
        )

    for option in _STRING_OPTIONS:
        if option in section:
            value = section[option]
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(
                    f"{option} must be a non-empty string, got {type(value).__name__}",
                    config_path=config_path,
                    option=option,
                )
            setattr(config, option, value.strip())

    for option in _POSITIVE_INT_OPTIONS:
        if option in section:
            value = section[option]
            # bool is an int subclass; reject it explicitly
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(
                    f"{option} must be a positive integer, got {value!r}",
                    config_path=config_path,
                    option=option,
                )
            setattr(config, option, value)

    if "features" in section:
        config.features.update(
            _parse_features(section["features"], config_path=config_path)
        )

    config.hosted_url = config.hosted_url.rstrip("/")
    return config


def _parse_features(
    table: Any,
    *,
    config_path: str,
) -> Dict[str, LanguageFeature]:
    """Parse ``[features]``: feature name -> minimum language version."""
    if not isinstance(table, dict):
        raise ConfigError(
            f"features must be a table, got {type(table).__name__}",
            config_path=config_path,
            option="features",
        )

    features: Dict[str, LanguageFeature] = {}
    for name, min_version in table.items():
        try:
            features[name] = LanguageFeature(name, Version(str(min_version)))
        except InvalidVersion as exc:
            raise ConfigError(
                f"features.{name} must be a language version like '2.12', "
                f"got {min_version!r}",
                config_path=config_path,
                option=f"features.{name}",
            ) from exc
    return features

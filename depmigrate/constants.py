"""
Centralized constants for depmigrate.

This module defines immutable configuration values used across depmigrate,
including registry settings, manifest layout, exit codes, and logging
formats. All values are intended to be treated as read-only.
"""

from typing import Final, Mapping, Sequence

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = "depmigrate/{version} (+https://github.com/depmigrate/depmigrate)"

#: Command prefix used when suggesting a command to the user.
COMMAND_NAME: Final[str] = "depmigrate upgrade"

# ---------------------------------------------------------------------------
# Hosted registry
# ---------------------------------------------------------------------------

#: Default hosted package registry.
DEFAULT_HOSTED_URL: Final[str] = "https://pub.dev"

#: Package listing endpoint, relative to the hosted url.
HOSTED_PACKAGE_API: Final[str] = "{hosted_url}/api/packages/{package}"

#: ``Accept`` header understood by pub-compatible registries.
HOSTED_API_ACCEPT: Final[str] = "application/vnd.pub.v2+json"

#: Default directory for the on-disk registry cache.
DEFAULT_CACHE_DIR: Final[str] = "~/.cache/depmigrate"

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

#: Maximum number of registry fetches in flight at once.
DEFAULT_CONCURRENT_LIMIT: Final[int] = 10

# ---------------------------------------------------------------------------
# Manifest layout
# ---------------------------------------------------------------------------

#: Manifest file name looked up in the working directory.
MANIFEST_FILE_NAME: Final[str] = "pubspec.yaml"

#: Lock file written next to the manifest after acquisition.
LOCK_FILE_NAME: Final[str] = "pubspec.lock"

#: Manifest section holding regular dependencies.
DEPENDENCIES_KEY: Final[str] = "dependencies"

#: Manifest section holding development dependencies.
DEV_DEPENDENCIES_KEY: Final[str] = "dev_dependencies"

#: Manifest section holding dependency overrides.
DEPENDENCY_OVERRIDES_KEY: Final[str] = "dependency_overrides"

#: Keys that mark a non-hosted dependency description.
SOURCE_KEYS: Final[Sequence[str]] = ("hosted", "path", "git", "sdk")

# ---------------------------------------------------------------------------
# Language features
# ---------------------------------------------------------------------------

#: Language version assumed when a package declares no SDK constraint.
DEFAULT_LANGUAGE_VERSION: Final[str] = "2.7"

#: Built-in language features, name -> (minimum language version, guide url).
BUILTIN_FEATURES: Final[Mapping[str, Sequence[str]]] = {
    "null-safety": ("2.12", "https://dart.dev/null-safety/migration-guide"),
}

#: Feature selected by ``--null-safety``.
NULL_SAFETY_FEATURE: Final[str] = "null-safety"

# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

#: Maximum number of package selections before the resolver gives up.
MAX_RESOLUTION_STEPS: Final[int] = 1000

# ---------------------------------------------------------------------------
# Exit codes (sysexits.h)
# ---------------------------------------------------------------------------

EXIT_SUCCESS: Final[int] = 0
EXIT_FAILURE: Final[int] = 1
EXIT_USAGE: Final[int] = 64
EXIT_DATA: Final[int] = 65
EXIT_UNAVAILABLE: Final[int] = 69
EXIT_IO: Final[int] = 74
EXIT_INTERRUPTED: Final[int] = 130

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed file size (in bytes) when reading manifests.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

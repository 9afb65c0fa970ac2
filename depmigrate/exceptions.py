"""
Custom exception hierarchy for depmigrate.

This module defines structured exception types used across depmigrate.
All exceptions inherit from :class:`DepMigrateError` and support optional
structured metadata via the ``details`` attribute to improve diagnostics
and logging.

Every class carries an ``exit_code`` so the CLI can tell caller mistakes
(:class:`UsageError`), unsatisfiable data (:class:`CapabilityUnavailableError`,
:class:`ResolutionError`) and transient I/O failures apart.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional, Sequence

from depmigrate.constants import (
    EXIT_DATA,
    EXIT_FAILURE,
    EXIT_IO,
    EXIT_UNAVAILABLE,
    EXIT_USAGE,
)


class DepMigrateError(Exception):
    """Base exception for all depmigrate errors.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    exit_code: int = EXIT_FAILURE

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        # Internally normalize to a mutable dict
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


def _truncate(text: str, max_length: int = 200) -> str:
    """Truncate long text for safe logging or error reporting."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


class ConfigError(DepMigrateError):
    """Raised when a configuration file is missing, unreadable or invalid.

    Args:
        message: Error description.
        config_path: Path of the configuration file involved.
        option: Name of the offending option, if any.
    """

    __slots__ = ("config_path", "option")

    exit_code = EXIT_USAGE

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "config", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option


class ManifestError(DepMigrateError):
    """Raised when a manifest cannot be parsed or patched.

    Args:
        message: Error description.
        file_path: Path to the manifest.
        key: Dotted manifest key where the problem was found.
    """

    __slots__ = ("file_path", "key")

    exit_code = EXIT_DATA

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "file", file_path)
        _add_if(details, "key", key)

        super().__init__(message, details)

        self.file_path = file_path
        self.key = key


class NetworkError(DepMigrateError):
    """Raised when HTTP or network operations fail.

    Args:
        message: Error description.
        url: URL being accessed.
        status_code: HTTP status code, if available.
        response_body: Raw response body, truncated for safety.
    """

    __slots__ = ("url", "status_code", "response_body")

    exit_code = EXIT_UNAVAILABLE

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "url", url)
        _add_if(details, "status_code", status_code)

        if response_body is not None:
            details["response"] = _truncate(response_body)

        super().__init__(message, details)

        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class RegistryError(NetworkError):
    """Raised for failures related to the hosted package registry.

    Args:
        message: Error description.
        package_name: Name of the package involved.
        **kwargs: Additional arguments forwarded to ``NetworkError``.
    """

    __slots__ = ("package_name",)

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)

        self.package_name = package_name
        if package_name is not None:
            self.details["package"] = package_name


class FileOperationError(DepMigrateError):
    """Raised when file system operations fail.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed (read/write/backup).
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    exit_code = EXIT_IO

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error


class UsageError(DepMigrateError):
    """Raised when the caller asks for something the manifest cannot offer.

    Args:
        message: Error description, already listing every offending name.
        names: The offending names, in the order they were requested.
    """

    __slots__ = ("names",)

    exit_code = EXIT_USAGE

    def __init__(self, message: str, *, names: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.names = list(names)


class CapabilityUnavailableError(DepMigrateError):
    """Raised when target dependencies have no version supporting a feature.

    The message is meant to be shown as-is; the structured attributes are
    kept for callers that want to build their own output.

    Args:
        message: Error description including the retry command.
        feature: Name of the language feature that was probed.
        incapable: Names without any supporting version.
        capable: Names that do have a supporting version.
    """

    __slots__ = ("feature", "incapable", "capable")

    exit_code = EXIT_DATA

    def __init__(
        self,
        message: str,
        *,
        feature: str,
        incapable: Sequence[str],
        capable: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.feature = feature
        self.incapable = list(incapable)
        self.capable = list(capable)


class ResolutionError(DepMigrateError):
    """Raised when no consistent version assignment exists for a manifest.

    Args:
        message: Error description.
        package_name: Package whose constraints could not be satisfied.
    """

    __slots__ = ("package_name",)

    exit_code = EXIT_DATA

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "package", package_name)

        super().__init__(message, details)

        self.package_name = package_name

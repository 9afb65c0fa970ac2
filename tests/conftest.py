"""Shared fixtures for the depmigrate test suite.

Provides deterministic stand-ins for the two collaborators the migration
core depends on: a scripted package source (fixed version lists and
language versions) and a scripted resolver (fixed resolution result).
Neither touches the network or the filesystem.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import pytest
from packaging.version import Version

from depmigrate.core.interfaces import SolveMode
from depmigrate.core.manifest_parser import ManifestParser
from depmigrate.exceptions import DepMigrateError, NetworkError
from depmigrate.models import (
    LanguageFeature,
    Manifest,
    PackageDescriptor,
    PackageId,
    PackageRange,
    SourceKind,
    parse_constraint,
    parse_version,
)

# name -> {version: declared language version, or None when unknown}
Registry = Mapping[str, Mapping[str, Optional[str]]]
# (name, version) -> {dependency name: constraint}
DependencyTable = Mapping[Tuple[str, str], Mapping[str, str]]


class ScriptedSource:
    """PackageSource serving a fixed, in-memory registry.

    Versions are returned newest first so callers must sort them.
    Non-hosted packages report the language version in ``local``.
    """

    def __init__(
        self,
        registry: Registry,
        dependencies: Optional[DependencyTable] = None,
        *,
        local: Optional[Mapping[str, Optional[str]]] = None,
        failing: Iterable[str] = (),
        cached: Iterable[str] = (),
    ) -> None:
        self.registry = registry
        self.dependencies = dependencies or {}
        self.local = local or {}
        self.failing = set(failing)
        self.cached = sorted(cached)
        self.listed: List[str] = []
        self.described: List[PackageId] = []

    async def list_versions(self, dependency: PackageRange) -> List[PackageId]:
        self.listed.append(dependency.name)
        if dependency.name in self.failing:
            raise NetworkError(f"Registry unavailable for {dependency.name}")
        if dependency.source is not SourceKind.HOSTED:
            return [dependency.to_id(parse_version("0.0.0"))]

        versions = sorted(
            (parse_version(version) for version in self.registry.get(dependency.name, {})),
            reverse=True,
        )
        return [dependency.to_id(version) for version in versions]

    async def describe(self, package: PackageId) -> PackageDescriptor:
        self.described.append(package)
        if package.name in self.failing:
            raise NetworkError(f"Registry unavailable for {package.name}")

        if package.source is not SourceKind.HOSTED:
            language = self.local.get(package.name)
        else:
            language = self.registry[package.name][str(package.version)]

        deps = {
            name: PackageRange(name, SourceKind.HOSTED, parse_constraint(constraint))
            for name, constraint in self.dependencies.get(
                (package.name, str(package.version)), {}
            ).items()
        }
        return PackageDescriptor(
            package,
            Version(language) if language else None,
            deps,
        )

    def cached_packages(self) -> List[str]:
        return list(self.cached)


class ScriptedResolver:
    """Resolver returning a fixed name -> version mapping."""

    def __init__(
        self,
        versions: Mapping[str, str],
        *,
        sources: Optional[Mapping[str, SourceKind]] = None,
        error: Optional[DepMigrateError] = None,
    ) -> None:
        self.versions = versions
        self.sources = sources or {}
        self.error = error
        self.calls: List[Tuple[Manifest, SolveMode]] = []

    async def resolve(self, manifest: Manifest, mode: SolveMode) -> Dict[str, PackageId]:
        self.calls.append((manifest, mode))
        if self.error is not None:
            raise self.error
        return {
            name: PackageId(
                name,
                parse_version(version),
                self.sources.get(name, SourceKind.HOSTED),
            )
            for name, version in self.versions.items()
        }


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def null_safety() -> LanguageFeature:
    """The null-safety feature (language 2.12).

    Returns:
        LanguageFeature with the migration guide url set.
    """
    return LanguageFeature(
        "null-safety",
        Version("2.12"),
        "https://dart.dev/null-safety/migration-guide",
    )


@pytest.fixture
def prerelease_registry() -> Registry:
    """Registry where foo reached null-safety only in prereleases.

    Returns:
        Registry with ``-nullsafety.N`` and ``-dev.N`` versions of foo.
    """
    return {
        "foo": {
            "1.0.0": "2.7",
            "1.3.0-nullsafety.10": "2.12",
            "1.3.0-nullsafety.3": "2.12",
            "2.0.0-dev.1": "2.12",
        },
        "bar": {"1.0.0": "2.12"},
    }


@pytest.fixture
def scripted_source() -> Callable[..., ScriptedSource]:
    """Factory for :class:`ScriptedSource` instances.

    Returns:
        Callable accepting the same arguments as ``ScriptedSource``.
    """
    return ScriptedSource


@pytest.fixture
def scripted_resolver() -> Callable[..., ScriptedResolver]:
    """Factory for :class:`ScriptedResolver` instances.

    Returns:
        Callable accepting the same arguments as ``ScriptedResolver``.
    """
    return ScriptedResolver


@pytest.fixture
def parse_manifest() -> Callable[[str], Manifest]:
    """Parse manifest text without touching the filesystem.

    Returns:
        Callable turning YAML text into a :class:`Manifest`.
    """
    parser = ManifestParser()
    return parser.parse_string


@pytest.fixture
def write_manifest(tmp_path: Path) -> Callable[[str], Path]:
    """Write manifest text to ``tmp_path/pubspec.yaml``.

    Returns:
        Callable writing the given text (byte for byte) and returning the path.
    """

    def _write(text: str) -> Path:
        path = tmp_path / "pubspec.yaml"
        path.write_bytes(text.encode("utf-8"))
        return path

    return _write

"""Package sources for depmigrate.

:class:`SourceRegistry` implements the
:class:`~depmigrate.core.interfaces.PackageSource` protocol for every
source kind a manifest can declare:

- **hosted**: versions and metadata come from a
  :class:`~depmigrate.core.data_store.HostedDataStore`, one per registry
  url, so a dependency pointing at a private registry is served from it.
- **path**: a single version, read from the local package's manifest.
- **git** / **sdk**: a single placeholder version whose language version
  is unknown. Those packages are never probed; they only show up in the
  non-migration warning.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from semver import Version

from depmigrate.exceptions import ManifestError
from depmigrate.utils.http import HTTPClient
from depmigrate.utils.logger import get_logger
from depmigrate.core.manifest_parser import ManifestParser
from depmigrate.core.data_store import HostedDataStore
from depmigrate.models import (
    InvalidConstraint,
    Manifest,
    PackageDescriptor,
    PackageId,
    PackageRange,
    SourceKind,
    language_version_from_sdk,
    parse_constraint,
    parse_version,
)
from depmigrate.constants import (
    DEFAULT_CONCURRENT_LIMIT,
    DEFAULT_HOSTED_URL,
    DEPENDENCIES_KEY,
    MANIFEST_FILE_NAME,
)

logger = get_logger("sources")

#: Version reported for packages that carry no version of their own.
_UNVERSIONED = Version(0)


class SourceRegistry:
    """Dispatches metadata requests to the source each package comes from.

    Args:
        http_client: Shared HTTP client; may be ``None`` when offline.
        root_dir: Directory relative paths in the root manifest start from.
        hosted_url: Registry used by hosted dependencies without a url.
        cache_dir: On-disk registry cache, or ``None``.
        offline: Serve hosted metadata from the on-disk cache only.
        concurrent_limit: Maximum registry fetches in flight per registry.
    """

    def __init__(
        self,
        http_client: Optional[HTTPClient],
        *,
        root_dir: Path,
        hosted_url: str = DEFAULT_HOSTED_URL,
        cache_dir: Optional[Path] = None,
        offline: bool = False,
        concurrent_limit: int = DEFAULT_CONCURRENT_LIMIT,
    ) -> None:
        self.http_client = http_client
        self.root_dir = root_dir
        self.hosted_url = hosted_url.rstrip("/")
        self.cache_dir = cache_dir
        self.offline = offline
        self.concurrent_limit = concurrent_limit

        self._parser = ManifestParser()
        self._stores: Dict[str, HostedDataStore] = {}
        self._path_manifests: Dict[Path, Manifest] = {}

    # ------------------------------------------------------------------
    # PackageSource protocol
    # ------------------------------------------------------------------

    async def list_versions(self, dependency: PackageRange) -> List[PackageId]:
        """Return every version *dependency* could resolve to."""
        if dependency.source is SourceKind.HOSTED:
            store = self.hosted_store(_hosted_url_of(dependency.description))
            data = await store.get_package_data(dependency.name)
            return [dependency.to_id(version) for version in data.versions]

        if dependency.source is SourceKind.PATH:
            directory = self._package_dir(dependency.description)
            manifest = self._read_path_manifest(directory)
            package = PackageId(
                dependency.name,
                _manifest_version(manifest, directory),
                SourceKind.PATH,
                {"path": str(directory)},
            )
            return [package]

        return [dependency.to_id(_UNVERSIONED)]

    async def describe(self, package: PackageId) -> PackageDescriptor:
        """Return the declared metadata of *package*."""
        if package.source is SourceKind.HOSTED:
            store = self.hosted_store(_hosted_url_of(package.description))
            data = await store.get_package_data(package.name)
            return self._describe_pubspec(package, data.pubspec_for(package.version))

        if package.source is SourceKind.PATH:
            directory = self._package_dir(package.description)
            manifest = self._read_path_manifest(directory)
            dependencies = {
                name: _anchor_path(dep, directory)
                for name, dep in manifest.dependencies.items()
            }
            return PackageDescriptor(
                package,
                language_version_from_sdk(manifest.sdk_constraints.get("sdk")),
                dependencies,
            )

        logger.debug(
            "Language version of %s from %s is unknown",
            package.name,
            package.source.value,
        )
        return PackageDescriptor(package)

    # ------------------------------------------------------------------
    # Hosted registries
    # ------------------------------------------------------------------

    def hosted_store(self, url: Optional[str] = None) -> HostedDataStore:
        """Return the data store serving registry *url* (default registry if None)."""
        key = (url or self.hosted_url).rstrip("/")
        store = self._stores.get(key)
        if store is None:
            store = HostedDataStore(
                self.http_client,
                hosted_url=key,
                cache_dir=self.cache_dir,
                offline=self.offline,
                concurrent_limit=self.concurrent_limit,
            )
            self._stores[key] = store
        return store

    def cached_packages(self) -> List[str]:
        """Hosted packages whose metadata came from the on-disk cache."""
        names = set()
        for store in self._stores.values():
            names.update(store.cached_packages())
        return sorted(names)

    def _describe_pubspec(
        self,
        package: PackageId,
        pubspec: Mapping[str, Any],
    ) -> PackageDescriptor:
        environment = pubspec.get("environment")
        if not isinstance(environment, dict):
            environment = {}
        try:
            sdk = parse_constraint(environment.get("sdk"))
        except InvalidConstraint:
            # Unreadable metadata cannot claim a language version
            logger.debug("Unparseable SDK constraint in %s", package)
            return PackageDescriptor(package)

        dependencies = {
            str(name): self._parser.parse_dependency(
                str(name),
                value,
                key=f"{package}.{DEPENDENCIES_KEY}.{name}",
            )
            for name, value in (pubspec.get(DEPENDENCIES_KEY) or {}).items()
        }
        return PackageDescriptor(package, language_version_from_sdk(sdk), dependencies)

    # ------------------------------------------------------------------
    # Local packages
    # ------------------------------------------------------------------

    def _package_dir(self, description: Mapping[str, Any]) -> Path:
        path = Path(str(description.get("path", "")))
        if not path.is_absolute():
            path = self.root_dir / path
        return path.resolve()

    def _read_path_manifest(self, directory: Path) -> Manifest:
        manifest = self._path_manifests.get(directory)
        if manifest is None:
            manifest = self._parser.parse_file(directory / MANIFEST_FILE_NAME)
            self._path_manifests[directory] = manifest
        return manifest


def _hosted_url_of(description: Mapping[str, Any]) -> Optional[str]:
    url = description.get("url")
    return str(url) if url else None


def _anchor_path(dependency: PackageRange, directory: Path) -> PackageRange:
    """Make a path dependency of a local package relative to *directory*."""
    if dependency.source is not SourceKind.PATH:
        return dependency

    path = Path(str(dependency.description.get("path", "")))
    if not path.is_absolute():
        path = directory / path
    return PackageRange(
        dependency.name,
        dependency.source,
        dependency.constraint,
        {"path": str(path.resolve())},
    )


def _manifest_version(manifest: Manifest, directory: Path) -> Version:
    if manifest.version is None:
        return _UNVERSIONED
    try:
        return parse_version(manifest.version)
    except InvalidConstraint as exc:
        raise ManifestError(
            f"Invalid version {manifest.version!r}",
            file_path=str(directory / MANIFEST_FILE_NAME),
            key="version",
        ) from exc

"""Unit tests for depmigrate.core.sources.

Test Coverage:
- Hosted versions and descriptors from the registry listing
- One data store per registry url, cached listings aggregated
- Path dependencies read from the local manifest, nested paths anchored
- Git and sdk dependencies: single unversioned id, unknown language version
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from packaging.version import Version

from depmigrate.core.data_store import HostedPackageData
from depmigrate.core.sources import SourceRegistry
from depmigrate.exceptions import ManifestError
from depmigrate.models import PackageId, PackageRange, SourceKind, parse_version
from depmigrate.utils.http import HTTPClient


@pytest.fixture
def registry(tmp_path: Path) -> SourceRegistry:
    """SourceRegistry rooted at ``tmp_path/app`` with a mocked HTTP client.

    Returns:
        Registry whose hosted stores must be patched per test.
    """
    root = tmp_path / "app"
    root.mkdir()
    return SourceRegistry(MagicMock(spec=HTTPClient), root_dir=root)


def _listing(name: str, pubspecs) -> HostedPackageData:
    versions = {parse_version(v): pubspec for v, pubspec in pubspecs.items()}
    return HostedPackageData(name, sorted(versions), versions)


def _stub_store(registry: SourceRegistry, data: HostedPackageData, url=None) -> AsyncMock:
    store = registry.hosted_store(url)
    store.get_package_data = AsyncMock(return_value=data)
    return store.get_package_data


@pytest.mark.unit
class TestHosted:
    """Tests for hosted packages."""

    @pytest.mark.asyncio
    async def test_list_versions(self, registry: SourceRegistry) -> None:
        _stub_store(registry, _listing("http", {"0.12.0": {}, "0.13.0": {}}))

        packages = await registry.list_versions(PackageRange("http"))

        assert [str(p.version) for p in packages] == ["0.12.0", "0.13.0"]
        assert all(p.source is SourceKind.HOSTED for p in packages)

    @pytest.mark.asyncio
    async def test_describe(self, registry: SourceRegistry) -> None:
        pubspec = {
            "environment": {"sdk": ">=2.12.0 <3.0.0"},
            "dependencies": {"meta": "^1.3.0", "path": None},
        }
        _stub_store(registry, _listing("http", {"0.13.0": pubspec}))

        descriptor = await registry.describe(PackageId("http", parse_version("0.13.0")))

        assert descriptor.language_version == Version("2.12")
        assert list(descriptor.dependencies) == ["meta", "path"]
        assert str(descriptor.dependencies["meta"].constraint) == "^1.3.0"

    @pytest.mark.asyncio
    async def test_missing_environment_defaults(self, registry: SourceRegistry) -> None:
        _stub_store(registry, _listing("old", {"1.0.0": {"environment": "bogus"}}))

        descriptor = await registry.describe(PackageId("old", parse_version("1.0.0")))

        assert descriptor.language_version == Version("2.7")

    @pytest.mark.asyncio
    async def test_unparseable_sdk_has_no_language(self, registry: SourceRegistry) -> None:
        _stub_store(
            registry, _listing("odd", {"1.0.0": {"environment": {"sdk": "~>2.0"}}})
        )

        descriptor = await registry.describe(PackageId("odd", parse_version("1.0.0")))

        assert descriptor.language_version is None

    @pytest.mark.asyncio
    async def test_custom_registry_url(self, registry: SourceRegistry) -> None:
        default = _stub_store(registry, _listing("mirror", {"1.0.0": {}}))
        private = _stub_store(
            registry, _listing("mirror", {"2.0.0": {}}), url="https://pub.example.com/"
        )
        dependency = PackageRange(
            "mirror", SourceKind.HOSTED, description={"url": "https://pub.example.com"}
        )

        packages = await registry.list_versions(dependency)

        assert [str(p.version) for p in packages] == ["2.0.0"]
        assert packages[0].description["url"] == "https://pub.example.com"
        private.assert_awaited_once_with("mirror")
        default.assert_not_awaited()

    def test_store_per_url(self, registry: SourceRegistry) -> None:
        assert registry.hosted_store() is registry.hosted_store("https://pub.dev/")
        assert registry.hosted_store() is not registry.hosted_store("https://pub.example.com")

    def test_cached_packages_across_stores(self, registry: SourceRegistry) -> None:
        registry.hosted_store().cached_packages = MagicMock(return_value=["meta", "http"])
        registry.hosted_store("https://pub.example.com").cached_packages = MagicMock(
            return_value=["http", "mirror"]
        )

        assert registry.cached_packages() == ["http", "meta", "mirror"]

    def test_no_stores_nothing_cached(self, registry: SourceRegistry) -> None:
        assert registry.cached_packages() == []


@pytest.mark.unit
class TestPath:
    """Tests for path packages."""

    @pytest.mark.asyncio
    async def test_version_and_language_from_local_manifest(
        self, registry: SourceRegistry
    ) -> None:
        local = registry.root_dir.parent / "local"
        local.mkdir()
        (local / "pubspec.yaml").write_text(
            "name: local\n"
            "version: 1.2.0\n"
            "environment:\n  sdk: '>=2.12.0 <3.0.0'\n"
            "dependencies:\n  meta: ^1.3.0\n  sibling:\n    path: ../sibling\n",
            encoding="utf-8",
        )
        dependency = PackageRange("local", SourceKind.PATH, description={"path": "../local"})

        (package,) = await registry.list_versions(dependency)
        descriptor = await registry.describe(package)

        assert package.version == parse_version("1.2.0")
        assert package.description == {"path": str(local.resolve())}
        assert descriptor.language_version == Version("2.12")
        sibling = descriptor.dependencies["sibling"]
        assert sibling.description == {
            "path": str((registry.root_dir.parent / "sibling").resolve())
        }

    @pytest.mark.asyncio
    async def test_unversioned_local_package(self, registry: SourceRegistry) -> None:
        local = registry.root_dir / "packages" / "tool"
        local.mkdir(parents=True)
        (local / "pubspec.yaml").write_text("name: tool\n", encoding="utf-8")

        (package,) = await registry.list_versions(
            PackageRange("tool", SourceKind.PATH, description={"path": "packages/tool"})
        )

        assert package.version == parse_version("0.0.0")

    @pytest.mark.asyncio
    async def test_invalid_local_version(self, registry: SourceRegistry) -> None:
        local = registry.root_dir / "bad"
        local.mkdir()
        (local / "pubspec.yaml").write_text("name: bad\nversion: one\n", encoding="utf-8")

        with pytest.raises(ManifestError) as exc_info:
            await registry.list_versions(
                PackageRange("bad", SourceKind.PATH, description={"path": "bad"})
            )

        assert exc_info.value.key == "version"


@pytest.mark.unit
class TestUnversionedSources:
    """Tests for git and sdk packages."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("source", [SourceKind.GIT, SourceKind.SDK])
    async def test_placeholder(self, registry: SourceRegistry, source: SourceKind) -> None:
        (package,) = await registry.list_versions(PackageRange("pkg", source))
        descriptor = await registry.describe(package)

        assert package.version == parse_version("0.0.0")
        assert descriptor.language_version is None
        assert descriptor.dependencies == {}

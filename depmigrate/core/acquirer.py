"""Dependency acquisition.

After the manifest has been rewritten, the dependency graph is resolved
again from the file on disk and the result is recorded in the lock file
next to it. The plain ``depmigrate upgrade`` (no feature) is exactly this
step.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from depmigrate.utils import get_logger, safe_write_file
from depmigrate.core.interfaces import Resolver, SolveMode
from depmigrate.core.manifest_parser import ManifestParser
from depmigrate.models import Manifest, PackageId, SourceKind
from depmigrate.constants import (
    DEFAULT_HOSTED_URL,
    DEPENDENCIES_KEY,
    DEV_DEPENDENCIES_KEY,
    LOCK_FILE_NAME,
)

logger = get_logger("acquirer")

__all__ = ["DependencyAcquirer", "render_lockfile"]

_LOCK_HEADER = "# Generated by depmigrate. Do not edit by hand.\n"


class DependencyAcquirer:
    """Resolves a manifest on disk and writes its lock file.

    Args:
        resolver: Whole-graph resolver.
        parser: Manifest parser; a default one is created if omitted.
        hosted_url: Registry recorded for hosted packages without a url.
    """

    def __init__(
        self,
        resolver: Resolver,
        *,
        parser: Optional[ManifestParser] = None,
        hosted_url: str = DEFAULT_HOSTED_URL,
    ) -> None:
        self.resolver = resolver
        self.parser = parser or ManifestParser()
        self.hosted_url = hosted_url

    async def acquire(
        self,
        manifest_path: Path,
        mode: SolveMode = SolveMode.UPGRADE,
    ) -> Dict[str, PackageId]:
        """Resolve *manifest_path* and write ``pubspec.lock`` beside it.

        Returns:
            The resolution that was locked.
        """
        manifest = self.parser.parse_file(manifest_path)
        resolution = await self.resolver.resolve(manifest, mode)

        lock_path = manifest_path.parent / LOCK_FILE_NAME
        safe_write_file(
            lock_path,
            render_lockfile(manifest, resolution, hosted_url=self.hosted_url),
        )
        logger.info("Locked %d package(s) in %s", len(resolution), lock_path)
        return resolution


def render_lockfile(
    manifest: Manifest,
    resolution: Mapping[str, PackageId],
    *,
    hosted_url: str = DEFAULT_HOSTED_URL,
) -> str:
    """Render the lock file for *resolution* as YAML."""
    packages: Dict[str, Dict[str, Any]] = {}
    for name in sorted(resolution):
        package = resolution[name]
        description = dict(package.description)
        if package.source is SourceKind.HOSTED:
            description = {"name": name, "url": description.get("url", hosted_url)}

        packages[name] = {
            "dependency": _dependency_kind(manifest, name),
            "description": description,
            "source": package.source.value,
            "version": str(package.version),
        }

    document = {
        "packages": packages,
        "sdks": {sdk: str(constraint) for sdk, constraint in manifest.sdk_constraints.items()},
    }
    return _LOCK_HEADER + yaml.safe_dump(document, default_flow_style=False, sort_keys=True)


def _dependency_kind(manifest: Manifest, name: str) -> str:
    if name in manifest.dependency_overrides:
        return "direct overridden"
    section = manifest.section_of(name)
    if section == DEPENDENCIES_KEY:
        return "direct main"
    if section == DEV_DEPENDENCIES_KEY:
        return "direct dev"
    return "transitive"

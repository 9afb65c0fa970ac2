"""Migration reporting.

Two independent reports follow an upgrade:

- the change summary, built from the change set alone;
- the non-migration warning, which re-describes the resolved version of
  every direct dependency (targets or not) and lists the ones that still
  do not support the feature.
"""

from __future__ import annotations

import asyncio
from typing import List, Mapping, Optional

from depmigrate.utils.logger import get_logger
from depmigrate.constants import MANIFEST_FILE_NAME
from depmigrate.core.interfaces import PackageSource
from depmigrate.models import ChangeSet, LanguageFeature, Manifest, PackageId

logger = get_logger("reporter")

__all__ = ["MigrationReporter"]

_REMEDIATION = (
    "You may have to:",
    " * Upgrade git and path dependencies manually,",
    " * Upgrade to a newer SDK for newer SDK dependencies,",
    " * Remove dependency_overrides, and/or,",
    " * Find other packages to use.",
)


class MigrationReporter:
    """Builds the user-facing report of a feature upgrade.

    Args:
        source: Used to describe resolved versions.
        feature: The feature the upgrade targeted.
        manifest_name: File name shown in the summary.
    """

    def __init__(
        self,
        source: PackageSource,
        feature: LanguageFeature,
        *,
        manifest_name: str = MANIFEST_FILE_NAME,
    ) -> None:
        self.source = source
        self.feature = feature
        self.manifest_name = manifest_name

    def summarize_changes(self, changes: ChangeSet, *, dry_run: bool) -> List[str]:
        """Return the change summary, one entry per output line.

        Example::

            Would change 2 constraints in pubspec.yaml:
              http: ^0.12.0 -> ^0.13.3
              path: ^1.7.0 -> ^1.8.0
        """
        if not changes:
            would_be = "would be made to" if dry_run else "to"
            return [f"No changes {would_be} {self.manifest_name}!"]

        changed = "Would change" if dry_run else "Changed"
        plural = "" if len(changes) == 1 else "s"
        lines = [f"{changed} {len(changes)} constraint{plural} in {self.manifest_name}:"]
        lines.extend(
            f"  {original.name}: {original.constraint} -> {updated.constraint}"
            for original, updated in changes.items()
        )
        return lines

    async def find_unmigrated(
        self,
        manifest: Manifest,
        resolution: Mapping[str, PackageId],
    ) -> List[str]:
        """Return direct dependencies whose resolved version lacks the feature.

        Names come back in manifest declaration order. Lookup failures
        propagate.
        """
        names = manifest.direct_dependency_names
        verdicts = await asyncio.gather(
            *(self._supports(name, resolution.get(name)) for name in names)
        )
        return [name for name, supported in zip(names, verdicts) if not supported]

    def unmigrated_warning(self, names: List[str]) -> Optional[str]:
        """Return the warning text for *names*, or ``None`` if there are none."""
        if not names:
            return None

        lines = [
            "Following direct 'dependencies' and 'dev_dependencies' are not "
            f"migrated to {self.feature.name} yet:",
        ]
        lines.extend(f" - {name}" for name in names)
        lines.append("")
        lines.extend(_REMEDIATION)
        return "\n".join(lines)

    async def _supports(self, name: str, package: Optional[PackageId]) -> bool:
        if package is None:
            logger.debug("%s is missing from the resolution", name)
            return False

        descriptor = await self.source.describe(package)
        return descriptor.supports(self.feature)

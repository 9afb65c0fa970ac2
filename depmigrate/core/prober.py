"""Capability probing.

For each hosted target, finds the first published version that supports a
language feature and turns it into an open-ended constraint
(``>=first-capable-version``). Targets are probed concurrently; each probe
returns its own :class:`ProbeResult` and the results are merged only after
every probe has finished, so the error for incapable targets can list all
of them at once.

Typical usage::

    prober = CapabilityProber(source_registry, config.get_feature("null-safety"))
    probed = await prober.probe(manifest, ["http", "path"])
    print(probed["http"].constraint)     # >=0.13.0
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from semver import Version

from depmigrate.utils.logger import get_logger
from depmigrate.constants import COMMAND_NAME
from depmigrate.core.interfaces import PackageSource
from depmigrate.exceptions import CapabilityUnavailableError
from depmigrate.models import LanguageFeature, Manifest, PackageRange, at_least

logger = get_logger("prober")

__all__ = ["CapabilityProber", "ProbeResult"]


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of probing one dependency.

    Attributes:
        dependency: The declaration that was probed.
        first_capable: First version supporting the feature, or ``None``
            when no published version does.
    """

    dependency: PackageRange
    first_capable: Optional[Version] = None

    @property
    def capable(self) -> bool:
        return self.first_capable is not None


class CapabilityProber:
    """Finds the minimal feature-capable version of hosted dependencies.

    Args:
        source: Where versions and their metadata come from.
        feature: The feature every probed version must support.
    """

    def __init__(self, source: PackageSource, feature: LanguageFeature) -> None:
        self.source = source
        self.feature = feature

    async def probe(
        self,
        manifest: Manifest,
        targets: Sequence[str],
    ) -> Dict[str, PackageRange]:
        """Compute feature-capable constraints for the hosted *targets*.

        Non-hosted dependencies and names outside *targets* are left alone.

        Returns:
            Target name -> declaration with the probed constraint.

        Raises:
            CapabilityUnavailableError: One or more targets have no capable
                version. Raised only once every target has been probed.
        """
        wanted = set(targets)
        probed = [
            dependency
            for dependency in manifest.direct_dependencies
            if dependency.name in wanted and dependency.is_hosted
        ]
        logger.info(
            "Probing %d hosted dependenc%s for %s",
            len(probed),
            "y" if len(probed) == 1 else "ies",
            self.feature.name,
        )

        # gather keeps argument order, i.e. manifest declaration order
        results: List[ProbeResult] = await asyncio.gather(
            *(self.probe_dependency(dependency) for dependency in probed)
        )

        incapable = [result.dependency.name for result in results if not result.capable]
        if incapable:
            capable = [result.dependency.name for result in results if result.capable]
            raise CapabilityUnavailableError(
                self._unavailable_message(incapable, capable),
                feature=self.feature.name,
                incapable=incapable,
                capable=capable,
            )

        return {
            result.dependency.name: result.dependency.with_constraint(
                at_least(result.first_capable)
            )
            for result in results
            if result.first_capable is not None
        }

    async def probe_dependency(self, dependency: PackageRange) -> ProbeResult:
        """Scan *dependency*'s versions in ascending order for the feature."""
        packages = sorted(
            await self.source.list_versions(dependency),
            key=lambda package: package.version,
        )

        for package in packages:
            descriptor = await self.source.describe(package)
            if descriptor.supports(self.feature):
                logger.debug("%s first supports %s", package, self.feature.name)
                return ProbeResult(dependency, package.version)

        logger.debug(
            "No version of %s supports %s (%d checked)",
            dependency.name,
            self.feature.name,
            len(packages),
        )
        return ProbeResult(dependency)

    def _unavailable_message(self, incapable: List[str], capable: List[str]) -> str:
        lines = [f"{self.feature.name} compatible versions do not exist for:"]
        lines.extend(f" - {name}" for name in incapable)

        if capable:
            lines.append("")
            lines.append(
                f"You can choose to upgrade only some dependencies to "
                f"{self.feature.name} using:"
            )
            lines.append(
                f"  {COMMAND_NAME} --feature {self.feature.name} {' '.join(capable)}"
            )

        if self.feature.guide_url:
            lines.append("")
            lines.append(
                f"Warning: Using {self.feature.name} features before upgrading all "
                "dependencies is discouraged."
            )
            lines.append(f"For more details see: {self.feature.guide_url}")

        return "\n".join(lines)

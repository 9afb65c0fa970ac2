"""Feature upgrade orchestration.

:class:`ConstraintMigrator` runs one feature upgrade end to end::

    select targets -> probe -> candidate manifest -> resolve (once)
        -> diff -> patch + acquire (unless dry run) -> report

Every failure before the patch step leaves the manifest untouched, and the
patch step itself writes the file at most once.

Typical usage::

    migrator = ConstraintMigrator(registry, GreedyResolver(registry), feature)
    result = await migrator.migrate(Path("pubspec.yaml"), ["http"], dry_run=True)
    for line in result.summary:
        print(line)
"""

from __future__ import annotations

from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from depmigrate.utils.logger import get_logger
from depmigrate.core.diff import compute_changes
from depmigrate.core.targets import select_targets
from depmigrate.core.prober import CapabilityProber
from depmigrate.core.patcher import ManifestPatcher
from depmigrate.core.reporter import MigrationReporter
from depmigrate.core.acquirer import DependencyAcquirer
from depmigrate.core.manifest_parser import ManifestParser
from depmigrate.core.candidate import build_candidate_manifest
from depmigrate.core.interfaces import PackageSource, Resolver, SolveMode
from depmigrate.models import ChangeSet, LanguageFeature, Manifest, PackageId

logger = get_logger("migrator")

__all__ = ["ConstraintMigrator", "MigrationResult"]


@dataclass
class MigrationResult:
    """Everything one feature upgrade computed.

    Attributes:
        targets: Dependency names the upgrade covered.
        changes: Constraint replacements, in manifest order.
        resolution: Resolved version of every package in the graph.
        unmigrated: Direct dependencies still lacking the feature.
        summary: Change summary lines.
        warning: Non-migration warning, or ``None``.
        written: Whether the manifest file was rewritten.
    """

    targets: List[str]
    changes: ChangeSet
    resolution: Dict[str, PackageId]
    unmigrated: List[str] = field(default_factory=list)
    summary: List[str] = field(default_factory=list)
    warning: Optional[str] = None
    written: bool = False


class ConstraintMigrator:
    """Upgrades manifest constraints to versions supporting a feature.

    Args:
        source: Package metadata source.
        resolver: Whole-graph resolver.
        feature: Feature the upgraded constraints must support.
        parser: Manifest parser.
        patcher: Writes the change set into the manifest file.
        acquirer: Re-resolves and locks after the manifest was written;
            ``None`` skips that step.
    """

    def __init__(
        self,
        source: PackageSource,
        resolver: Resolver,
        feature: LanguageFeature,
        *,
        parser: Optional[ManifestParser] = None,
        patcher: Optional[ManifestPatcher] = None,
        acquirer: Optional[DependencyAcquirer] = None,
    ) -> None:
        self.source = source
        self.resolver = resolver
        self.feature = feature
        self.parser = parser or ManifestParser()
        self.patcher = patcher or ManifestPatcher(self.parser)
        self.acquirer = acquirer

    async def migrate(
        self,
        manifest_path: Path,
        requested: Sequence[str] = (),
        *,
        dry_run: bool = False,
        backup: bool = False,
    ) -> MigrationResult:
        """Run the upgrade for *manifest_path*.

        Args:
            manifest_path: Manifest file to upgrade.
            requested: Dependency names to upgrade; empty means all direct
                dependencies.
            dry_run: Compute and report without writing or acquiring.
            backup: Back the manifest up before it is rewritten.

        Raises:
            UsageError: A requested name is not a direct dependency.
            CapabilityUnavailableError: A target has no capable version.
            ResolutionError: The candidate manifest does not resolve.
        """
        manifest = self.parser.parse_file(manifest_path)
        targets = select_targets(requested, manifest, self.feature.name)
        logger.info(
            "Upgrading %d dependenc%s of %s to %s",
            len(targets),
            "y" if len(targets) == 1 else "ies",
            manifest.name,
            self.feature.name,
        )

        probed = await CapabilityProber(self.source, self.feature).probe(manifest, targets)
        candidate = build_candidate_manifest(manifest, probed)
        resolution = await self._resolve(candidate)
        changes = compute_changes(manifest, targets, resolution)

        written = False
        if not dry_run:
            written = self.patcher.apply(manifest_path, manifest, changes, backup=backup)
            if self.acquirer is not None:
                await self.acquirer.acquire(manifest_path, SolveMode.UPGRADE)

        reporter = MigrationReporter(
            self.source, self.feature, manifest_name=manifest_path.name
        )
        unmigrated = await reporter.find_unmigrated(manifest, resolution)

        return MigrationResult(
            targets=targets,
            changes=changes,
            resolution=resolution,
            unmigrated=unmigrated,
            summary=reporter.summarize_changes(changes, dry_run=dry_run),
            warning=reporter.unmigrated_warning(unmigrated),
            written=written,
        )

    async def _resolve(self, candidate: Manifest) -> Dict[str, PackageId]:
        logger.debug("Resolving candidate manifest for %s", candidate.name)
        return await self.resolver.resolve(candidate, SolveMode.UPGRADE)

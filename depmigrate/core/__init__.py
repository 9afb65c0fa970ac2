"""
Core functionality exports for depmigrate.

Importing from here keeps user-facing imports clean and stable:

    from depmigrate.core import ConstraintMigrator, GreedyResolver
"""

from __future__ import annotations

from depmigrate.core.diff import compute_changes
from depmigrate.core.targets import select_targets
from depmigrate.core.sources import SourceRegistry
from depmigrate.core.resolver import GreedyResolver
from depmigrate.core.patcher import ManifestPatcher
from depmigrate.core.reporter import MigrationReporter
from depmigrate.core.manifest_parser import ManifestParser
from depmigrate.core.candidate import build_candidate_manifest
from depmigrate.core.prober import CapabilityProber, ProbeResult
from depmigrate.core.acquirer import DependencyAcquirer, render_lockfile
from depmigrate.core.migrator import ConstraintMigrator, MigrationResult
from depmigrate.core.data_store import HostedDataStore, HostedPackageData
from depmigrate.core.interfaces import PackageSource, Resolver, SolveMode

__all__ = [
    "ManifestParser",
    "HostedDataStore",
    "HostedPackageData",
    "SourceRegistry",
    "GreedyResolver",
    "PackageSource",
    "Resolver",
    "SolveMode",
    "select_targets",
    "CapabilityProber",
    "ProbeResult",
    "build_candidate_manifest",
    "compute_changes",
    "ManifestPatcher",
    "MigrationReporter",
    "DependencyAcquirer",
    "render_lockfile",
    "ConstraintMigrator",
    "MigrationResult",
]

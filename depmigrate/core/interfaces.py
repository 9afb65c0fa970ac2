"""
Collaborator contracts for the constraint migration core.

The migration core never talks to the network or to a solver directly; it
depends on these two narrow protocols instead. Production code binds them to
:class:`~depmigrate.core.sources.SourceRegistry` and
:class:`~depmigrate.core.resolver.GreedyResolver`; tests bind them to
scripted fakes.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Protocol

from depmigrate.models import Manifest, PackageDescriptor, PackageId, PackageRange


class SolveMode(str, Enum):
    """Which end of each allowed range the resolver prefers."""

    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"


class PackageSource(Protocol):
    """Read-only access to package metadata."""

    async def list_versions(self, dependency: PackageRange) -> List[PackageId]:
        """Return every published version of the package *dependency* names.

        The dependency's source description selects the registry. Order is
        unspecified; callers sort. Raises on I/O failure.
        """
        ...

    async def describe(self, package: PackageId) -> PackageDescriptor:
        """Return the metadata of one concrete package version."""
        ...


class Resolver(Protocol):
    """Whole-graph version solver."""

    async def resolve(self, manifest: Manifest, mode: SolveMode) -> Dict[str, PackageId]:
        """Pick one version per package reachable from *manifest*.

        Raises:
            ResolutionError: No consistent assignment exists.
        """
        ...

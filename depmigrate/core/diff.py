"""Constraint diffing.

Compares each target's declared constraint with the safe-upgrade range
around its resolved version and keeps only real changes.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from depmigrate.utils.logger import get_logger
from depmigrate.models import ChangeSet, Manifest, PackageId, compatible_with

logger = get_logger("diff")


def compute_changes(
    manifest: Manifest,
    targets: Iterable[str],
    resolution: Mapping[str, PackageId],
) -> ChangeSet:
    """Build the change set for *targets*.

    A hosted target gets ``compatible_with(resolved version)``; it is
    skipped when that range admits exactly the versions its current
    constraint admits, whatever the spelling. Non-hosted dependencies and
    names missing from *resolution* never appear.

    Returns:
        Original declaration -> updated declaration, in manifest order
        (dependencies, then dev_dependencies).
    """
    wanted = set(targets)
    changes: ChangeSet = {}

    for dependency in manifest.direct_dependencies:
        if dependency.name not in wanted or not dependency.is_hosted:
            continue

        resolved = resolution.get(dependency.name)
        if resolved is None:
            continue

        constraint = compatible_with(resolved.version)
        if constraint.is_equivalent(dependency.constraint):
            logger.debug("%s already allows exactly %s", dependency.name, constraint)
            continue

        changes[dependency] = dependency.with_constraint(constraint)

    return changes

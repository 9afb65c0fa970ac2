"""Whole-graph version resolution for depmigrate.

:class:`GreedyResolver` is the default
:class:`~depmigrate.core.interfaces.Resolver`. It assigns one version to
every package reachable from a manifest:

1. Every requester (the root manifest or a selected package version)
   contributes a constraint on each of its dependencies.
2. A package's allowed versions are the intersection of all constraints
   on it, or the root's ``dependency_overrides`` entry when there is one.
3. The newest (upgrade) or oldest (downgrade) allowed version is picked,
   stable releases before prereleases.
4. Whenever the constraints on a package change it is re-selected, and
   the dependencies of the version it replaced are withdrawn.

The loop runs until nothing changes, bounded by
:data:`~depmigrate.constants.MAX_RESOLUTION_STEPS`. The resolver never
backtracks: an empty intersection is reported as a
:class:`~depmigrate.exceptions.ResolutionError` naming the package and
its requesters.

Typical usage::

    resolver = GreedyResolver(source_registry)
    resolution = await resolver.resolve(manifest, SolveMode.UPGRADE)
    print(resolution["http"].version)
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List, Optional, Set

from depmigrate.exceptions import ResolutionError
from depmigrate.utils.logger import get_logger
from depmigrate.constants import MAX_RESOLUTION_STEPS
from depmigrate.core.interfaces import PackageSource, SolveMode
from depmigrate.models import (
    ANY,
    Manifest,
    PackageDescriptor,
    PackageId,
    PackageRange,
    SourceKind,
    VersionRange,
    is_prerelease,
)

logger = get_logger("resolver")

__all__ = ["GreedyResolver"]

# Sources that expose a single, unversioned checkout.
_UNVERSIONED_SOURCES = (SourceKind.GIT, SourceKind.SDK)


class GreedyResolver:
    """Iterative resolver over a :class:`PackageSource`.

    Args:
        source: Where versions and package metadata come from.
        max_steps: Upper bound on package selections per resolution.
    """

    def __init__(
        self,
        source: PackageSource,
        *,
        max_steps: int = MAX_RESOLUTION_STEPS,
    ) -> None:
        self.source = source
        self.max_steps = max_steps
        self._descriptors: Dict[PackageId, PackageDescriptor] = {}

    async def resolve(
        self,
        manifest: Manifest,
        mode: SolveMode = SolveMode.UPGRADE,
    ) -> Dict[str, PackageId]:
        """Pick one version per package reachable from *manifest*.

        Returns:
            Package name -> selected :class:`PackageId`, in discovery
            order. The root package itself is not included.

        Raises:
            ResolutionError: Conflicting constraints, conflicting sources,
                or no convergence within ``max_steps``.
        """
        root = manifest.name
        overrides = manifest.dependency_overrides

        # requirements[name][requester] -> constraint that requester declares
        requirements: Dict[str, Dict[str, PackageRange]] = {}
        selected: Dict[str, PackageId] = {}
        queue: Deque[str] = deque()

        for dependency in manifest.direct_dependencies:
            requirements.setdefault(dependency.name, {})[root] = dependency
            queue.append(dependency.name)

        steps = 0
        while queue:
            name = queue.popleft()
            ranges = requirements.get(name)
            if not ranges:
                continue

            steps += 1
            if steps > self.max_steps:
                raise ResolutionError(
                    f"Version resolution did not settle after {self.max_steps} steps",
                    package_name=name,
                )

            chosen = await self._select(name, ranges, overrides.get(name), mode)
            previous = selected.get(name)
            if previous == chosen:
                continue

            logger.debug(
                "Selected %s (was %s)",
                chosen,
                previous.version if previous else "unselected",
            )
            if previous is not None:
                queue.extend(self._withdraw(name, previous, requirements, selected))
            selected[name] = chosen

            descriptor = await self._describe(chosen)
            for dep_name, dependency in descriptor.dependencies.items():
                if dep_name == root:
                    continue
                requirements.setdefault(dep_name, {})[name] = dependency
                queue.append(dep_name)

        resolution = self._reachable(manifest, selected)
        logger.info(
            "Resolved %d package(s) for %s in %d step(s)",
            len(resolution),
            root,
            steps,
        )
        return resolution

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def _select(
        self,
        name: str,
        ranges: Dict[str, PackageRange],
        override: Optional[PackageRange],
        mode: SolveMode,
    ) -> PackageId:
        effective: List[PackageRange] = [override] if override else list(ranges.values())
        reference = effective[0]

        for dependency in effective[1:]:
            if not _same_source(reference, dependency):
                raise ResolutionError(
                    f"Packages depend on {name} from different sources: "
                    f"{_describe_requesters(ranges)}",
                    package_name=name,
                )

        constraint: VersionRange = ANY
        for dependency in effective:
            constraint = constraint.intersect(dependency.constraint)

        versions = await self.source.list_versions(reference)
        if reference.source in _UNVERSIONED_SOURCES:
            allowed = list(versions)
        else:
            allowed = [package for package in versions if constraint.allows(package.version)]

        if not allowed:
            raise ResolutionError(
                f"No version of {name} satisfies {constraint} "
                f"(required by {_describe_requesters(ranges)})",
                package_name=name,
            )

        stable = [package for package in allowed if not is_prerelease(package.version)]
        candidates = stable or allowed
        if mode is SolveMode.DOWNGRADE:
            return min(candidates, key=lambda package: package.version)
        return max(candidates, key=lambda package: package.version)

    async def _describe(self, package: PackageId) -> PackageDescriptor:
        descriptor = self._descriptors.get(package)
        if descriptor is None:
            descriptor = await self.source.describe(package)
            self._descriptors[package] = descriptor
        return descriptor

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _withdraw(
        self,
        name: str,
        package: PackageId,
        requirements: Dict[str, Dict[str, PackageRange]],
        selected: Dict[str, PackageId],
    ) -> List[str]:
        """Remove the constraints *package* placed on its dependencies.

        Dependencies left without any requester are withdrawn too.
        Returns the names whose constraints changed.
        """
        changed: List[str] = []
        pending = [(name, package)]

        while pending:
            requester, version = pending.pop()
            descriptor = self._descriptors.get(version)
            if descriptor is None:
                continue

            for dep_name in descriptor.dependencies:
                ranges = requirements.get(dep_name)
                if not ranges or requester not in ranges:
                    continue
                del ranges[requester]
                changed.append(dep_name)

                if not ranges and dep_name in selected:
                    pending.append((dep_name, selected.pop(dep_name)))

        return changed

    def _reachable(
        self,
        manifest: Manifest,
        selected: Dict[str, PackageId],
    ) -> Dict[str, PackageId]:
        order: List[str] = []
        seen: Set[str] = set()
        queue: Deque[str] = deque(manifest.direct_dependency_names)

        while queue:
            name = queue.popleft()
            if name in seen or name not in selected:
                continue
            seen.add(name)
            order.append(name)

            descriptor = self._descriptors.get(selected[name])
            if descriptor is not None:
                queue.extend(descriptor.dependencies)

        return {name: selected[name] for name in order}


def _same_source(left: PackageRange, right: PackageRange) -> bool:
    if left.source is not right.source:
        return False
    if left.source is SourceKind.HOSTED:
        return left.description.get("url") == right.description.get("url")
    return True


def _describe_requesters(ranges: Dict[str, PackageRange]) -> str:
    return ", ".join(f"{requester} ({dep.constraint})" for requester, dep in ranges.items())

"""
Manifest data model for depmigrate.

This module defines the in-memory shape of a pub-style manifest and of the
dependency references it declares:

- :class:`PackageRange` is a declared dependency: a name, the source it
  comes from and a version constraint.
- :class:`PackageId` is a resolved package: a name, a concrete version and
  the same source information.
- :class:`Manifest` groups the declared dependencies by section.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from semver import Version

from depmigrate.constants import DEPENDENCIES_KEY, DEV_DEPENDENCIES_KEY
from depmigrate.models.constraint import ANY, VersionRange


class SourceKind(str, Enum):
    """Where a dependency is obtained from."""

    HOSTED = "hosted"
    PATH = "path"
    GIT = "git"
    SDK = "sdk"


@dataclass(frozen=True, eq=False)
class PackageRange:
    """A dependency as declared in a manifest.

    Instances compare and hash by identity: two declarations with the same
    text are still two different entries of a change set.

    Attributes:
        name: Package name as written in the manifest.
        source: Source kind the package is obtained from.
        constraint: Allowed versions.
        description: Source specific settings (hosted ``url``, ``path``,
            git ``url``/``ref``, ``sdk`` name).
    """

    name: str
    source: SourceKind = SourceKind.HOSTED
    constraint: VersionRange = ANY
    description: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_hosted(self) -> bool:
        return self.source is SourceKind.HOSTED

    def with_constraint(self, constraint: VersionRange) -> "PackageRange":
        """Return a copy of this declaration allowing *constraint* instead."""
        return dataclasses.replace(self, constraint=constraint)

    def to_id(self, version: Version) -> "PackageId":
        """Pin this declaration to *version*."""
        return PackageId(self.name, version, self.source, dict(self.description))

    def __str__(self) -> str:
        if self.is_hosted:
            return f"{self.name} {self.constraint}"
        return f"{self.name} {self.constraint} from {self.source.value}"

    def __repr__(self) -> str:
        return (
            "PackageRange("
            f"name={self.name!r}, "
            f"source={self.source.value!r}, "
            f"constraint={str(self.constraint)!r}"
            ")"
        )


@dataclass(frozen=True)
class PackageId:
    """One concrete version of a package from a given source."""

    name: str
    version: Version
    source: SourceKind = SourceKind.HOSTED
    description: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


@dataclass(frozen=True)
class Manifest:
    """A parsed manifest. Immutable by convention.

    ``dependencies`` and ``dev_dependencies`` preserve the textual order of
    the file; a name never appears in both.

    Attributes:
        name: Name of the root package.
        version: Version of the root package, if declared.
        sdk_constraints: ``environment`` entries, e.g. ``{"sdk": >=2.12.0}``.
        dependencies: Regular dependencies by name.
        dev_dependencies: Development dependencies by name.
        dependency_overrides: Overrides by name; they replace every
            constraint on that package during resolution.
    """

    name: str
    version: Optional[str] = None
    sdk_constraints: Dict[str, VersionRange] = field(default_factory=dict)
    dependencies: Dict[str, PackageRange] = field(default_factory=dict)
    dev_dependencies: Dict[str, PackageRange] = field(default_factory=dict)
    dependency_overrides: Dict[str, PackageRange] = field(default_factory=dict)

    @property
    def direct_dependency_names(self) -> List[str]:
        """Names of ``dependencies`` followed by ``dev_dependencies``."""
        return [*self.dependencies, *self.dev_dependencies]

    @property
    def direct_dependencies(self) -> List[PackageRange]:
        """Declarations of ``dependencies`` followed by ``dev_dependencies``."""
        return [*self.dependencies.values(), *self.dev_dependencies.values()]

    def section_of(self, name: str) -> Optional[str]:
        """Return the manifest key declaring *name* as a direct dependency."""
        if name in self.dependencies:
            return DEPENDENCIES_KEY
        if name in self.dev_dependencies:
            return DEV_DEPENDENCIES_KEY
        return None


#: Constraint replacements keyed by the original declaration, in manifest order.
ChangeSet = Dict[PackageRange, PackageRange]

"""
Language capability model for depmigrate.

Packages declare the language version they are written against through the
lower bound of their ``environment.sdk`` constraint. A
:class:`LanguageFeature` becomes available from a minimum language version,
so whether a published package version "supports" a feature is a pure
function of its declared metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from packaging.version import Version

from depmigrate.constants import BUILTIN_FEATURES, DEFAULT_LANGUAGE_VERSION
from depmigrate.models.constraint import VersionRange
from depmigrate.models.manifest import PackageId, PackageRange


@dataclass(frozen=True)
class LanguageFeature:
    """A language feature gated on a minimum language version.

    Attributes:
        name: Feature name used on the command line, e.g. ``null-safety``.
        min_language_version: First language version with the feature.
        guide_url: Optional migration guide shown in error messages.
    """

    name: str
    min_language_version: Version
    guide_url: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.name} (language {self.min_language_version})"


def builtin_features() -> Dict[str, LanguageFeature]:
    """Return the features depmigrate knows without configuration."""
    return {
        name: LanguageFeature(name, Version(min_version), guide_url or None)
        for name, (min_version, guide_url) in BUILTIN_FEATURES.items()
    }


def language_version_from_sdk(sdk_constraint: Optional[VersionRange]) -> Version:
    """Derive the declared language version from an SDK constraint.

    The language version is the ``major.minor`` of the constraint's lower
    bound, ignoring any prerelease suffix. Language versions are plain
    ``major.minor`` numbers compared with :mod:`packaging.version`. Packages
    without an SDK constraint, or with an unbounded one, are assumed to
    target :data:`DEFAULT_LANGUAGE_VERSION`.

    Example::

        >>> language_version_from_sdk(parse_constraint(">=2.12.0 <3.0.0"))
        <Version('2.12')>
    """
    if sdk_constraint is None or sdk_constraint.min is None:
        return Version(DEFAULT_LANGUAGE_VERSION)

    # A ">=2.12.0-0" bound still declares language 2.12
    lower = sdk_constraint.min
    return Version(f"{lower.major}.{lower.minor}")


@dataclass(frozen=True)
class PackageDescriptor:
    """Metadata of one described package version.

    Attributes:
        id: The package version that was described.
        language_version: Declared language version, or ``None`` when the
            source cannot tell (e.g. an unfetched git checkout).
        dependencies: The package's own regular dependencies.
    """

    id: PackageId
    language_version: Optional[Version] = None
    dependencies: Mapping[str, PackageRange] = field(default_factory=dict)

    def supports(self, feature: LanguageFeature) -> bool:
        """Return True if this version declares support for *feature*."""
        if self.language_version is None:
            return False
        return self.language_version >= feature.min_language_version

"""
Unified data model exports for depmigrate.

Example:
    >>> from depmigrate.models import Manifest, PackageRange, parse_constraint
"""

from __future__ import annotations

from depmigrate.models.constraint import (
    ANY,
    InvalidConstraint,
    VersionRange,
    at_least,
    compatible_with,
    exact,
    is_prerelease,
    parse_constraint,
    parse_version,
)
from depmigrate.models.manifest import (
    ChangeSet,
    Manifest,
    PackageId,
    PackageRange,
    SourceKind,
)
from depmigrate.models.capability import (
    LanguageFeature,
    PackageDescriptor,
    builtin_features,
    language_version_from_sdk,
)

__all__ = [
    # Constraints
    "ANY",
    "InvalidConstraint",
    "VersionRange",
    "at_least",
    "compatible_with",
    "exact",
    "is_prerelease",
    "parse_constraint",
    "parse_version",
    # Manifest
    "ChangeSet",
    "Manifest",
    "PackageId",
    "PackageRange",
    "SourceKind",
    # Capabilities
    "LanguageFeature",
    "PackageDescriptor",
    "builtin_features",
    "language_version_from_sdk",
]

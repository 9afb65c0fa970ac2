"""Target selection for a feature upgrade.

Decides which direct dependencies an upgrade touches and rejects requests
for names the manifest does not declare directly. The check runs before
any metadata is fetched.
"""

from __future__ import annotations

from typing import List, Sequence

from depmigrate.models import Manifest
from depmigrate.exceptions import UsageError
from depmigrate.constants import COMMAND_NAME


def select_targets(
    requested: Sequence[str],
    manifest: Manifest,
    feature_name: str,
) -> List[str]:
    """Return the dependency names to upgrade.

    Args:
        requested: Names given by the caller; empty means every direct
            dependency and dev dependency.
        manifest: The manifest being upgraded.
        feature_name: Feature name, used in the error message.

    Returns:
        Target names. Requested names keep the caller's order (duplicates
        dropped); the default follows manifest declaration order.

    Raises:
        UsageError: Some requested names are not direct dependencies. All
            of them are listed.
    """
    declared = manifest.direct_dependency_names
    if not requested:
        return declared

    known = set(declared)
    offending = [name for name in dict.fromkeys(requested) if name not in known]
    if offending:
        lines = [
            f"Dependencies specified in `{COMMAND_NAME} --feature {feature_name} "
            "<dependencies>` must be direct 'dependencies' or 'dev_dependencies', "
            "following packages are not:",
        ]
        lines.extend(f" - {name}" for name in offending)
        raise UsageError("\n".join(lines), names=offending)

    return list(dict.fromkeys(requested))

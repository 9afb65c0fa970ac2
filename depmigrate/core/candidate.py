"""Candidate manifest construction.

The candidate is the original manifest with the probed constraints put in
place of the targets' own. It only drives trial resolution and is never
written anywhere.
"""

from __future__ import annotations

import dataclasses
from typing import Dict, Mapping

from depmigrate.models import Manifest, PackageRange


def build_candidate_manifest(
    original: Manifest,
    probed: Mapping[str, PackageRange],
) -> Manifest:
    """Return *original* with the ranges in *probed* substituted by name.

    Names, SDK constraints and overrides are carried over unchanged, as
    are dependencies missing from *probed*.
    """

    def substitute(section: Dict[str, PackageRange]) -> Dict[str, PackageRange]:
        return {name: probed.get(name, dep) for name, dep in section.items()}

    return dataclasses.replace(
        original,
        dependencies=substitute(original.dependencies),
        dev_dependencies=substitute(original.dev_dependencies),
    )

"""
depmigrate: capability-driven dependency constraint upgrades.

depmigrate raises the constraints of a pub-style manifest so that every
selected hosted dependency starts at the first published version supporting
a language feature (for example null-safety), verifies that the new
constraints resolve as a whole graph, and rewrites only the constraints that
actually change.

Typical usage::

    $ depmigrate upgrade --null-safety --dry-run
    $ depmigrate upgrade --feature null-safety http path
"""

from __future__ import annotations

from depmigrate.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "depmigrate Contributors"
__license__ = "Apache-2.0"
__description__ = "Upgrade manifest constraints to versions supporting a language feature."

__all__ = [
    "__version__",
]

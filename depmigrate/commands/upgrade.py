"""Upgrade command implementation for depmigrate.

Raises dependency constraints in a ``pubspec.yaml`` manifest so that every
selected hosted dependency starts at its first version supporting a
language feature.

The command wires together the core components:

1. **ManifestParser** parses the manifest
2. **SourceRegistry** serves package metadata (one registry fetch per
   package, shared by every step)
3. **GreedyResolver** checks that the new constraints resolve together
4. **ConstraintMigrator** probes, diffs, patches and reports

Without ``--feature`` the command only re-resolves the manifest and
rewrites the lock file.

Typical usage::

    # Preview a null-safety upgrade of every direct dependency
    $ depmigrate upgrade --null-safety --dry-run

    # Upgrade only some dependencies
    $ depmigrate upgrade --feature null-safety http path

    # Re-resolve and lock without touching constraints
    $ depmigrate upgrade
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

import click

from depmigrate.exceptions import UsageError
from depmigrate.context import pass_context, DepMigrateContext
from depmigrate.constants import MANIFEST_FILE_NAME, NULL_SAFETY_FEATURE
from depmigrate.core import (
    ConstraintMigrator,
    DependencyAcquirer,
    GreedyResolver,
    ManifestParser,
    SolveMode,
    SourceRegistry,
)
from depmigrate.utils import (
    HTTPClient,
    get_logger,
    print_lines,
    print_success,
    print_warning,
    status,
)

logger = get_logger("commands.upgrade")

_OFFLINE_WARNING = (
    "Upgrading when offline may not update you to the latest versions of "
    "your dependencies."
)


@click.command()
@click.argument("dependencies", nargs=-1)
@click.option(
    "--file",
    "-f",
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=MANIFEST_FILE_NAME,
    show_default=True,
    help="Manifest to upgrade.",
)
@click.option(
    "--feature",
    metavar="NAME",
    help="Upgrade constraints to versions supporting this language feature.",
)
@click.option(
    "--null-safety",
    "null_safety",
    is_flag=True,
    help="Shorthand for --feature null-safety.",
)
@click.option("--nullsafety", "nullsafety", is_flag=True, hidden=True)
@click.option(
    "--dry-run",
    "-n",
    is_flag=True,
    help="Report what would change without changing anything.",
)
@click.option(
    "--offline",
    is_flag=True,
    help="Use cached package metadata only.",
)
@click.option(
    "--backup",
    is_flag=True,
    help="Create backup file before updating.",
)
@pass_context
def upgrade(
    ctx: DepMigrateContext,
    dependencies: Tuple[str, ...],
    file: Path,
    feature: Optional[str],
    null_safety: bool,
    nullsafety: bool,
    dry_run: bool,
    offline: bool,
    backup: bool,
) -> None:
    """Upgrade dependency constraints.

    With ``--feature`` (or ``--null-safety``) every named dependency, or
    every direct dependency when none is named, is raised to its first
    published version supporting the feature. The upgrade is all or
    nothing: if any of them has no such version, nothing is changed.

    Args:
        ctx: depmigrate context with configuration and verbosity settings.
        dependencies: Direct dependencies to upgrade (empty = all).
        file: Path to the manifest (default: ``pubspec.yaml``).
        feature: Language feature the new constraints must support.
        null_safety: Same as ``--feature null-safety``.
        nullsafety: Hidden alias of ``--null-safety``.
        dry_run: Compute and report without writing anything.
        offline: Serve package metadata from the local cache only.
        backup: Create a timestamped backup before modifying the manifest.

    Exits:
        0 on success, non-zero with the error's exit code otherwise.

    Example::

        $ depmigrate upgrade --null-safety --dry-run
        $ depmigrate upgrade --feature null-safety http path
    """
    if null_safety or nullsafety:
        if feature and feature != NULL_SAFETY_FEATURE:
            raise UsageError("--null-safety cannot be combined with --feature")
        feature = NULL_SAFETY_FEATURE

    if dependencies and not feature:
        raise UsageError(
            "Naming dependencies requires --feature (or --null-safety)",
            names=dependencies,
        )

    asyncio.run(
        _upgrade_async(
            ctx,
            file,
            feature,
            list(dependencies),
            dry_run=dry_run,
            offline=offline,
            backup=backup,
        )
    )


# ---------------------------------------------------------------------------
# Async orchestration
# ---------------------------------------------------------------------------


async def _upgrade_async(
    ctx: DepMigrateContext,
    file: Path,
    feature_name: Optional[str],
    requested: List[str],
    *,
    dry_run: bool,
    offline: bool,
    backup: bool,
) -> None:
    """Async implementation of the upgrade command.

    Raises:
        DepMigrateError: Any failure; nothing has been written when it is
            raised before the manifest patch step.
    """
    config = ctx.config
    feature = config.get_feature(feature_name) if feature_name else None

    if offline:
        print_warning(_OFFLINE_WARNING)

    async with HTTPClient(
        timeout=config.timeout,
        max_concurrency=config.concurrent_limit,
    ) as http:
        registry = SourceRegistry(
            None if offline else http,
            root_dir=file.resolve().parent,
            hosted_url=config.hosted_url,
            cache_dir=Path(config.cache_dir).expanduser(),
            offline=offline,
            concurrent_limit=config.concurrent_limit,
        )
        resolver = GreedyResolver(registry)
        parser = ManifestParser()
        acquirer = DependencyAcquirer(
            resolver, parser=parser, hosted_url=config.hosted_url
        )

        if feature is None:
            with status("Resolving dependencies..."):
                if dry_run:
                    manifest = parser.parse_file(file)
                    resolution = await resolver.resolve(manifest, SolveMode.UPGRADE)
                else:
                    resolution = await acquirer.acquire(file, SolveMode.UPGRADE)
            verb = "Would lock" if dry_run else "Locked"
            print_success(f"{verb} {len(resolution)} package(s)")
            _log_cached(registry)
            return

        migrator = ConstraintMigrator(
            registry,
            resolver,
            feature,
            parser=parser,
            acquirer=acquirer,
        )
        with status(f"Upgrading to {feature.name} compatible versions..."):
            result = await migrator.migrate(
                file,
                requested,
                dry_run=dry_run,
                backup=backup,
            )
        _log_cached(registry)

    print_lines(result.summary)
    if result.warning:
        print_warning(result.warning)

    logger.debug(
        "Upgrade finished: %d change(s), %d unmigrated, written=%s",
        len(result.changes),
        len(result.unmigrated),
        result.written,
    )


def _log_cached(registry: SourceRegistry) -> None:
    cached = registry.cached_packages()
    if cached:
        logger.info(
            "Read metadata for %d package(s) from the offline cache: %s",
            len(cached),
            ", ".join(cached),
        )

"""
Command-line interface for depmigrate.

This module provides the main CLI entry point and handles global options,
configuration loading, and command registration.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from depmigrate.config import load_config
from depmigrate.__version__ import __version__
from depmigrate.context import DepMigrateContext
from depmigrate.exceptions import DepMigrateError
from depmigrate.constants import EXIT_FAILURE, EXIT_INTERRUPTED, EXIT_SUCCESS
from depmigrate.utils.console import print_error, print_warning, reconfigure_console
from depmigrate.utils.logger import get_logger, level_for_verbosity, setup_logging

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="DEPMIGRATE_CONFIG",
)
@click.option(
    "--hosted-url",
    help="Base url of the package registry.",
    envvar="DEPMIGRATE_HOSTED_URL",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv).",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="DEPMIGRATE_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="depmigrate",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    hosted_url: Optional[str],
    verbose: int,
    color: bool,
) -> None:
    """depmigrate - upgrade manifest constraints to feature-capable versions.

    \b
    Available commands:
      depmigrate upgrade           Upgrade dependency constraints

    \b
    Examples:
      depmigrate upgrade --null-safety --dry-run
      depmigrate upgrade --feature null-safety http path
      depmigrate -v upgrade

    Use ``depmigrate COMMAND --help`` for command-specific options.
    """
    _configure_logging(verbose)

    # ConfigError propagates to main(), which maps it to its exit code
    loaded_config = load_config(config)
    if hosted_url:
        loaded_config.hosted_url = hosted_url.rstrip("/")

    depmigrate_ctx = DepMigrateContext()
    depmigrate_ctx.config_path = config or loaded_config.source_path
    depmigrate_ctx.color = color
    depmigrate_ctx.verbose = verbose
    depmigrate_ctx.config = loaded_config
    ctx.obj = depmigrate_ctx

    # Respect NO_COLOR for downstream libraries
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    logger.debug("depmigrate v%s", __version__)
    logger.debug("Config path: %s", depmigrate_ctx.config_path)
    logger.debug("Configuration: %s", loaded_config.to_log_dict())
    logger.debug("Verbosity: %s | Color: %s", verbose, color)


def _configure_logging(verbose: int) -> None:
    """Configure logging level based on verbosity flags."""
    level = level_for_verbosity(verbose)
    setup_logging(level=level, verbose=verbose >= 2)
    logger.debug("Logging initialized at %s level", logging.getLevelName(level))


# Register CLI subcommands
from depmigrate.commands.upgrade import upgrade  # noqa: E402

cli.add_command(upgrade)


def main() -> int:
    """Main entry point for the depmigrate CLI.

    Returns:
        Exit code:
            0   Success
            1   Unexpected error
            2   Usage error (Click)
            64  Invalid arguments or configuration
            65  Unusable data (no capable version, unresolvable graph,
                invalid manifest)
            69  Package registry unavailable
            74  File read or write failed
            130 Interrupted by user (Ctrl+C)
    """
    try:
        cli(standalone_mode=False)
        return EXIT_SUCCESS

    except click.exceptions.Abort:
        print_warning("Operation cancelled by user")
        return EXIT_INTERRUPTED

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except DepMigrateError as exc:
        print_error(str(exc))
        logger.debug(
            "%s details: %s",
            type(exc).__name__,
            exc.details or "<none>",
            exc_info=True,
        )
        return exc.exit_code

    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        return EXIT_INTERRUPTED

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())

"""
Executable module for depmigrate.

Running:
    python -m depmigrate

is equivalent to:
    depmigrate

This module simply forwards execution to the CLI entrypoint defined in
`depmigrate.cli`.
"""

from __future__ import annotations

import sys


def _print_startup_error(exc: ImportError) -> None:
    """Explain on stderr why the CLI could not be loaded."""
    sys.stderr.write("depmigrate CLI could not be loaded.\n")
    sys.stderr.write(f"Python version : {sys.version}\n")
    try:
        from depmigrate.__version__ import __version__

        sys.stderr.write(f"depmigrate version: {__version__}\n")
    except ImportError:
        sys.stderr.write("depmigrate version: <unknown>\n")
    sys.stderr.write(f"ImportError: {exc}\n")


def main() -> int:
    """
    Main entrypoint when executing `python -m depmigrate`.

    Returns:
        Exit code returned by the CLI.
    """
    try:
        # Import lazily so dependencies are only loaded during CLI use
        from depmigrate.cli import main as cli_main
    except ImportError as exc:
        _print_startup_error(exc)
        return 1

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())

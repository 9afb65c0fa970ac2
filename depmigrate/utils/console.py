"""
Console output utilities for depmigrate using Rich.

This module provides user-facing output helpers for CLI commands.
For diagnostic or debug output, use :mod:`depmigrate.utils.logger`.

Guidelines:
- print_* functions: user-facing status messages
- status: transient spinner around slow steps, terminal only
- Logging should never go through this module
"""

from __future__ import annotations

import os
import sys
import threading
import contextlib
from typing import Iterable, Iterator, Optional

from rich.theme import Theme
from rich.console import Console

# ---------------------------------------------------------------------------
# Theme configuration
# ---------------------------------------------------------------------------

DEPMIGRATE_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "dim": "dim",
    }
)

# ---------------------------------------------------------------------------
# Console lifecycle management
# ---------------------------------------------------------------------------

_console: Optional[Console] = None
_console_lock = threading.Lock()


def _should_use_color() -> bool:
    """Return True if colored output should be enabled."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("CI"):
        return False
    try:
        return sys.stdout.isatty()
    except (AttributeError, OSError):
        return False


def _get_console() -> Console:
    """Return a singleton Rich Console instance."""
    global _console

    if _console is None:
        with _console_lock:
            if _console is None:
                use_color = _should_use_color()
                _console = Console(
                    theme=DEPMIGRATE_THEME,
                    no_color=not use_color,
                    highlight=False,
                )
    return _console


def reconfigure_console() -> None:
    """Reset the global console instance.

    Useful if environment variables (e.g. NO_COLOR) change at runtime.
    """
    global _console
    with _console_lock:
        _console = None


# ---------------------------------------------------------------------------
# Status message helpers
# ---------------------------------------------------------------------------


def print_success(message: str, *, prefix: str = "[OK]") -> None:
    """Print a success message."""
    _get_console().print(
        f"{prefix} {message}", style="success", markup=False, soft_wrap=True
    )


def print_error(message: str, *, prefix: str = "[ERROR]") -> None:
    """Print an error message."""
    _get_console().print(
        f"{prefix} {message}", style="error", markup=False, soft_wrap=True
    )


def print_warning(message: str, *, prefix: str = "[WARNING]") -> None:
    """Print a warning message."""
    _get_console().print(
        f"{prefix} {message}", style="warning", markup=False, soft_wrap=True
    )


def print_lines(lines: Iterable[str]) -> None:
    """Print report lines verbatim: no markup, no wrapping."""
    console = _get_console()
    for line in lines:
        console.print(line, markup=False, soft_wrap=True)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@contextlib.contextmanager
def status(message: str) -> Iterator[None]:
    """Show a spinner with *message* while the block runs.

    Nothing is drawn when stdout is not a terminal, so piped output and
    CI logs stay clean.
    """
    console = _get_console()
    if not console.is_terminal:
        yield
        return

    with console.status(message):
        yield

"""Shared helpers for the awcompiler CLI.

Console output, exit codes and logging setup used by every command.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2

console = Console()


def _setup_logging(verbose: bool, quiet: bool) -> None:
    """Configure root logging with a rich handler.

    Args:
        verbose: Show debug messages.
        quiet: Show only errors. Ignored when verbose is set.

    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def _error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}")


def _success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {escape(message)}")


def _warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

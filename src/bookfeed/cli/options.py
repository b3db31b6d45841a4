# ABOUTME: Shared Click options and arguments for bookfeed CLI commands.
# ABOUTME: Provides reusable decorators for the library folder, profile file, and log level.

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

library_argument = click.argument(
    "library",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)

profile_option = click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON catalog profile (default: built-in defaults).",
)

log_level_option = click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Verbosity of generation messages.",
)


def configure_logging(level: str, console: Console) -> None:
    """Route library log records through Rich at the requested level."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )

# ABOUTME: The `bookfeed profile` command printing the effective catalog profile.
# ABOUTME: Shows defaults merged with a profile file, after clamping and device mode.

import json
from pathlib import Path

import click
from rich.console import Console

from bookfeed.cli.options import profile_option
from bookfeed.config.profile import ProfileError, load_profile


@click.command()
@profile_option
def profile(profile_path: Path | None) -> None:
    """Print the effective catalog profile as JSON."""
    try:
        loaded = load_profile(profile_path)
    except ProfileError as exc:
        Console(stderr=True).print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc

    click.echo(json.dumps(loaded.to_dict(), indent=2, sort_keys=True))

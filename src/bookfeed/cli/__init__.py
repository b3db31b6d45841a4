# ABOUTME: CLI package for bookfeed, built on Click.
# ABOUTME: Defines the root command group and registers subcommands.

import click

from bookfeed.cli.commands import generate_cmd, ls_cmd, profile_cmd


@click.group()
@click.version_option(package_name="bookfeed")
def cli() -> None:
    """bookfeed - static OPDS catalogs from Calibre libraries."""


cli.add_command(generate_cmd.generate)
cli.add_command(ls_cmd.ls)
cli.add_command(profile_cmd.profile)

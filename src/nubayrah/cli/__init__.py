# ABOUTME: CLI package for nubayrah, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from nubayrah.cli.commands import (
    cover_cmd,
    edit_cmd,
    import_cmd,
    info_cmd,
    inspect_cmd,
    ls_cmd,
    rm_cmd,
)

_HANDLER_NAME = "nubayrah-cli"


def setup_logging(verbose: bool) -> None:
    """Send nubayrah's log records to stderr through Rich.

    Warnings and above are shown by default; --verbose adds debug output.
    Calling this again only adjusts the level.
    """
    logger = logging.getLogger("nubayrah")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        return

    handler = RichHandler(
        console=Console(stderr=True), show_path=False, rich_tracebacks=False
    )
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)


@click.group()
@click.version_option(package_name="nubayrah")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """nubayrah - manage a library of EPUB files and their metadata."""
    setup_logging(verbose)


cli.add_command(import_cmd.import_command)
cli.add_command(inspect_cmd.inspect)
cli.add_command(ls_cmd.ls)
cli.add_command(info_cmd.info)
cli.add_command(edit_cmd.edit)
cli.add_command(cover_cmd.cover)
cli.add_command(rm_cmd.rm)

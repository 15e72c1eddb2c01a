# ABOUTME: The `nubayrah ls` command for listing cataloged books.
# ABOUTME: Displays a Rich table of all books in the library database.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from nubayrah.cli.options import db_option, open_catalog

console = Console()


@click.command("ls")
@db_option
@click.option("--author", "author_filter", default=None, help="Only show books by this author.")
def ls(db_path: Path | None, author_filter: str | None) -> None:
    """List all books in the library catalog."""
    with open_catalog(db_path) as catalog:
        records = catalog.list_all()

    if author_filter:
        needle = author_filter.casefold()
        records = [r for r in records if needle in r.metadata.author.casefold()]

    if not records:
        console.print("[yellow]No books in the library.[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Series")
    table.add_column("Lang", width=5)

    for record in records:
        meta = record.metadata
        table.add_row(
            record.library_id[:8],
            meta.title,
            meta.author or "[dim]unknown[/dim]",
            meta.series_display,
            meta.language or "?",
        )

    console.print(table)
    console.print(f"\n[dim]{len(records)} book(s)[/dim]")

# ABOUTME: The `nubayrah info` command for displaying detailed book metadata.
# ABOUTME: Shows all fields for a single cataloged book by library id.

from pathlib import Path

import click
from rich.console import Console

from nubayrah.cli.display import metadata_table
from nubayrah.cli.options import db_option, find_book, open_catalog

console = Console()


@click.command("info")
@click.argument("book_id")
@db_option
def info(book_id: str, db_path: Path | None) -> None:
    """Show detailed metadata for a book by library id (or an id prefix)."""
    with open_catalog(db_path) as catalog:
        record = find_book(catalog, book_id, console)

    table = metadata_table(record.metadata)
    table.add_row("File", str(record.file_path))
    if not record.file_path.exists():
        table.add_row("", "[red]file is missing[/red]")
    table.add_row("Added", record.date_added)
    table.add_row("Modified", record.date_modified)
    console.print(table)

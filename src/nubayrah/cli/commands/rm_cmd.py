# ABOUTME: The `nubayrah rm` command for removing a book from the catalog.
# ABOUTME: Optionally deletes the EPUB file from the library as well.

from pathlib import Path

import click
from rich.console import Console

from nubayrah.cli.options import db_option, find_book, open_catalog

console = Console()


@click.command("rm")
@click.argument("book_id")
@db_option
@click.option(
    "--delete-file",
    is_flag=True,
    default=False,
    help="Also delete the EPUB file from the library.",
)
def rm(book_id: str, db_path: Path | None, delete_file: bool) -> None:
    """Remove a book from the catalog by library id (or an id prefix)."""
    with open_catalog(db_path) as catalog:
        record = find_book(catalog, book_id, console)
        catalog.delete_book(record.library_id)

    console.print(f"Removed [bold]{record.metadata.title}[/bold] from the catalog")

    if delete_file:
        try:
            record.file_path.unlink()
        except FileNotFoundError:
            console.print(f"[yellow]File already gone:[/yellow] {record.file_path}")
        except OSError as exc:
            console.print(f"[red]Could not delete {record.file_path}:[/red] {exc}")
            raise SystemExit(1) from exc
        else:
            console.print(f"Deleted {record.file_path}")

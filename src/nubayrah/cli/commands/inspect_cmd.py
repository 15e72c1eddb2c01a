# ABOUTME: The `nubayrah inspect` command for viewing EPUB metadata.
# ABOUTME: Shows extracted metadata and the cover location for a single EPUB file.

from pathlib import Path

import click
from rich.console import Console

from nubayrah.cli.display import metadata_table
from nubayrah.formats.epub import open_epub
from nubayrah.formats.errors import CoverNotFoundError, EpubError

console = Console()


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect(path: Path) -> None:
    """Show metadata extracted from an EPUB file."""
    try:
        with open_epub(path) as book:
            meta = book.metadata
            try:
                cover = book.cover_path()
            except CoverNotFoundError:
                cover = ""
    except EpubError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    table = metadata_table(meta, title=path.name)
    table.add_row("Cover", cover or "[dim]none[/dim]")
    console.print(table)

# ABOUTME: The `nubayrah cover` command for extracting or replacing an EPUB's cover image.
# ABOUTME: Replacement images are converted to the format of the existing cover.

from pathlib import Path

import click
from rich.console import Console

from nubayrah.formats.epub import open_epub
from nubayrah.formats.errors import EpubError

console = Console()


@click.command("cover")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--extract",
    "extract_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Write the cover image into this directory.",
)
@click.option(
    "--set",
    "image_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Replace the cover with this image.",
)
def cover(path: Path, extract_dir: Path | None, image_path: Path | None) -> None:
    """Extract or replace the cover image of an EPUB file."""
    if (extract_dir is None) == (image_path is None):
        raise click.UsageError("Pass exactly one of --extract or --set.")

    try:
        with open_epub(path) as book:
            if extract_dir is not None:
                extract_dir.mkdir(parents=True, exist_ok=True)
                written = book.extract_cover_image(extract_dir)
                console.print(f"[green]Extracted[/green] {written}")
                return

            book.set_cover_image(image_path.read_bytes())
            target = book.cover_path()
            book.write_changes()
    except EpubError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    console.print(f"[green]Replaced cover[/green] {target} in {path.name}")

# ABOUTME: The `nubayrah import` command for adding EPUBs to the library.
# ABOUTME: Copies each file into <library>/<author>/<title>.epub and catalogs it.

from pathlib import Path

import click
from rich.console import Console

from nubayrah.cli.options import (
    DEFAULT_LIBRARY_ROOT,
    PLATFORM_PROFILE,
    db_option,
    library_option,
    open_catalog,
)
from nubayrah.core.importer import CommitFn, ImportResult, import_file
from nubayrah.db.catalog import DuplicateBookError, LibraryCatalog
from nubayrah.formats.errors import EpubError

console = Console()


def _expand_paths(paths: tuple[Path, ...]) -> list[Path]:
    """Files as given; directories contribute every .epub beneath them."""
    found: list[Path] = []
    for path in paths:
        if path.is_dir():
            found.extend(sorted(path.rglob("*.epub")))
        else:
            found.append(path)
    return found


def _commit_to(catalog: LibraryCatalog) -> CommitFn:
    def commit(result: ImportResult) -> None:
        catalog.add_book(result.metadata, result.path)

    return commit


@click.command("import")
@click.argument(
    "paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, path_type=Path),
)
@db_option
@library_option
@click.option(
    "--cover/--no-cover",
    "extract_cover",
    default=True,
    help="Also save each book's cover image next to it (default: on).",
)
def import_command(
    paths: tuple[Path, ...],
    db_path: Path | None,
    library_root: Path | None,
    extract_cover: bool,
) -> None:
    """Import EPUB files (or directories of them) into the library."""
    epub_files = _expand_paths(paths)
    if not epub_files:
        console.print("[yellow]No EPUB files found.[/yellow]")
        return

    root = (library_root or DEFAULT_LIBRARY_ROOT).resolve()
    added = 0
    failures: list[tuple[Path, str]] = []

    with open_catalog(db_path) as catalog:
        commit = _commit_to(catalog)
        for epub_path in epub_files:
            try:
                result = import_file(
                    epub_path,
                    root,
                    profile=PLATFORM_PROFILE,
                    commit=commit,
                    extract_cover=extract_cover,
                )
            except (EpubError, DuplicateBookError) as exc:
                failures.append((epub_path, str(exc)))
                continue
            added += 1
            console.print(f"  [green]Added:[/green] {result.path}")

    parts = []
    if added:
        parts.append(f"[green]{added} added[/green]")
    if failures:
        parts.append(f"[red]{len(failures)} error(s)[/red]")
    console.print(", ".join(parts))

    if failures:
        console.print(f"\n[yellow]{len(failures)} file(s) could not be imported:[/yellow]")
        for path, msg in failures:
            console.print(f"  [dim]{path.name}:[/dim] {msg}")
        raise SystemExit(1)

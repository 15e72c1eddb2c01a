# ABOUTME: Shared Click options and defaults for nubayrah CLI commands.
# ABOUTME: Provides --db and --library, and the filename profile for this platform.

import sys
from collections.abc import Iterator
from contextlib import closing, contextmanager
from pathlib import Path

import click
from rich.console import Console

from nubayrah.core.naming import profile_for_platform
from nubayrah.db.catalog import LibraryCatalog
from nubayrah.db.connection import DEFAULT_DB_PATH, open_library
from nubayrah.db.mapping import BookRecord

DEFAULT_LIBRARY_ROOT = Path.home() / "nubayrah"

PLATFORM_PROFILE = profile_for_platform(sys.platform)

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    envvar="NUBAYRAH_DB",
    show_envvar=True,
    help=f"Path to library database (default: {DEFAULT_DB_PATH})",
)

library_option = click.option(
    "--library",
    "library_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    envvar="NUBAYRAH_LIBRARY",
    show_envvar=True,
    help=f"Library root directory (default: {DEFAULT_LIBRARY_ROOT})",
)


@contextmanager
def open_catalog(db_path: Path | None) -> Iterator[LibraryCatalog]:
    """Open the catalog for one command and close the connection afterwards."""
    with closing(open_library(db_path or DEFAULT_DB_PATH)) as conn:
        yield LibraryCatalog(conn)


def find_book(catalog: LibraryCatalog, book_ref: str, console: Console) -> BookRecord:
    """Look up a book by full library id or by an unambiguous id prefix.

    Prints an error and exits with status 1 when nothing or more than one
    book matches.
    """
    record = catalog.get_by_id(book_ref)
    if record is not None:
        return record

    matches = catalog.find_by_id_prefix(book_ref) if book_ref else []
    if len(matches) == 1:
        return matches[0]
    if not matches:
        console.print(f"[red]Book {book_ref} not found.[/red]")
    else:
        console.print(f"[red]'{book_ref}' matches {len(matches)} books; use a longer id.[/red]")
    raise SystemExit(1)

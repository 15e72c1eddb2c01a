# ABOUTME: The `nubayrah edit` command for changing a book's metadata.
# ABOUTME: Rewrites the EPUB's package document and keeps the catalog row in step.

from pathlib import Path
from typing import Any

import click
from rich.console import Console

from nubayrah.cli.options import db_option, find_book, open_catalog
from nubayrah.db.mapping import BookRecord
from nubayrah.formats.epub import open_epub
from nubayrah.formats.errors import EpubError
from nubayrah.metadata.types import Contributor

console = Console()

# CLI option name -> Metadata field, for plain string fields.
_TEXT_FIELDS = {
    "title": "title",
    "title_sort": "title_sort",
    "author": "author",
    "author_sort": "author_sort",
    "language": "language",
    "series": "series",
    "isbn": "isbn",
    "publisher": "publisher",
    "pub_date": "pub_date",
    "rights": "rights",
    "description": "description",
}


def _parse_contributor(value: str) -> Contributor:
    """'Name' or 'Name:role' (role is a MARC relator code such as trl)."""
    name, sep, role = value.rpartition(":")
    if not sep:
        return Contributor(name=value.strip())
    return Contributor(name=name.strip(), role=role.strip())


def _collect_changes(options: dict[str, Any]) -> dict[str, Any]:
    changes: dict[str, Any] = {
        field: options[opt] for opt, field in _TEXT_FIELDS.items() if options[opt] is not None
    }
    if options["clear_series_index"]:
        changes["series_index"] = None
    elif options["series_index"] is not None:
        changes["series_index"] = options["series_index"]
    if options["subjects"]:
        changes["subjects"] = list(options["subjects"])
    if options["clear_subjects"]:
        changes["subjects"] = []
    if options["contributors"]:
        changes["contributors"] = [_parse_contributor(c) for c in options["contributors"]]
    return changes


@click.command("edit")
@click.argument("target")
@db_option
@click.option("--title", default=None, help="Book title.")
@click.option("--title-sort", default=None, help="Sort key for the title.")
@click.option("--author", default=None, help="Primary author.")
@click.option("--author-sort", default=None, help='Sort key for the author, e.g. "Melville, Herman".')
@click.option("--language", default=None, help="Language code, e.g. en.")
@click.option("--series", default=None, help='Series name ("" removes the series).')
@click.option("--series-index", type=float, default=None, help="Position within the series.")
@click.option(
    "--clear-series-index", is_flag=True, default=False, help="Remove the series position."
)
@click.option("--subject", "subjects", multiple=True, help="Subject; repeat to set several.")
@click.option("--clear-subjects", is_flag=True, default=False, help="Remove all subjects.")
@click.option("--isbn", default=None, help="ISBN.")
@click.option("--publisher", default=None, help="Publisher.")
@click.option("--date", "pub_date", default=None, help="Publication date, YYYY-MM-DD.")
@click.option("--rights", default=None, help="Rights statement.")
@click.option("--description", default=None, help="Description or blurb.")
@click.option(
    "--contributor",
    "contributors",
    multiple=True,
    help='Contributor as "Name" or "Name:role"; repeat to set several.',
)
def edit(target: str, db_path: Path | None, **options: Any) -> None:
    """Edit the metadata of a book.

    TARGET is a library id (or id prefix) from `nubayrah ls`, or the path of
    an EPUB file. Cataloged books also have their catalog entry updated.
    """
    changes = _collect_changes(options)
    if not changes:
        console.print("[yellow]Nothing to change.[/yellow]")
        return

    with open_catalog(db_path) as catalog:
        record: BookRecord | None
        target_path = Path(target)
        if target_path.is_file():
            path = target_path
            record = catalog.get_by_path(path.resolve()) or catalog.get_by_path(path)
        else:
            record = find_book(catalog, target, console)
            path = record.file_path

        try:
            with open_epub(path) as book:
                if record is not None:
                    book.assign_library_id(record.library_id)
                book.set_metadata(**changes)
                updated = book.metadata
                book.write_changes()
        except EpubError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise SystemExit(1) from exc

        if record is not None:
            catalog.update_metadata(record.library_id, updated)

    console.print(f"[green]Updated[/green] {path}")

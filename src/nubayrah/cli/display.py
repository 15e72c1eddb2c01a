# ABOUTME: Rich rendering of Metadata shared by the inspect and info commands.
# ABOUTME: Empty optional fields are dimmed rather than hidden so users see what is missing.

from rich.table import Table

from nubayrah.metadata.types import Metadata


def _or_dim(value: str, placeholder: str) -> str:
    return value or f"[dim]{placeholder}[/dim]"


def metadata_table(meta: Metadata, title: str | None = None) -> Table:
    """Build a two-column field/value table for one book."""
    table = Table(title=title, show_header=False, pad_edge=False)
    table.add_column("Field", style="bold", width=14)
    table.add_column("Value")

    table.add_row("Title", meta.title)
    if meta.title_sort:
        table.add_row("Title Sort", meta.title_sort)
    table.add_row("Author", _or_dim(meta.author, "unknown"))
    if meta.author_sort:
        table.add_row("Author Sort", meta.author_sort)
    table.add_row("Language", _or_dim(meta.language, "unknown"))
    table.add_row("Series", _or_dim(meta.series_display, "none"))
    table.add_row("Subjects", _or_dim(", ".join(meta.subjects), "none"))
    table.add_row("ISBN", _or_dim(meta.isbn, "none"))
    table.add_row("Publisher", _or_dim(meta.publisher, "unknown"))
    table.add_row("Published", _or_dim(meta.pub_date, "unknown"))
    if meta.rights:
        table.add_row("Rights", meta.rights)
    if meta.contributors:
        table.add_row("Contributors", "\n".join(str(c) for c in meta.contributors))
    table.add_row("Description", _or_dim(meta.description, "none"))
    if meta.uid:
        table.add_row("UID", meta.uid)
    if meta.library_id:
        table.add_row("Library ID", meta.library_id)
    return table

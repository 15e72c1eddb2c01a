# ABOUTME: Converts between Metadata and SQLite row dictionaries.
# ABOUTME: Subjects and contributors are stored as JSON arrays.

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from nubayrah.metadata.types import Contributor, Metadata


@dataclass
class BookRecord:
    """A cataloged book: Metadata plus where the file lives and when it changed."""

    metadata: Metadata
    file_path: Path
    date_added: str
    date_modified: str

    @property
    def library_id(self) -> str:
        return self.metadata.library_id


def _contributors_to_json(contributors: list[Contributor]) -> str:
    return json.dumps([{"name": c.name, "role": c.role} for c in contributors])


def _contributors_from_json(raw: str | None) -> list[Contributor]:
    if not raw:
        return []
    return [Contributor(name=item["name"], role=item.get("role", "")) for item in json.loads(raw)]


def metadata_to_row(metadata: Metadata, file_path: Path) -> dict[str, Any]:
    """Convert Metadata to a dict suitable for INSERT."""
    return {
        "library_id": metadata.library_id,
        "file_path": str(file_path),
        **metadata_columns(metadata),
    }


def metadata_columns(metadata: Metadata) -> dict[str, Any]:
    """The user-editable metadata columns, as used by both INSERT and UPDATE."""
    return {
        "title": metadata.title,
        "title_sort": metadata.title_sort,
        "author": metadata.author,
        "author_sort": metadata.author_sort,
        "language": metadata.language,
        "series": metadata.series,
        "series_index": metadata.series_index,
        "subjects": json.dumps(metadata.subjects),
        "isbn": metadata.isbn,
        "publisher": metadata.publisher,
        "pub_date": metadata.pub_date,
        "rights": metadata.rights,
        "contributors": _contributors_to_json(metadata.contributors),
        "description": metadata.description,
        "uid": metadata.uid,
    }


def row_to_metadata(row: Any) -> Metadata:
    """Convert a database row (dict-like) back to Metadata."""
    return Metadata(
        title=row["title"],
        title_sort=row["title_sort"],
        author=row["author"],
        author_sort=row["author_sort"],
        language=row["language"],
        series=row["series"],
        series_index=row["series_index"],
        subjects=json.loads(row["subjects"]) if row["subjects"] else [],
        isbn=row["isbn"],
        publisher=row["publisher"],
        pub_date=row["pub_date"],
        rights=row["rights"],
        contributors=_contributors_from_json(row["contributors"]),
        description=row["description"],
        uid=row["uid"],
        library_id=row["library_id"],
    )


def row_to_record(row: Any) -> BookRecord:
    return BookRecord(
        metadata=row_to_metadata(row),
        file_path=Path(row["file_path"]),
        date_added=row["date_added"],
        date_modified=row["date_modified"],
    )

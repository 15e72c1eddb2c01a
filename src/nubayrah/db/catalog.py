# ABOUTME: CRUD operations for the nubayrah library catalog.
# ABOUTME: Add, query, update, and delete books in the SQLite database.

import logging
import sqlite3
from pathlib import Path

from nubayrah.db.mapping import BookRecord, metadata_columns, metadata_to_row, row_to_record
from nubayrah.metadata.types import Metadata

logger = logging.getLogger(__name__)


class DuplicateBookError(Exception):
    """Raised when a library id or file path is already cataloged."""


class BookNotFoundError(LookupError):
    """Raised when no cataloged book has the requested library id."""


class LibraryCatalog:
    """Wraps a sqlite3 connection and provides typed CRUD for the books table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def add_book(self, metadata: Metadata, file_path: Path) -> str:
        """Add a book to the catalog.

        Args:
            metadata: The book's metadata. library_id must be set.
            file_path: Where the book lives in the library.

        Returns:
            The library id of the inserted book.

        Raises:
            ValueError: If metadata has no library_id.
            DuplicateBookError: If the library id or file path is already cataloged.
        """
        if not metadata.library_id:
            raise ValueError("Cannot catalog a book without a library id")

        row = metadata_to_row(metadata, file_path)
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)

        try:
            self._conn.execute(
                f"INSERT INTO books ({columns}) VALUES ({placeholders})",
                list(row.values()),
            )
            self._conn.commit()
        except sqlite3.IntegrityError as exc:
            self._conn.rollback()
            if "UNIQUE constraint failed" in str(exc):
                raise DuplicateBookError(
                    f"Book {metadata.library_id} at {file_path} is already cataloged"
                ) from exc
            raise

        logger.debug("Cataloged %s as %s", file_path, metadata.library_id)
        return metadata.library_id

    def get_by_id(self, library_id: str) -> BookRecord | None:
        """Retrieve a book by its library id."""
        cursor = self._conn.execute("SELECT * FROM books WHERE library_id = ?", (library_id,))
        row = cursor.fetchone()
        return row_to_record(row) if row else None

    def find_by_id_prefix(self, prefix: str) -> list[BookRecord]:
        """Books whose library id starts with prefix, as shown by abbreviated listings."""
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        cursor = self._conn.execute(
            "SELECT * FROM books WHERE library_id LIKE ? ESCAPE '\\' ORDER BY library_id",
            (escaped + "%",),
        )
        return [row_to_record(row) for row in cursor.fetchall()]

    def get_by_path(self, file_path: Path) -> BookRecord | None:
        """Retrieve a book by the path of its file."""
        cursor = self._conn.execute(
            "SELECT * FROM books WHERE file_path = ?", (str(file_path),)
        )
        row = cursor.fetchone()
        return row_to_record(row) if row else None

    def list_all(self) -> list[BookRecord]:
        """Return all books, ordered by author sort key then title."""
        cursor = self._conn.execute(
            "SELECT * FROM books ORDER BY author_sort, author, title_sort, title"
        )
        return [row_to_record(row) for row in cursor.fetchall()]

    def update_metadata(self, library_id: str, metadata: Metadata) -> None:
        """Replace the stored metadata of a book and bump date_modified.

        The library id itself never changes.

        Raises:
            BookNotFoundError: If library_id is not cataloged.
        """
        fields = metadata_columns(metadata)
        set_clause = ", ".join(f"{k} = ?" for k in fields)
        set_clause += ", date_modified = strftime('%Y-%m-%dT%H:%M:%S', 'now')"

        cursor = self._conn.execute(
            f"UPDATE books SET {set_clause} WHERE library_id = ?",
            [*fields.values(), library_id],
        )
        self._conn.commit()

        if cursor.rowcount == 0:
            raise BookNotFoundError(f"Book {library_id} not found")

    def delete_book(self, library_id: str) -> None:
        """Delete a book from the catalog. The file on disk is not touched.

        Raises:
            BookNotFoundError: If library_id is not cataloged.
        """
        cursor = self._conn.execute("DELETE FROM books WHERE library_id = ?", (library_id,))
        self._conn.commit()

        if cursor.rowcount == 0:
            raise BookNotFoundError(f"Book {library_id} not found")

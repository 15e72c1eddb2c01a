# ABOUTME: Public API for the nubayrah library database layer.
# ABOUTME: Exports connection management, catalog operations, and data types.

from nubayrah.db.catalog import BookNotFoundError, DuplicateBookError, LibraryCatalog
from nubayrah.db.connection import DEFAULT_DB_PATH, open_library
from nubayrah.db.mapping import BookRecord

__all__ = [
    "DEFAULT_DB_PATH",
    "BookNotFoundError",
    "BookRecord",
    "DuplicateBookError",
    "LibraryCatalog",
    "open_library",
]

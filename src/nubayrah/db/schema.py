# ABOUTME: SQL DDL statements for the nubayrah library catalog.
# ABOUTME: One books table keyed by the library id assigned on import.

SCHEMA_V1 = """
-- One row per book file in the library
CREATE TABLE books (
    library_id    TEXT PRIMARY KEY,
    file_path     TEXT NOT NULL,
    title         TEXT NOT NULL,
    title_sort    TEXT NOT NULL DEFAULT '',
    author        TEXT NOT NULL DEFAULT '',
    author_sort   TEXT NOT NULL DEFAULT '',
    language      TEXT NOT NULL DEFAULT '',
    series        TEXT NOT NULL DEFAULT '',
    series_index  REAL,
    subjects      TEXT NOT NULL DEFAULT '[]',
    isbn          TEXT NOT NULL DEFAULT '',
    publisher     TEXT NOT NULL DEFAULT '',
    pub_date      TEXT NOT NULL DEFAULT '',
    rights        TEXT NOT NULL DEFAULT '',
    contributors  TEXT NOT NULL DEFAULT '[]',
    description   TEXT NOT NULL DEFAULT '',
    uid           TEXT NOT NULL DEFAULT '',
    date_added    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    date_modified TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE UNIQUE INDEX idx_books_file_path ON books(file_path);
CREATE INDEX idx_books_author ON books(author);
CREATE INDEX idx_books_isbn ON books(isbn) WHERE isbn != '';

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

# (version, sql) pairs applied in order to databases older than version.
MIGRATIONS: list[tuple[int, str]] = []

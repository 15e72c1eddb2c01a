# ABOUTME: SQLite connection management for the nubayrah library catalog.
# ABOUTME: Opens or creates the database, applies schema and migrations.

import logging
import sqlite3
from pathlib import Path

from nubayrah.db.schema import MIGRATIONS, SCHEMA_V1

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".nubayrah" / "library.db"


def _schema_exists(conn: sqlite3.Connection) -> bool:
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    )
    return cursor.fetchone() is not None


def _get_schema_version(conn: sqlite3.Connection) -> int:
    cursor = conn.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
    row = cursor.fetchone()
    return row[0] if row else 0


def _apply_migrations(conn: sqlite3.Connection) -> None:
    """Apply every migration newer than the recorded schema version, in order."""
    current = _get_schema_version(conn)
    for version, sql in MIGRATIONS:
        if version > current:
            logger.debug("Migrating library database to schema version %d", version)
            conn.executescript(sql)


def open_library(path: Path | None = None) -> sqlite3.Connection:
    """Open or create the library database.

    Creates the file and its parent directories if needed and applies the
    schema on first use. Connections use WAL journaling and sqlite3.Row
    rows.

    Args:
        path: Database file. Defaults to ~/.nubayrah/library.db.

    Returns:
        A configured sqlite3.Connection.
    """
    db_path = Path(path) if path is not None else DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")

    if not _schema_exists(conn):
        logger.debug("Creating library database at %s", db_path)
        conn.executescript(SCHEMA_V1)

    _apply_migrations(conn)
    return conn

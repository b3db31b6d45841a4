# ABOUTME: Read-only SQLite connection to a Calibre library's metadata.db.
# ABOUTME: Locates the database inside a library folder and opens it with Row access.

import sqlite3
from pathlib import Path

METADATA_DB_NAME = "metadata.db"


class LibraryNotFoundError(Exception):
    """Raised when a folder does not contain a Calibre metadata.db."""


def metadata_db_path(library_dir: Path) -> Path:
    """Path of the metadata database inside a Calibre library folder."""
    return library_dir / METADATA_DB_NAME


def open_library(library_dir: Path) -> sqlite3.Connection:
    """Open a Calibre library database for reading.

    The connection is opened in SQLite read-only URI mode so catalog
    generation can never modify the user's library. Rows are returned as
    sqlite3.Row for dict-like column access.

    Args:
        library_dir: The Calibre library folder (the one holding metadata.db).

    Returns:
        A configured sqlite3.Connection.

    Raises:
        LibraryNotFoundError: If metadata.db does not exist in library_dir.
    """
    db_path = metadata_db_path(library_dir)
    if not db_path.is_file():
        raise LibraryNotFoundError(f"No {METADATA_DB_NAME} found in {library_dir}")

    conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
    conn.row_factory = sqlite3.Row
    return conn

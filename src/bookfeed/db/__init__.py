# ABOUTME: Public API for the Calibre library store adapter.
# ABOUTME: Exports connection management and the LibraryStore loader.

from bookfeed.db.connection import (
    METADATA_DB_NAME,
    LibraryNotFoundError,
    metadata_db_path,
    open_library,
)
from bookfeed.db.store import LibraryStore, clean_comment, parse_timestamp

__all__ = [
    "METADATA_DB_NAME",
    "LibraryNotFoundError",
    "LibraryStore",
    "clean_comment",
    "metadata_db_path",
    "open_library",
    "parse_timestamp",
]

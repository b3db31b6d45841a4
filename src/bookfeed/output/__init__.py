# ABOUTME: Output collaborators of catalog generation.
# ABOUTME: Exports the Atom page writers, the Pillow image manager, and the search index.

from bookfeed.output.images import (
    RESIZED_COVER_FILENAME,
    THUMBNAIL_FILENAME,
    PillowImageManager,
    write_default_cover,
)
from bookfeed.output.search_index import SearchIndex
from bookfeed.output.writer import DuplicatePageError, FeedWriter, MemoryWriter, render_page

__all__ = [
    "RESIZED_COVER_FILENAME",
    "THUMBNAIL_FILENAME",
    "DuplicatePageError",
    "FeedWriter",
    "MemoryWriter",
    "PillowImageManager",
    "SearchIndex",
    "render_page",
    "write_default_cover",
]

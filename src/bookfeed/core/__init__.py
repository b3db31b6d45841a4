# ABOUTME: Catalog generation pipeline: splitting, pagination, entries, and the tree driver.
# ABOUTME: Exports generate_catalog and the types callers need to drive and inspect a run.

from bookfeed.core.catalog import CatalogResult, generate_catalog
from bookfeed.core.covers import ImageGenerationError, ImageManager
from bookfeed.core.feed import Entry, EntryKind, Link, Page, PageType
from bookfeed.core.paginate import EntryBuildError, SplitOption
from bookfeed.core.state import GenerationCancelled

__all__ = [
    "CatalogResult",
    "Entry",
    "EntryBuildError",
    "EntryKind",
    "GenerationCancelled",
    "ImageGenerationError",
    "ImageManager",
    "Link",
    "Page",
    "PageType",
    "SplitOption",
    "generate_catalog",
]

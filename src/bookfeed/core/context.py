# ABOUTME: Explicit per-run context handed to every generation step.
# ABOUTME: Bundles the library, profile, collaborators, run state, and the list generator.

from datetime import datetime
from functools import cached_property
from typing import Protocol

from bookfeed.config.profile import CatalogProfile
from bookfeed.core.covers import CoverResolver
from bookfeed.core.feed import Page
from bookfeed.core.paginate import ListGenerator
from bookfeed.core.state import GenerationState
from bookfeed.model.library import Library
from bookfeed.model.types import Book


class PageWriter(Protocol):
    """Persists generated pages; called once per page with a unique filename."""

    def write(self, page: Page) -> None: ...


class IndexSink(Protocol):
    """Receives every book whose full entry is generated."""

    def index_book(self, book: Book, detail_url: str, cover_url: str | None) -> None: ...


class CatalogContext:
    """Everything one generation run reads and the state it accumulates."""

    def __init__(
        self,
        library: Library,
        profile: CatalogProfile,
        writer: PageWriter,
        *,
        state: GenerationState,
        covers: CoverResolver,
        now: datetime,
        index_sink: IndexSink | None = None,
    ) -> None:
        self.library = library
        self.profile = profile
        self.writer = writer
        self.state = state
        self.covers = covers
        self.now = now
        self.index_sink = index_sink
        self.pages_written = 0
        self.books_indexed = 0

    @cached_property
    def updated(self) -> str:
        """Timestamp stamped on every page of the run."""
        return self.now.isoformat(timespec="seconds")

    @cached_property
    def lists(self) -> ListGenerator:
        return ListGenerator(self)

    def emit(self, page: Page) -> None:
        self.writer.write(page)
        self.pages_written += 1

# ABOUTME: Shared pytest fixtures for bookfeed tests.
# ABOUTME: Provides book factories, a fake image manager, generation contexts, and a Calibre library.

from datetime import datetime, timezone
from pathlib import Path

import pytest

from bookfeed.config.profile import CatalogProfile
from bookfeed.core.context import CatalogContext
from bookfeed.core.covers import CoverResolver, ImageGenerationError
from bookfeed.core.state import GenerationState
from bookfeed.model.library import Library
from bookfeed.model.types import Author, Book, BookRating, EBookFile, EBookFormat, Series, Tag
from bookfeed.output.writer import MemoryWriter
from tests.fixtures.calibre_library import create_calibre_library

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeImageManager:
    """In-memory image manager recording every generate/delete call."""

    def __init__(
        self,
        existing: set[Path] | None = None,
        mtimes: dict[Path, float] | None = None,
        size_changed: bool = False,
        fail: bool = False,
    ) -> None:
        self.files = set(existing or ())
        self.mtimes = dict(mtimes or {})
        self.size_changed = size_changed
        self.fail = fail
        self.generated: list[Path] = []
        self.deleted: list[Path] = []
        self.recorded = False

    def resized_filename(self, book: Book) -> str:
        return "thumb.jpg"

    def exists(self, path: Path) -> bool:
        return path in self.files

    def last_modified(self, path: Path) -> float:
        return self.mtimes.get(path, 0.0)

    def generate(self, target: Path, source: Path) -> None:
        if self.fail:
            raise ImageGenerationError(f"cannot read {source}")
        self.generated.append(target)
        self.files.add(target)

    def has_size_changed(self) -> bool:
        return self.size_changed

    def delete(self, path: Path) -> None:
        self.deleted.append(path)
        self.files.discard(path)

    def record_size(self) -> None:
        self.recorded = True


@pytest.fixture
def now() -> datetime:
    """Reference time shared by generation tests."""
    return FIXED_NOW


@pytest.fixture
def make_book():
    """Factory for Book entities with sensible defaults."""

    def _make(book_id: str, title: str, **kwargs) -> Book:
        kwargs.setdefault("uuid", f"uuid-{book_id}")
        kwargs.setdefault("path", f"Author/{title} ({book_id})")
        kwargs.setdefault("files", [EBookFile(EBookFormat.EPUB, title)])
        return Book(id=book_id, title=title, **kwargs)

    return _make


@pytest.fixture
def sample_books(make_book) -> list[Book]:
    """Four books sharing an author, a series, a tag, and a rating."""
    eco = Author("1", "Umberto Eco", "Eco, Umberto")
    herbert = Author("2", "Frank Herbert", "Herbert, Frank")
    dune = Series("1", "Dune")
    mystery = Tag("1", "Mystery")
    scifi = Tag("2", "Science Fiction")
    return [
        make_book("1", "The Name of the Rose", authors=[eco], tags=[mystery],
                  rating=BookRating.FIVE, isbn="9780156001311",
                  comment="A mystery set in a medieval monastery."),
        make_book("2", "Foucault's Pendulum", authors=[eco], tags=[mystery],
                  rating=BookRating.FOUR),
        make_book("3", "Dune", authors=[herbert], series=dune, series_index=1.0,
                  tags=[scifi], rating=BookRating.FIVE),
        make_book("4", "Dune Messiah", authors=[herbert], series=dune, series_index=2.0,
                  tags=[scifi]),
    ]


@pytest.fixture
def fake_images():
    """The FakeImageManager class, for tests that configure their own instance."""
    return FakeImageManager


@pytest.fixture
def make_context(now: datetime):
    """Factory building a CatalogContext over in-memory books and a MemoryWriter."""

    def _make(
        books: list[Book],
        profile: CatalogProfile | None = None,
        *,
        library_root: Path | None = None,
        thumbnails: FakeImageManager | None = None,
        covers: FakeImageManager | None = None,
        index_sink=None,
        should_continue=None,
    ) -> CatalogContext:
        profile = profile or CatalogProfile()
        state = GenerationState()
        if should_continue is not None:
            state.should_continue = should_continue
        resolver = CoverResolver(
            profile, state, library_root, thumbnails=thumbnails, covers=covers
        )
        return CatalogContext(
            Library(books=books),
            profile,
            MemoryWriter(),
            state=state,
            covers=resolver,
            now=now,
            index_sink=index_sink,
        )

    return _make


@pytest.fixture
def calibre_library(tmp_path: Path) -> Path:
    """A five-book Calibre library folder with metadata.db and two covers."""
    return create_calibre_library(tmp_path / "Calibre Library")

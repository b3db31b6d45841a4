# ABOUTME: Cover and thumbnail resolution for book entries.
# ABOUTME: Decides when resized images are (re)generated or removed, and which URL to link.

import logging
from pathlib import Path
from typing import Protocol

from bookfeed.config.profile import CatalogProfile
from bookfeed.core import naming
from bookfeed.core.feed import REL_IMAGE, REL_THUMBNAIL, Link
from bookfeed.core.state import BOOK, GenerationState
from bookfeed.model.types import Book

logger = logging.getLogger(__name__)

COVER_FILENAME = "cover.jpg"
IMAGE_TYPE = "image/jpeg"


class ImageGenerationError(Exception):
    """Raised by an image manager when a resized image cannot be produced."""


class ImageManager(Protocol):
    """Produces resized copies of a book's cover image."""

    def resized_filename(self, book: Book) -> str: ...

    def exists(self, path: Path) -> bool: ...

    def last_modified(self, path: Path) -> float: ...

    def generate(self, target: Path, source: Path) -> None: ...

    def has_size_changed(self) -> bool: ...

    def delete(self, path: Path) -> None: ...

    def record_size(self) -> None: ...


class CoverResolver:
    """Chooses the image links of book entries.

    Resized images live next to the source cover in the book folder. They are
    regenerated at most once per run per book, when missing, stale, or made
    at another size; the source cover is never touched. The link chosen for
    a book the first time is reused by all its later entries.
    """

    def __init__(
        self,
        profile: CatalogProfile,
        state: GenerationState,
        library_root: Path | None,
        *,
        thumbnails: ImageManager | None = None,
        covers: ImageManager | None = None,
        default_image_url: str = naming.DEFAULT_IMAGE_FILENAME,
    ) -> None:
        self.profile = profile
        self.state = state
        self.library_root = library_root
        self.thumbnails = thumbnails
        self.covers = covers
        self.default_image_url = default_image_url

    def thumbnail_link(self, book: Book) -> Link:
        href = self._cached_url(
            "thumbnail-url", book, self.thumbnails, self.profile.thumbnail_generate
        )
        return Link(href, REL_THUMBNAIL, IMAGE_TYPE)

    def cover_link(self, book: Book) -> Link:
        if self.profile.use_thumbnails_as_covers:
            href = self._cached_url(
                "thumbnail-url", book, self.thumbnails, self.profile.thumbnail_generate
            )
        else:
            href = self._cached_url("cover-url", book, self.covers, self.profile.cover_resize)
        return Link(href, REL_IMAGE, IMAGE_TYPE)

    def _cached_url(self, name: str, book: Book, manager: ImageManager | None,
                    resize: bool) -> str:
        # Every entry of a book links the image chosen the first time, failures included.
        return self.state.cached(name, book.id, lambda: self._resolve(book, manager, resize))

    def _resolve(self, book: Book, manager: ImageManager | None, resize: bool) -> str:
        if self.library_root is None:
            return self.default_image_url

        folder = self.library_root / book.path
        source = folder / COVER_FILENAME
        source_exists = manager.exists(source) if manager is not None else source.is_file()
        if not source_exists:
            return self.default_image_url

        if manager is None:
            return self._url(book, COVER_FILENAME)

        resized_name = manager.resized_filename(book)
        target = folder / resized_name
        if not resize:
            if manager.exists(target):
                manager.delete(target)
            return self._url(book, COVER_FILENAME)

        if not self.state.is_done(BOOK, book.id) and self._needs_refresh(manager, target, source):
            try:
                manager.generate(target, source)
            except ImageGenerationError as exc:
                logger.warning("Cannot resize cover of %r (id %s): %s", book.title, book.id, exc)
                self.state.warn()
                return self.default_image_url
        return self._url(book, resized_name)

    @staticmethod
    def _needs_refresh(manager: ImageManager, target: Path, source: Path) -> bool:
        if not manager.exists(target):
            return True
        if manager.has_size_changed():
            return True
        return manager.last_modified(target) < manager.last_modified(source)

    def _url(self, book: Book, filename: str) -> str:
        return naming.library_url(self.profile.books_url, book.path, filename)

# ABOUTME: Catalog tree driver: walks the configured sections and writes the whole page tree.
# ABOUTME: Entry point generate_catalog() runs one generation and reports its outcome.

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from bookfeed.config.profile import CatalogProfile
from bookfeed.core import naming
from bookfeed.core.context import CatalogContext, IndexSink, PageWriter
from bookfeed.core.covers import CoverResolver, ImageManager
from bookfeed.core.entries import TitleOption
from bookfeed.core.feed import Entry, Page
from bookfeed.core.paginate import ListRequest, SplitOption
from bookfeed.core.sections import (
    AuthorItems,
    BookItems,
    RatingItems,
    SeriesItems,
    TagItems,
    TagTreeItems,
    books_by_title,
    visible_tag_list,
)
from bookfeed.core.splitting import build_tag_tree, sort_text
from bookfeed.core.state import (
    AUTHOR,
    RATING,
    SERIES,
    TAG,
    Breadcrumbs,
    GenerationCancelled,
    GenerationState,
)
from bookfeed.model.library import Library
from bookfeed.model.types import BookRating

logger = logging.getLogger(__name__)

ALL_BOOKS_TITLE = "All books"
AUTHORS_TITLE = "Authors"
SERIES_TITLE = "Series"
TAGS_TITLE = "Tags"
RATINGS_TITLE = "Ratings"
RECENT_TITLE = "Recent additions"


@dataclass
class CatalogResult:
    """Outcome of one catalog generation run."""

    pages: int = 0
    books: int = 0
    books_indexed: int = 0
    warnings: int = 0
    cancelled: bool = False


class CatalogDriver:
    """Generates the root page, every enabled section, and referenced pages."""

    def __init__(self, ctx: CatalogContext) -> None:
        self.ctx = ctx
        self.authors = AuthorItems(ctx)
        self.series = SeriesItems(ctx)
        self.tags = TagItems(ctx)
        self.ratings = RatingItems(ctx)

    def run(self) -> None:
        profile = self.ctx.profile
        root_url = naming.url_for(naming.ROOT_FILENAME)
        breadcrumbs = Breadcrumbs().extend(profile.catalog_title, root_url)

        sections: list[tuple[bool, Callable[[Breadcrumbs], Entry | None]]] = [
            (profile.generate_all_books, self.all_books),
            (profile.generate_authors, self.all_authors),
            (profile.generate_series, self.all_series),
            (profile.generate_tags, self.all_tags),
            (profile.generate_ratings, self.all_ratings),
            (profile.generate_recent, self.recent_books),
        ]
        entries: list[Entry] = []
        for enabled, section in sections:
            if not enabled:
                continue
            entry = section(breadcrumbs)
            if entry is not None:
                entries.append(entry)

        self.referenced_pages(breadcrumbs)

        self.ctx.emit(
            Page(
                filename=naming.ROOT_FILENAME,
                url=root_url,
                title=profile.catalog_title,
                id="calibre:catalog",
                updated=self.ctx.updated,
                breadcrumbs=Breadcrumbs(),
                entries=entries,
            )
        )

    def all_books(self, breadcrumbs: Breadcrumbs) -> Entry | None:
        logger.info("Generating all books")
        return self.ctx.lists.generate(ListRequest(
            items=books_by_title(self.ctx.library.books),
            kind=BookItems(self.ctx),
            title=ALL_BOOKS_TITLE,
            base_filename=naming.ALL_BOOKS_FILENAME,
            urn="calibre:books",
            breadcrumbs=breadcrumbs,
            split_option=SplitOption.SPLIT_BY_LETTER,
        ))

    def all_authors(self, breadcrumbs: Breadcrumbs) -> Entry | None:
        logger.info("Generating authors")
        library = self.ctx.library
        authors = sorted(
            (a for a in library.authors if library.count_for_author(a)),
            key=lambda a: (sort_text(a.sort_name), a.id),
        )
        return self.ctx.lists.generate(ListRequest(
            items=authors,
            kind=self.authors,
            title=AUTHORS_TITLE,
            base_filename=naming.AUTHORS_FILENAME,
            urn="calibre:authors",
            breadcrumbs=breadcrumbs,
            split_option=SplitOption.SPLIT_BY_LETTER,
        ))

    def all_series(self, breadcrumbs: Breadcrumbs) -> Entry | None:
        logger.info("Generating series")
        library = self.ctx.library
        series = sorted(
            (s for s in library.series if library.count_for_series(s)),
            key=lambda s: (sort_text(s.sort_name), s.id),
        )
        return self.ctx.lists.generate(ListRequest(
            items=series,
            kind=self.series,
            title=SERIES_TITLE,
            base_filename=naming.SERIES_LIST_FILENAME,
            urn="calibre:series",
            breadcrumbs=breadcrumbs,
            split_option=SplitOption.SPLIT_BY_LETTER,
        ))

    def all_tags(self, breadcrumbs: Breadcrumbs) -> Entry | None:
        logger.info("Generating tags")
        tags = visible_tag_list(self.ctx)
        if not tags:
            return None
        delimiter = self.ctx.profile.split_tags_on
        if delimiter:
            root = build_tag_tree(tags, delimiter)
            tree = TagTreeItems(self.ctx, self.tags)
            return self.ctx.lists.generate(tree.level(
                root, breadcrumbs, title=TAGS_TITLE, base_filename=naming.TAGS_FILENAME
            ))
        return self.ctx.lists.generate(ListRequest(
            items=tags,
            kind=self.tags,
            title=TAGS_TITLE,
            base_filename=naming.TAGS_FILENAME,
            urn="calibre:tags",
            breadcrumbs=breadcrumbs,
            split_option=SplitOption.SPLIT_BY_LETTER,
        ))

    def all_ratings(self, breadcrumbs: Breadcrumbs) -> Entry | None:
        logger.info("Generating ratings")
        library = self.ctx.library
        ratings = [
            rating for rating in sorted(BookRating, key=lambda r: r.value, reverse=True)
            if rating is not BookRating.NOTRATED and library.count_for_rating(rating)
        ]
        return self.ctx.lists.generate(ListRequest(
            items=ratings,
            kind=self.ratings,
            title=RATINGS_TITLE,
            base_filename=naming.RATINGS_FILENAME,
            urn="calibre:ratings",
            breadcrumbs=breadcrumbs,
            split_option=SplitOption.NO_SPLIT_NO_PAGINATE,
        ))

    def recent_books(self, breadcrumbs: Breadcrumbs) -> Entry | None:
        logger.info("Generating recent additions")
        dated = [book for book in self.ctx.library.books if book.added is not None]
        dated.sort(key=lambda b: (b.added.timestamp(), b.id), reverse=True)
        recent = dated[: self.ctx.profile.books_in_recent_additions]
        return self.ctx.lists.generate(ListRequest(
            items=recent,
            kind=BookItems(self.ctx, TitleOption.INCLUDE_TIMESTAMP),
            title=RECENT_TITLE,
            base_filename=naming.RECENT_FILENAME,
            urn="calibre:recent",
            breadcrumbs=breadcrumbs,
            split_option=SplitOption.SPLIT_BY_DATE,
        ))

    def referenced_pages(self, breadcrumbs: Breadcrumbs) -> None:
        """Write pages of referenced entities whose own section was not generated.

        Repeats until a pass writes nothing new, so no cross-reference link
        in the catalog points at a missing page.
        """
        library = self.ctx.library
        state = self.ctx.state
        lookups = [
            (AUTHOR, self.authors, {a.id: a for a in library.authors}),
            (SERIES, self.series, {s.id: s for s in library.series}),
            (TAG, self.tags, {t.id: t for t in library.tags}),
            (RATING, self.ratings, {r.value: r for r in BookRating}),
        ]
        while True:
            produced = 0
            for kind, items, by_key in lookups:
                for key in sorted(state.referenced_keys(kind), key=str):
                    if state.is_done(kind, key) or key not in by_key:
                        continue
                    logger.debug("Generating referenced %s page %s", kind, key)
                    items.entry(by_key[key], breadcrumbs)
                    produced += 1
            if not produced:
                break


def generate_catalog(
    library: Library,
    profile: CatalogProfile,
    writer: PageWriter,
    *,
    cover_manager: ImageManager | None = None,
    thumbnail_manager: ImageManager | None = None,
    index_sink: IndexSink | None = None,
    library_root: Path | None = None,
    now: datetime | None = None,
    should_continue: Callable[[], bool] | None = None,
) -> CatalogResult:
    """Generate the complete catalog of a library.

    Args:
        library: The loaded library model.
        profile: Settings for this run.
        writer: Receives every generated page exactly once.
        cover_manager: Produces resized covers; None links the source covers.
        thumbnail_manager: Produces thumbnails; None links the source covers.
        index_sink: Receives every book whose detail page is written.
        library_root: Library folder holding the book folders and covers.
        now: Reference time for page timestamps and date ranges.
        should_continue: Polled between items; returning False stops the run.

    Returns:
        CatalogResult with page, book and warning counts.

    Raises:
        EntryBuildError: If building any entry fails; the catalog is incomplete.
    """
    state = GenerationState(should_continue=should_continue or (lambda: True))
    covers = CoverResolver(
        profile,
        state,
        library_root,
        thumbnails=thumbnail_manager,
        covers=cover_manager,
    )
    ctx = CatalogContext(
        library,
        profile,
        writer,
        state=state,
        covers=covers,
        now=now or datetime.now(timezone.utc),
        index_sink=index_sink,
    )

    result = CatalogResult()
    try:
        CatalogDriver(ctx).run()
    except GenerationCancelled:
        logger.warning("Catalog generation cancelled after %d pages", ctx.pages_written)
        result.cancelled = True
    else:
        for manager in (thumbnail_manager, cover_manager):
            if manager is not None:
                manager.record_size()

    result.pages = ctx.pages_written
    result.books = state.full_entries_built
    result.books_indexed = ctx.books_indexed
    result.warnings = state.warnings + library.load_warnings
    logger.info(
        "Catalog generated: %d pages, %d books, %d warnings",
        result.pages, result.books, result.warnings,
    )
    return result

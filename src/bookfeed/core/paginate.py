# ABOUTME: Split/paginate controller: decides how a list becomes pages and emits them.
# ABOUTME: Letter and date splits produce sub-lists; unsplit lists paginate with a leading next link.

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from bookfeed.core import naming
from bookfeed.core.feed import (
    ACQUISITION_TYPE,
    NAVIGATION_TYPE,
    REL_NEXT,
    REL_SUBSECTION,
    Entry,
    EntryKind,
    Link,
    Page,
)
from bookfeed.core.splitting import OTHER_KEY, split_by_date, split_by_letter
from bookfeed.core.state import Breadcrumbs, GenerationCancelled

if TYPE_CHECKING:
    from bookfeed.core.context import CatalogContext

logger = logging.getLogger(__name__)


class SplitOption(Enum):
    """How a list may be divided into sub-lists or pages."""

    PAGINATE = "paginate"
    NO_SPLIT_NO_PAGINATE = "no_split_no_paginate"
    NO_SPLIT = "no_split"
    SPLIT_BY_DATE = "split_by_date"
    SPLIT_BY_LETTER = "split_by_letter"


class EntryBuildError(Exception):
    """Raised when building the entry of one item fails; fatal to the run."""


class ItemKind(Protocol):
    """Describes the items of a list to the generic list generator."""

    plural: str
    holds_books: bool

    def sort_key(self, item) -> str: ...

    def added(self, item) -> datetime | None: ...

    def label(self, item) -> str: ...

    def item_id(self, item) -> str: ...

    def summarize(self, count: int) -> str: ...

    def entry(self, item, breadcrumbs: Breadcrumbs) -> Entry: ...


@dataclass
class ListRequest:
    """One list to render: its items (already ordered) and where its pages go.

    `split_base` and `split_urn` stay those of the list that was first
    split by letter, so nested letter keys extend them rather than the
    intermediate page names.
    """

    items: list
    kind: ItemKind
    title: str
    base_filename: str
    urn: str
    breadcrumbs: Breadcrumbs
    split_option: SplitOption | None = None
    summary: str | None = None
    depth: int = 1
    split_base: str | None = None
    split_urn: str | None = None


def catalog_entry(title: str, urn: str, url: str, summary: str | None,
                  updated: str, holds_books: bool) -> Entry:
    """Navigation entry pointing at the first page of a list."""
    feed_type = ACQUISITION_TYPE if holds_books else NAVIGATION_TYPE
    return Entry(
        title=title,
        id=urn,
        updated=updated,
        summary=summary,
        links=[Link(url, REL_SUBSECTION, feed_type)],
    )


class ListGenerator:
    """Turns list requests into written pages and returns their catalog entries."""

    def __init__(self, ctx: "CatalogContext") -> None:
        self.ctx = ctx

    def generate(self, request: ListRequest) -> Entry | None:
        """Generate every page of a list.

        Returns:
            The catalog entry of the list's first page, for embedding in the
            parent page; None when the list is empty and no page was written.
        """
        if not request.items:
            return None

        profile = self.ctx.profile
        option = request.split_option or SplitOption.SPLIT_BY_LETTER
        count = len(request.items)

        split_by_date = option is SplitOption.SPLIT_BY_DATE
        split_by_letter = option in (SplitOption.SPLIT_BY_LETTER, SplitOption.SPLIT_BY_DATE)
        if split_by_letter:
            split_by_letter = count > profile.max_before_split and profile.max_split_levels != 0
            if request.kind.holds_books and profile.split_without_letters:
                split_by_letter = False

        logger.debug(
            "List %s: %d items, option=%s, by_date=%s, by_letter=%s",
            request.base_filename, count, option.value, split_by_date, split_by_letter,
        )

        if split_by_date:
            return self._split_by_date(request)
        if split_by_letter:
            return self._split_by_letter(request)

        limit = profile.max_before_paginate
        if option is SplitOption.NO_SPLIT_NO_PAGINATE or not profile.pagination_enabled:
            limit = 0
        return self._paginate(request, limit)

    def _split_by_letter(self, request: ListRequest) -> Entry:
        profile = self.ctx.profile
        split_base = request.split_base or request.base_filename
        split_urn = request.split_urn or request.urn
        page_url = naming.url_for(request.base_filename)
        breadcrumbs = request.breadcrumbs.extend(request.title, page_url)

        entries: list[Entry] = []
        buckets = split_by_letter(request.items, request.kind.sort_key, request.depth)
        for key, items in buckets.items():
            if key != OTHER_KEY and request.depth < profile.max_split_levels:
                child_option = SplitOption.SPLIT_BY_LETTER
            else:
                child_option = SplitOption.PAGINATE
            child = ListRequest(
                items=items,
                kind=request.kind,
                title=self._letter_title(request.kind, key),
                base_filename=naming.split_filename(split_base, key),
                urn=naming.split_urn(split_urn, key),
                breadcrumbs=breadcrumbs,
                split_option=child_option,
                summary=request.kind.summarize(len(items)),
                depth=request.depth + 1,
                split_base=split_base,
                split_urn=split_urn,
            )
            entry = self.generate(child)
            if entry is not None:
                entries.append(entry)

        return self._write_split_page(request, entries)

    def _split_by_date(self, request: ListRequest) -> Entry:
        page_url = naming.url_for(request.base_filename)
        breadcrumbs = request.breadcrumbs.extend(request.title, page_url)

        entries: list[Entry] = []
        buckets = split_by_date(request.items, request.kind.added, self.ctx.now)
        for date_range, items in buckets.items():
            key = date_range.name.lower()
            child = ListRequest(
                items=items,
                kind=request.kind,
                title=date_range.label,
                base_filename=naming.split_filename(request.base_filename, key),
                urn=naming.split_urn(request.urn, key),
                breadcrumbs=breadcrumbs,
                split_option=SplitOption.PAGINATE,
                summary=request.kind.summarize(len(items)),
            )
            entry = self.generate(child)
            if entry is not None:
                entries.append(entry)

        return self._write_split_page(request, entries)

    def _write_split_page(self, request: ListRequest, entries: list[Entry]) -> Entry:
        url = naming.url_for(request.base_filename)
        self.ctx.emit(
            Page(
                filename=request.base_filename,
                url=url,
                title=request.title,
                id=request.urn,
                updated=self.ctx.updated,
                breadcrumbs=request.breadcrumbs,
                entries=entries,
            )
        )
        return self._catalog_entry(request, url)

    def _paginate(self, request: ListRequest, limit: int) -> Entry:
        """Write the list as successive pages of at most `limit` entries.

        Every page but the last starts with a link to the following page.
        A limit of 0 writes a single page.
        """
        items = request.items
        size = limit if limit > 0 else len(items)
        chunks = [items[start:start + size] for start in range(0, len(items), size)]
        total = len(chunks)

        first_url = naming.url_for(request.base_filename)
        breadcrumbs = request.breadcrumbs.extend(request.title, first_url)

        pages: list[Page] = []
        for number, chunk in enumerate(chunks, start=1):
            filename = naming.page_filename(request.base_filename, number)
            entries = [self._build_entry(request, item, breadcrumbs) for item in chunk]
            pages.append(
                Page(
                    filename=filename,
                    url=naming.url_for(filename),
                    title=self._page_title(request.title, number, total),
                    id=request.urn if number == 1 else f"{request.urn}:page{number}",
                    updated=self.ctx.updated,
                    breadcrumbs=request.breadcrumbs,
                    entries=entries,
                )
            )

        for number, (page, following) in enumerate(zip(pages, pages[1:]), start=2):
            page.entries.insert(0, self._next_entry(following, number, total))

        for page in pages:
            self.ctx.emit(page)

        return self._catalog_entry(request, first_url)

    def _build_entry(self, request: ListRequest, item, breadcrumbs: Breadcrumbs) -> Entry:
        self.ctx.state.check_continue()
        kind = request.kind
        try:
            return kind.entry(item, breadcrumbs)
        except (EntryBuildError, GenerationCancelled):
            raise
        except Exception as exc:
            logger.exception(
                "Error while building entry for %r (id %s) in %s",
                kind.label(item), kind.item_id(item), request.base_filename,
            )
            raise EntryBuildError(
                f"Cannot build entry for {kind.label(item)!r} (id {kind.item_id(item)})"
            ) from exc

    def _next_entry(self, following: Page, number: int, total: int) -> Entry:
        title = "Last page" if number == total else f"Page {number} of {total}"
        return Entry(
            title=title,
            id=f"{following.id}:next",
            kind=EntryKind.NEXT,
            updated=self.ctx.updated,
            links=[Link(following.url, REL_NEXT, ACQUISITION_TYPE, title)],
        )

    def _catalog_entry(self, request: ListRequest, url: str) -> Entry:
        summary = request.summary
        if summary is None:
            summary = request.kind.summarize(len(request.items))
        return catalog_entry(
            request.title, request.urn, url, summary, self.ctx.updated, request.kind.holds_books
        )

    @staticmethod
    def _page_title(title: str, number: int, total: int) -> str:
        if total <= 1:
            return title
        return f"{title} ({number}/{total})"

    @staticmethod
    def _letter_title(kind: ItemKind, key: str) -> str:
        if key == OTHER_KEY:
            return f"Other {kind.plural.lower()}"
        return f"{kind.plural} starting with {key.rstrip(OTHER_KEY)}"


def retitled(entry: Entry, title: str) -> Entry:
    """Copy of a catalog entry shown under another title."""
    return replace(entry, title=title, links=list(entry.links))


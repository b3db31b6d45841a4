# ABOUTME: Value types for generated catalog content: links, entries, and pages.
# ABOUTME: The page tree handed to the writer; format-agnostic apart from OPDS rel names.

from dataclasses import dataclass, field
from enum import Enum

from bookfeed.core.state import Breadcrumbs

REL_SUBSECTION = "subsection"
REL_NEXT = "next"
REL_START = "start"
REL_UP = "up"
REL_SELF = "self"
REL_RELATED = "related"
REL_ALTERNATE = "alternate"
REL_ACQUISITION = "http://opds-spec.org/acquisition"
REL_IMAGE = "http://opds-spec.org/image"
REL_THUMBNAIL = "http://opds-spec.org/image/thumbnail"

NAVIGATION_TYPE = "application/atom+xml;profile=opds-catalog;kind=navigation"
ACQUISITION_TYPE = "application/atom+xml;profile=opds-catalog;kind=acquisition"
ENTRY_TYPE = "application/atom+xml;type=entry;profile=opds-catalog"
HTML_TYPE = "text/html"


class PageType(Enum):
    CATALOG = "catalog"
    BOOK_FULL_ENTRY = "book_full_entry"


class EntryKind(Enum):
    NAVIGATION = "navigation"
    NEXT = "next"
    BOOK = "book"


@dataclass
class Link:
    href: str
    rel: str | None = None
    type: str | None = None
    title: str | None = None


@dataclass
class Entry:
    """One element of a page: a navigation entry, a next-page link, or a book."""

    title: str
    id: str
    kind: EntryKind = EntryKind.NAVIGATION
    updated: str | None = None
    summary: str | None = None
    links: list[Link] = field(default_factory=list)
    authors: list[tuple[str, str | None]] = field(default_factory=list)
    published: str | None = None
    languages: list[str] = field(default_factory=list)
    publisher: str | None = None
    categories: list[str] = field(default_factory=list)
    # Detail paragraphs as (label, text) plus the comment as an XHTML fragment.
    details: list[tuple[str, str]] = field(default_factory=list)
    content_html: str | None = None

    def links_with_rel(self, rel: str) -> list[Link]:
        return [link for link in self.links if link.rel == rel]

    @property
    def href(self) -> str | None:
        """Target of the entry's main link (subsection, next, or full entry)."""
        for rel in (REL_SUBSECTION, REL_NEXT, REL_ALTERNATE):
            found = self.links_with_rel(rel)
            if found:
                return found[0].href
        return None


@dataclass
class Page:
    """A generated page: a feed of entries, or a standalone book entry."""

    filename: str
    url: str
    title: str
    id: str
    updated: str
    breadcrumbs: Breadcrumbs
    page_type: PageType = PageType.CATALOG
    entries: list[Entry] = field(default_factory=list)
    entry: Entry | None = None

    @property
    def next_link(self) -> Entry | None:
        if self.entries and self.entries[0].kind is EntryKind.NEXT:
            return self.entries[0]
        return None

    @property
    def content_entries(self) -> list[Entry]:
        """Entries excluding the leading next-page link."""
        return [e for e in self.entries if e.kind is not EntryKind.NEXT]

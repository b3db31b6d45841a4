# ABOUTME: Page writers: Atom/OPDS XML files on disk, or an in-memory page store.
# ABOUTME: Each page is written once under its base filename; a repeat is a DuplicatePageError.

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from bookfeed.core import naming
from bookfeed.core.feed import (
    NAVIGATION_TYPE,
    REL_SELF,
    REL_START,
    REL_UP,
    Entry,
    Link,
    Page,
    PageType,
)

logger = logging.getLogger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
OPDS_NS = "http://opds-spec.org/2010/catalog"
DC_NS = "http://purl.org/dc/terms/"
XHTML_NS = "http://www.w3.org/1999/xhtml"


class DuplicatePageError(Exception):
    """Raised when a page filename is written twice in one run."""


def _text(parent: ET.Element, tag: str, text: str | None) -> ET.Element | None:
    if text is None:
        return None
    node = ET.SubElement(parent, tag)
    node.text = text
    return node


def _link(parent: ET.Element, link: Link) -> None:
    attrs = {"href": link.href}
    if link.rel:
        attrs["rel"] = link.rel
    if link.type:
        attrs["type"] = link.type
    if link.title:
        attrs["title"] = link.title
    ET.SubElement(parent, "link", attrs)


def _content(parent: ET.Element, entry: Entry) -> None:
    if not entry.details and not entry.content_html:
        return
    content = ET.SubElement(parent, "content", {"type": "xhtml"})
    div = ET.SubElement(content, "div", {"xmlns": XHTML_NS})
    for label, text in entry.details:
        paragraph = ET.SubElement(div, "p")
        strong = ET.SubElement(paragraph, "strong")
        strong.text = f"{label}:"
        strong.tail = f" {text}"
    if entry.content_html:
        fragment = ET.fromstring(f"<div>{entry.content_html}</div>")
        if fragment.text and fragment.text.strip():
            _text(div, "p", fragment.text.strip())
        div.extend(list(fragment))


def entry_element(entry: Entry, root: bool = False) -> ET.Element:
    """Atom <entry> for one entry; a root entry carries the namespace declarations."""
    attrs = {}
    if root:
        attrs = {"xmlns": ATOM_NS, "xmlns:dc": DC_NS, "xmlns:opds": OPDS_NS}
    node = ET.Element("entry", attrs)
    _text(node, "title", entry.title)
    _text(node, "id", entry.id)
    _text(node, "updated", entry.updated)
    for name, uri in entry.authors:
        author = ET.SubElement(node, "author")
        _text(author, "name", name)
        _text(author, "uri", uri)
    _text(node, "published", entry.published)
    for language in entry.languages:
        _text(node, "dc:language", language)
    _text(node, "dc:publisher", entry.publisher)
    for term in entry.categories:
        ET.SubElement(node, "category", {"term": term, "label": term})
    if entry.summary:
        summary = _text(node, "summary", entry.summary)
        summary.set("type", "text")
    _content(node, entry)
    for link in entry.links:
        _link(node, link)
    return node


def page_element(page: Page) -> ET.Element:
    """Atom document of a page: a <feed>, or a standalone <entry> for book pages."""
    if page.page_type is PageType.BOOK_FULL_ENTRY:
        return entry_element(page.entry, root=True)

    feed = ET.Element("feed", {"xmlns": ATOM_NS, "xmlns:dc": DC_NS, "xmlns:opds": OPDS_NS})
    _text(feed, "id", page.id)
    _text(feed, "title", page.title)
    _text(feed, "updated", page.updated)
    _link(feed, Link(page.url, REL_SELF, NAVIGATION_TYPE))
    _link(feed, Link(naming.url_for(naming.ROOT_FILENAME), REL_START, NAVIGATION_TYPE))
    parent = page.breadcrumbs.parent
    if parent is not None and parent.url:
        _link(feed, Link(parent.url, REL_UP, NAVIGATION_TYPE, parent.title))
    for entry in page.entries:
        feed.append(entry_element(entry))
    return feed


def render_page(page: Page) -> bytes:
    """Serialize a page to indented UTF-8 XML."""
    tree = ET.ElementTree(page_element(page))
    ET.indent(tree)
    return ET.tostring(tree.getroot(), encoding="utf-8", xml_declaration=True)


class FeedWriter:
    """Writes pages as `<filename>.xml` files in one catalog folder."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = output_dir
        self._written: set[str] = set()

    def write(self, page: Page) -> None:
        """Write one page.

        Raises:
            DuplicatePageError: If a page with the same filename was already written.
        """
        if page.filename in self._written:
            raise DuplicatePageError(f"Page {page.filename!r} written twice")
        self._written.add(page.filename)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{page.filename}{naming.FEED_EXTENSION}"
        path.write_bytes(render_page(page))
        logger.debug("Wrote %s", path)

    @property
    def count(self) -> int:
        return len(self._written)


class MemoryWriter:
    """Keeps pages in memory, keyed by filename, in write order."""

    def __init__(self) -> None:
        self.pages: dict[str, Page] = {}

    def write(self, page: Page) -> None:
        if page.filename in self.pages:
            raise DuplicatePageError(f"Page {page.filename!r} written twice")
        self.pages[page.filename] = page

    def __getitem__(self, filename: str) -> Page:
        return self.pages[filename]

    def __contains__(self, filename: str) -> bool:
        return filename in self.pages

    def __len__(self) -> int:
        return len(self.pages)

    def render(self) -> dict[str, bytes]:
        """Serialized XML of every page, keyed by filename."""
        return {name: render_page(page) for name, page in self.pages.items()}

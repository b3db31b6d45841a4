# ABOUTME: Builders for partial (list row) and full (detail page) book entries.
# ABOUTME: Contextual titles, acquisition, cross-reference and external links, comment content.

import html
import logging
import re
import xml.etree.ElementTree as ET
from enum import Enum
from typing import TYPE_CHECKING
from urllib.parse import quote_plus

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

from bookfeed.core import naming
from bookfeed.core.feed import (
    ACQUISITION_TYPE,
    ENTRY_TYPE,
    HTML_TYPE,
    REL_ACQUISITION,
    REL_ALTERNATE,
    REL_IMAGE,
    REL_RELATED,
    Entry,
    EntryKind,
    Link,
    Page,
    PageType,
)
from bookfeed.core.state import AUTHOR, BOOK, RATING, SERIES, TAG, Breadcrumbs
from bookfeed.model.types import Author, Book, BookRating, Tag

if TYPE_CHECKING:
    from bookfeed.core.context import CatalogContext

logger = logging.getLogger(__name__)

RATED_TITLE = "{title} ({rating})"
# Placeholder authors never get a cross-reference link.
NON_AUTHORS = {"unknown", "various"}

_TAG_RE = re.compile(r"<[^>]+>")
_BLOCK_TAG_RE = re.compile(
    r"</?(?:p|div|br|hr|li|ul|ol|dl|dt|dd|h[1-6]|blockquote|pre|table|tr|td|th)\b[^>]*>",
    re.IGNORECASE,
)
_SPACE_RE = re.compile(r"\s+")
_XML_NAME_RE = re.compile(r"^[A-Za-z_][\w.-]*$")
_DROPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


class TitleOption(Enum):
    """What a list context adds to the titles of its book entries."""

    DEFAULT = "default"
    INCLUDE_SERIES_NUMBER = "include_series_number"
    INCLUDE_TIMESTAMP = "include_timestamp"
    DONT_INCLUDE_RATING = "dont_include_rating"


def format_series_index(index: float) -> str:
    """Series index with at most two decimals and no trailing zeros."""
    return f"{index:.2f}".rstrip("0").rstrip(".")


def book_title(ctx: "CatalogContext", book: Book, option: TitleOption,
               author_prefix: bool = False) -> str:
    """Title of a book as shown in one list context; the first matching rule wins."""
    profile = ctx.profile
    title = book.sort_title if profile.display_title_sort else book.title

    if option is TitleOption.INCLUDE_SERIES_NUMBER:
        if book.series_index:
            title = f"{format_series_index(book.series_index)} - {title}"
    elif option is TitleOption.INCLUDE_TIMESTAMP:
        if book.added is not None:
            title = f"{title} [{book.added.strftime(profile.title_date_format)}]"
    elif (
        option is not TitleOption.DONT_INCLUDE_RATING
        and not profile.suppress_ratings_in_titles
        and book.rating is not BookRating.NOTRATED
    ):
        title = RATED_TITLE.format(title=title, rating=book.rating.label)

    if author_prefix and book.authors:
        names = " & ".join(author_display_name(ctx, author) for author in book.authors)
        title = f"{names} - {title}"
    return title


def author_display_name(ctx: "CatalogContext", author: Author) -> str:
    return author.sort_name if ctx.profile.display_author_sort else author.name


def book_urn(book: Book) -> str:
    return f"urn:book:{book.uuid or book.id}"


def book_updated(ctx: "CatalogContext", book: Book) -> str:
    if book.modified is not None:
        return book.modified.isoformat(timespec="seconds")
    return ctx.updated


def is_ignored_tag(ctx: "CatalogContext", tag: Tag) -> bool:
    """True when the tag matches a tags_to_ignore pattern ("*" suffix wildcard)."""
    name = tag.name.casefold()
    for pattern in ctx.profile.tags_to_ignore:
        pattern = pattern.strip().casefold()
        if not pattern:
            continue
        if pattern.endswith("*"):
            if name.startswith(pattern[:-1]):
                return True
        elif name == pattern:
            return True
    return False


def visible_tags(ctx: "CatalogContext", book: Book) -> list[Tag]:
    return [tag for tag in book.tags if not is_ignored_tag(ctx, tag)]


# -- Comment handling -------------------------------------------------------


def comment_html(ctx: "CatalogContext", book: Book) -> str:
    """The book comment as a well-formed XHTML fragment, computed once per run.

    A comment that does not parse is logged, counted, and treated as empty
    for the rest of the run.
    """
    return ctx.state.cached("comment", book.id, lambda: _comment_to_xhtml(ctx, book))


def _comment_to_xhtml(ctx: "CatalogContext", book: Book) -> str:
    text = (book.comment or "").strip()
    if not text:
        return ""
    if "<" not in text:
        paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
        xhtml = "".join(f"<p>{html.escape(p)}</p>" for p in paragraphs)
    else:
        xhtml = html_to_xhtml(text)
    try:
        ET.fromstring(f"<div>{xhtml}</div>")
    except ET.ParseError as exc:
        logger.warning("Malformed comment in %r (id %s), ignoring it: %s", book.title, book.id, exc)
        ctx.state.warn()
        ctx.state.override("summary", book.id, "")
        return ""
    return xhtml


def html_to_xhtml(text: str) -> str:
    """Rewrite a Calibre HTML comment as an XHTML fragment.

    Void elements are closed, named entities become characters, and
    namespaced Word tags are unwrapped. Scripts, styles, doctypes and
    attributes that are not valid XML names are dropped.
    """
    soup = BeautifulSoup(text, "html.parser")
    for node in soup.find_all(string=lambda s: isinstance(s, _DROPPED_STRINGS)):
        node.extract()
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    for tag in soup.find_all(True):
        if not _XML_NAME_RE.match(tag.name):
            tag.unwrap()
            continue
        tag.attrs = {
            name: value for name, value in tag.attrs.items() if _XML_NAME_RE.match(name)
        }
    return soup.decode(formatter="minimal").strip()


def summary_text(ctx: "CatalogContext", book: Book) -> str:
    """Plain-text comment shortened at a word boundary, computed once per run."""

    def compute() -> str:
        xhtml = _BLOCK_TAG_RE.sub(" ", comment_html(ctx, book))
        text = _SPACE_RE.sub(" ", html.unescape(_TAG_RE.sub("", xhtml))).strip()
        return shorten(text, ctx.profile.max_book_summary_length)

    # The comment is checked first so a malformed one clears the summary too.
    comment_html(ctx, book)
    return ctx.state.cached("summary", book.id, compute)


def shorten(text: str, limit: int) -> str:
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text
    cut = text[:limit]
    if " " in cut:
        cut = cut[: cut.rfind(" ")]
    return cut.rstrip(" ,;:.") + "..."


# -- Links ------------------------------------------------------------------


def acquisition_links(ctx: "CatalogContext", book: Book) -> list[Link]:
    """Download links in format order; only the preferred file when so configured."""
    if not ctx.profile.generate_downloads:
        return []
    files = book.files
    if ctx.profile.include_only_one_file and files:
        files = [book.preferred_file]
    return [
        Link(
            naming.library_url(ctx.profile.books_url, book.path, f.filename),
            REL_ACQUISITION,
            f.format.mime,
            f.format.name,
        )
        for f in files
    ]


def navigation_links(ctx: "CatalogContext", book: Book) -> list[Link]:
    """Cross-reference links to the author, series, tag and rating pages of a book.

    A link is only made when the referenced group has more than one book;
    each linked entity is flagged as referenced so its page gets written.
    """
    if not ctx.profile.generate_cross_links:
        return []
    library = ctx.library
    state = ctx.state
    links: list[Link] = []

    for author in book.authors:
        if author.name.strip().casefold() in NON_AUTHORS:
            continue
        count = library.count_for_author(author)
        if count > 1:
            state.mark_referenced(AUTHOR, author.id)
            links.append(_related(
                naming.author_filename(author),
                _counted(ctx, f"Author: {author_display_name(ctx, author)}", count),
            ))

    if book.series is not None:
        count = library.count_for_series(book.series)
        if count > 1:
            state.mark_referenced(SERIES, book.series.id)
            links.append(_related(
                naming.series_filename(book.series),
                _counted(ctx, f"Series: {book.series.name}", count),
            ))

    for tag in visible_tags(ctx, book):
        count = library.count_for_tag(tag)
        if count > 1:
            state.mark_referenced(TAG, tag.id)
            links.append(_related(
                naming.tag_filename(tag), _counted(ctx, f"Tag: {tag.name}", count)
            ))

    if book.rating is not BookRating.NOTRATED:
        count = library.count_for_rating(book.rating)
        if count > 1:
            state.mark_referenced(RATING, book.rating.value)
            links.append(_related(
                naming.rating_filename(book.rating),
                _counted(ctx, f"Rating: {book.rating.label}", count),
            ))
    return links


def _related(filename: str, title: str) -> Link:
    return Link(naming.url_for(filename), REL_RELATED, ACQUISITION_TYPE, title)


def _counted(ctx: "CatalogContext", title: str, count: int) -> str:
    if ctx.profile.minimize_changed_files:
        return title
    return f"{title} ({count} books)"


def external_links(ctx: "CatalogContext", book: Book) -> list[Link]:
    """Links to third-party sites, one per configured (non-empty) URL template."""
    profile = ctx.profile
    if not profile.generate_external_links:
        return []

    author = book.main_author
    fields = {
        "isbn": quote_plus(book.isbn),
        "title": quote_plus(book.title),
        "author": quote_plus(author.name if author else ""),
        "author_sort": quote_plus(author.sort_name if author else ""),
        "lang": profile.wikipedia_language or "en",
    }

    candidates: list[tuple[str, str]] = []
    if book.isbn:
        candidates += [
            ("Goodreads", profile.goodreads_isbn_url),
            ("Goodreads reviews", profile.goodreads_review_isbn_url),
            ("LibraryThing", profile.librarything_isbn_url),
            ("Amazon", profile.amazon_isbn_url),
        ]
    else:
        candidates += [
            ("Goodreads", profile.goodreads_title_url),
            ("LibraryThing", profile.librarything_title_url),
            ("Amazon", profile.amazon_title_url),
        ]
    candidates.append(("Wikipedia", profile.wikipedia_url))
    if author is not None:
        candidates += [
            ("Goodreads author", profile.goodreads_author_url),
            ("Wikipedia author", profile.wikipedia_author_url),
            ("LibraryThing author", profile.librarything_author_url),
            ("Amazon author", profile.amazon_author_url),
            ("ISFDB author", profile.isfdb_author_url),
        ]

    links: list[Link] = []
    for title, template in candidates:
        if not template:
            continue
        try:
            href = template.format(**fields)
        except (KeyError, IndexError, ValueError) as exc:
            logger.warning("Bad URL template for %s link %r: %s", title, template, exc)
            ctx.state.warn()
            continue
        links.append(Link(href, REL_RELATED, HTML_TYPE, title))
    return links


# -- Entries ----------------------------------------------------------------


def book_details(ctx: "CatalogContext", book: Book) -> list[tuple[str, str]]:
    """Labelled detail paragraphs of the full entry, each behind its toggle."""
    profile = ctx.profile
    details: list[tuple[str, str]] = []
    if profile.include_series_in_book_details and book.series is not None:
        text = book.series.name
        if book.series_index:
            text = f"{text} [{format_series_index(book.series_index)}]"
        details.append(("Series", text))
    if profile.include_rating_in_book_details and book.rating is not BookRating.NOTRATED:
        details.append(("Rating", book.rating.label))
    tags = visible_tags(ctx, book)
    if profile.include_tags_in_book_details and tags:
        details.append(("Tags", ", ".join(tag.name for tag in tags)))
    if profile.include_publisher_in_book_details and book.publisher is not None:
        details.append(("Publisher", book.publisher.name))
    if profile.include_published_in_book_details and book.published is not None:
        details.append(("Published", book.published.strftime(profile.book_date_format)))
    if profile.include_added_in_book_details and book.added is not None:
        details.append(("Added", book.added.strftime(profile.book_date_format)))
    if profile.include_modified_in_book_details and book.modified is not None:
        details.append(("Modified", book.modified.strftime(profile.book_date_format)))
    return details


def _entry_authors(ctx: "CatalogContext", book: Book) -> list[tuple[str, str | None]]:
    authors = []
    for author in book.authors:
        uri = None
        if ctx.profile.generate_authors:
            uri = naming.url_for(naming.author_filename(author))
        authors.append((author_display_name(ctx, author), uri))
    return authors


def build_partial_entry(ctx: "CatalogContext", book: Book, title: str) -> Entry:
    """List-row entry: title, summary, images, downloads, and the detail page link."""
    summary = summary_text(ctx, book)
    links = [ctx.covers.thumbnail_link(book), ctx.covers.cover_link(book)]
    links += acquisition_links(ctx, book)
    links.append(Link(
        naming.url_for(naming.book_filename(book)), REL_ALTERNATE, ENTRY_TYPE, "Full entry"
    ))
    return Entry(
        title=title,
        id=book_urn(book),
        kind=EntryKind.BOOK,
        updated=book_updated(ctx, book),
        summary=summary or None,
        links=links,
        authors=_entry_authors(ctx, book),
    )


def build_full_entry(ctx: "CatalogContext", book: Book) -> Entry:
    """Detail entry: the partial content plus metadata and every kind of link."""
    profile = ctx.profile
    cover = ctx.covers.cover_link(book)
    links = [ctx.covers.thumbnail_link(book), cover]
    links += acquisition_links(ctx, book)
    links += navigation_links(ctx, book)
    links += external_links(ctx, book)

    categories = [tag.name for tag in visible_tags(ctx, book)]
    if profile.include_series_in_book_details and book.series is not None:
        categories.append(book.series.name)

    return Entry(
        title=book.title,
        id=book_urn(book),
        kind=EntryKind.BOOK,
        updated=book_updated(ctx, book),
        summary=summary_text(ctx, book) or None,
        links=links,
        authors=_entry_authors(ctx, book),
        published=book.published.isoformat(timespec="seconds") if book.published else None,
        languages=list(book.languages),
        publisher=book.publisher.name if book.publisher else None,
        categories=categories,
        details=book_details(ctx, book),
        content_html=comment_html(ctx, book) or None,
    )


def book_entry(ctx: "CatalogContext", book: Book, breadcrumbs: Breadcrumbs,
               option: TitleOption = TitleOption.DEFAULT,
               author_prefix: bool = False) -> Entry:
    """Entry of a book in a list, writing its detail page on first encounter."""
    state = ctx.state
    if not state.is_done(BOOK, book.id):
        write_full_entry(ctx, book, breadcrumbs)
        state.mark_done(BOOK, book.id)
    state.mark_referenced(BOOK, book.id)
    return build_partial_entry(ctx, book, book_title(ctx, book, option, author_prefix))


def write_full_entry(ctx: "CatalogContext", book: Book, breadcrumbs: Breadcrumbs) -> None:
    entry = build_full_entry(ctx, book)
    filename = naming.book_filename(book)
    url = naming.url_for(filename)
    ctx.emit(Page(
        filename=filename,
        url=url,
        title=book.title,
        id=entry.id,
        updated=entry.updated or ctx.updated,
        breadcrumbs=breadcrumbs,
        page_type=PageType.BOOK_FULL_ENTRY,
        entry=entry,
    ))
    ctx.state.full_entries_built += 1

    if ctx.profile.generate_index and ctx.index_sink is not None:
        cover = entry.links_with_rel(REL_IMAGE)
        cover_url = cover[0].href if cover else None
        try:
            ctx.index_sink.index_book(book, url, cover_url)
        except Exception as exc:
            logger.warning("Search index rejected %r (id %s): %s", book.title, book.id, exc)
            ctx.state.warn()
        else:
            ctx.books_indexed += 1

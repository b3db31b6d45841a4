# ABOUTME: Deterministic page filenames, URLs, and URNs for catalog pages.
# ABOUTME: Names derive only from entity type, id, split key, and page number.

from urllib.parse import quote

from bookfeed.model.types import Author, Book, BookRating, Series, Tag

FEED_EXTENSION = ".xml"
PAGE_DELIM = "_Page_"
TYPE_SEPARATOR = "_"
URN_SEPARATOR = ":"

ROOT_FILENAME = "index"
ALL_BOOKS_FILENAME = "allbooks"
AUTHORS_FILENAME = "authors"
SERIES_LIST_FILENAME = "series"
TAGS_FILENAME = "tags"
RATINGS_FILENAME = "ratings"
RECENT_FILENAME = "recent"

DEFAULT_IMAGE_FILENAME = "default_cover.jpg"


def page_filename(base: str, page_number: int) -> str:
    """Filename of one page of a list; page 1 keeps the bare base name."""
    if page_number <= 1:
        return base
    return f"{base}{PAGE_DELIM}{page_number}"


def split_filename(base: str, key: str) -> str:
    return f"{base}{TYPE_SEPARATOR}{key}"


def split_urn(base_urn: str, key: str) -> str:
    return f"{base_urn}{URN_SEPARATOR}{key}"


def url_for(filename: str) -> str:
    """Relative URL of a page; all pages live in the same catalog folder."""
    return quote(f"{filename}{FEED_EXTENSION}")


def book_filename(book: Book) -> str:
    return f"book{TYPE_SEPARATOR}{book.id}"


def author_filename(author: Author) -> str:
    return f"author{TYPE_SEPARATOR}{author.id}"


def series_filename(series: Series) -> str:
    return f"serie{TYPE_SEPARATOR}{series.id}"


def tag_filename(tag: Tag) -> str:
    return f"tag{TYPE_SEPARATOR}{tag.id}"


def rating_filename(rating: BookRating) -> str:
    return f"rating{TYPE_SEPARATOR}{rating.value}"


def tag_level_filename(guid: str) -> str:
    return f"tagtree{TYPE_SEPARATOR}{guid}"


def library_url(books_url: str, *parts: str) -> str:
    """URL of a file inside the Calibre library, relative to the catalog folder.

    `books_url` overrides the default "../" prefix (catalog folder inside the
    library root), e.g. for libraries served from another host.
    """
    prefix = books_url or "../"
    if not prefix.endswith("/"):
        prefix += "/"
    return prefix + quote("/".join(parts))

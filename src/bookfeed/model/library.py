# ABOUTME: The loaded library: entity lists plus the association indexes built from them.
# ABOUTME: Read-only during generation; indexes are computed once at construction.

from collections import defaultdict
from dataclasses import dataclass, field

from bookfeed.model.types import Author, Book, BookRating, Publisher, Series, Tag


@dataclass
class Library:
    """Everything the catalog generator reads, populated once per run."""

    books: list[Book]
    authors: list[Author] = field(default_factory=list)
    series: list[Series] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)
    publishers: list[Publisher] = field(default_factory=list)
    load_warnings: int = 0

    def __post_init__(self) -> None:
        by_author: dict[Author, list[Book]] = defaultdict(list)
        by_series: dict[Series, list[Book]] = defaultdict(list)
        by_tag: dict[Tag, list[Book]] = defaultdict(list)
        by_rating: dict[BookRating, list[Book]] = defaultdict(list)

        for book in self.books:
            for author in book.authors:
                by_author[author].append(book)
            if book.series is not None:
                by_series[book.series].append(book)
            for tag in book.tags:
                by_tag[tag].append(book)
            by_rating[book.rating].append(book)

        self.books_by_author = dict(by_author)
        self.books_by_series = dict(by_series)
        self.books_by_tag = dict(by_tag)
        self.books_by_rating = dict(by_rating)

        # Entities referenced by books but absent from the entity lists
        # (e.g. hand-built libraries) are still listable.
        self.authors = _merge(self.authors, by_author)
        self.series = _merge(self.series, by_series)
        self.tags = _merge(self.tags, by_tag)

    def count_for_author(self, author: Author) -> int:
        return len(self.books_by_author.get(author, ()))

    def count_for_series(self, series: Series) -> int:
        return len(self.books_by_series.get(series, ()))

    def count_for_tag(self, tag: Tag) -> int:
        return len(self.books_by_tag.get(tag, ()))

    def count_for_rating(self, rating: BookRating) -> int:
        return len(self.books_by_rating.get(rating, ()))


def _merge(entities: list, referenced: dict) -> list:
    known = set(entities)
    return list(entities) + [item for item in referenced if item not in known]

# ABOUTME: Store adapter that loads a Calibre library into in-memory model entities.
# ABOUTME: Resolves book associations, warning about and dropping dangling references.

import logging
import re
import sqlite3
from collections import defaultdict
from datetime import datetime

from bookfeed.db import schema
from bookfeed.model.library import Library
from bookfeed.model.types import (
    Author,
    Book,
    BookRating,
    EBookFile,
    EBookFormat,
    Publisher,
    Series,
    Tag,
)

logger = logging.getLogger(__name__)

# Calibre stores ISO 639-2 codes; noise-word rules are keyed by ISO 639-1.
_ISO3_TO_ISO2 = {
    "eng": "en",
    "fra": "fr",
    "fre": "fr",
    "deu": "de",
    "ger": "de",
    "spa": "es",
    "ita": "it",
    "nld": "nl",
    "dut": "nl",
}

_SUMMARY_PREFIX_RE = re.compile(r"^\s*summary:?", re.IGNORECASE)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a Calibre timestamp column, returning None when unusable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None


def clean_comment(text: str | None) -> str:
    """Drop a superfluous leading 'SUMMARY:' marker from a book comment."""
    if not text:
        return ""
    return _SUMMARY_PREFIX_RE.sub("", text, count=1).lstrip()


class LibraryStore:
    """Wraps a sqlite3 connection to metadata.db and builds model entities."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self.warnings = 0

    def list_authors(self) -> list[Author]:
        rows = self._conn.execute(schema.ALL_AUTHORS).fetchall()
        return _unique(Author(str(r["id"]), r["name"] or "", r["sort"] or "") for r in rows)

    def list_publishers(self) -> list[Publisher]:
        rows = self._conn.execute(schema.ALL_PUBLISHERS).fetchall()
        return _unique(Publisher(str(r["id"]), r["name"] or "", r["sort"] or "") for r in rows)

    def list_series(self) -> list[Series]:
        rows = self._conn.execute(schema.ALL_SERIES).fetchall()
        return _unique(Series(str(r["id"]), r["name"] or "", r["sort"] or "") for r in rows)

    def list_tags(self) -> list[Tag]:
        rows = self._conn.execute(schema.ALL_TAGS).fetchall()
        return _unique(Tag(str(r["id"]), r["name"] or "") for r in rows)

    def _link_map(self, query: str, column: str, entities: dict[str, object]) -> dict[str, list]:
        """Map book id -> linked entities, dropping links to unknown entities."""
        result: dict[str, list] = defaultdict(list)
        for row in self._conn.execute(query).fetchall():
            book_id = str(row["book"])
            target_id = str(row[column])
            entity = entities.get(target_id)
            if entity is None:
                logger.warning("Cannot find %s #%s referenced by book %s", column, target_id, book_id)
                self.warnings += 1
                continue
            if entity not in result[book_id]:
                result[book_id].append(entity)
        return result

    def authors_by_book(self, authors: list[Author]) -> dict[str, list[Author]]:
        return self._link_map(schema.BOOKS_AUTHORS, "author", {a.id: a for a in authors})

    def publishers_by_book(self, publishers: list[Publisher]) -> dict[str, list[Publisher]]:
        return self._link_map(schema.BOOKS_PUBLISHERS, "publisher", {p.id: p for p in publishers})

    def series_by_book(self, series: list[Series]) -> dict[str, list[Series]]:
        return self._link_map(schema.BOOKS_SERIES, "series", {s.id: s for s in series})

    def tags_by_book(self, tags: list[Tag]) -> dict[str, list[Tag]]:
        return self._link_map(schema.BOOKS_TAGS, "tag", {t.id: t for t in tags})

    def comments_by_book(self) -> dict[str, str]:
        comments: dict[str, str] = {}
        for row in self._conn.execute(schema.BOOKS_COMMENTS).fetchall():
            comments.setdefault(str(row["book"]), clean_comment(row["text"]))
        return comments

    def files_by_book(self) -> dict[str, list[EBookFile]]:
        files: dict[str, list[EBookFile]] = defaultdict(list)
        for row in self._conn.execute(schema.BOOKS_DATA).fetchall():
            files[str(row["book"])].append(
                EBookFile(format=EBookFormat.from_name(row["format"]), name=row["name"] or "")
            )
        return files

    def languages_by_book(self) -> dict[str, list[str]]:
        languages: dict[str, list[str]] = defaultdict(list)
        for row in self._conn.execute(schema.BOOKS_LANGUAGES).fetchall():
            code = (row["lang_code"] or "").lower()
            languages[str(row["book"])].append(_ISO3_TO_ISO2.get(code, code))
        return languages

    def list_books(
        self,
        authors: list[Author],
        publishers: list[Publisher],
        series: list[Series],
        tags: list[Tag],
    ) -> list[Book]:
        """Build fully-associated Book entities, ordered by book id."""
        authors_map = self.authors_by_book(authors)
        publishers_map = self.publishers_by_book(publishers)
        series_map = self.series_by_book(series)
        tags_map = self.tags_by_book(tags)
        comments = self.comments_by_book()
        files = self.files_by_book()
        languages = self.languages_by_book()

        books: list[Book] = []
        for row in self._conn.execute(schema.ALL_BOOKS).fetchall():
            book_id = str(row["book_id"])
            book_publishers = publishers_map.get(book_id, [])
            book_series = series_map.get(book_id, [])
            books.append(
                Book(
                    id=book_id,
                    uuid=row["uuid"] or "",
                    title=row["title"] or "",
                    path=row["path"] or "",
                    series_index=float(row["series_index"] or 0.0),
                    added=parse_timestamp(row["timestamp"]),
                    published=parse_timestamp(row["pubdate"]),
                    modified=parse_timestamp(row["last_modified"]),
                    isbn=row["isbn"] or "",
                    author_sort=row["author_sort"] or "",
                    rating=BookRating.from_value(row["rating"]),
                    comment=comments.get(book_id, ""),
                    authors=authors_map.get(book_id, []),
                    publisher=book_publishers[0] if book_publishers else None,
                    series=book_series[0] if book_series else None,
                    tags=tags_map.get(book_id, []),
                    files=files.get(book_id, []),
                    languages=languages.get(book_id, []),
                )
            )
        return books

    def load(self) -> Library:
        """Load the whole library: entity lists, then books with associations."""
        authors = self.list_authors()
        publishers = self.list_publishers()
        series = self.list_series()
        tags = self.list_tags()
        books = self.list_books(authors, publishers, series, tags)
        logger.info(
            "Loaded %d books, %d authors, %d series, %d tags",
            len(books), len(authors), len(series), len(tags),
        )
        return Library(
            books=books,
            authors=authors,
            series=series,
            tags=tags,
            publishers=publishers,
            load_warnings=self.warnings,
        )


def _unique(entities) -> list:
    seen: set[str] = set()
    result = []
    for entity in entities:
        if entity.id not in seen:
            seen.add(entity.id)
            result.append(entity)
    return result

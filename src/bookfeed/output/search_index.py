# ABOUTME: Keyword search index fed with every book whose detail page is written.
# ABOUTME: Exported as JSON so a static catalog can offer client-side search.

import json
import logging
import re
from pathlib import Path

from bookfeed.core.splitting import sort_text
from bookfeed.model.types import Book

logger = logging.getLogger(__name__)

SEARCH_DIR = "_search"
INDEX_FILENAME = "index.json"
MIN_KEYWORD_LENGTH = 2

_WORD_RE = re.compile(r"\w+")


def keywords(text: str) -> set[str]:
    """Accent-free, case-folded words of a text, skipping very short ones."""
    return {word for word in _WORD_RE.findall(sort_text(text)) if len(word) >= MIN_KEYWORD_LENGTH}


class SearchIndex:
    """Maps keywords from titles, authors, series and tags to book entries."""

    def __init__(self) -> None:
        self.books: dict[str, dict] = {}
        self.keywords: dict[str, set[str]] = {}

    def index_book(self, book: Book, detail_url: str, cover_url: str | None) -> None:
        self.books[book.id] = {
            "title": book.title,
            "authors": [author.name for author in book.authors],
            "url": detail_url,
            "cover": cover_url,
        }
        texts = [book.title]
        texts += [author.name for author in book.authors]
        texts += [tag.name for tag in book.tags]
        if book.series is not None:
            texts.append(book.series.name)
        for text in texts:
            for word in keywords(text):
                self.keywords.setdefault(word, set()).add(book.id)

    def search(self, query: str) -> list[str]:
        """Ids of books matching every word of the query."""
        words = keywords(query)
        if not words:
            return []
        matches = set.intersection(*(self.keywords.get(word, set()) for word in words))
        return sorted(matches)

    def to_dict(self) -> dict:
        return {
            "books": self.books,
            "keywords": {word: sorted(ids) for word, ids in self.keywords.items()},
        }

    def export_json(self, catalog_dir: Path) -> Path:
        """Write the index to `<catalog_dir>/_search/index.json`."""
        path = catalog_dir / SEARCH_DIR / INDEX_FILENAME
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.to_dict(), ensure_ascii=False, sort_keys=True, indent=1),
            encoding="utf-8",
        )
        logger.info("Search index: %d books, %d keywords", len(self.books), len(self.keywords))
        return path

# ABOUTME: In-memory library model for catalog generation.
# ABOUTME: Exports the entity types, rating/format enums, date ranges, and Library.

from bookfeed.model.daterange import DateRange
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
    strip_noise_words,
)

__all__ = [
    "Author",
    "Book",
    "BookRating",
    "DateRange",
    "EBookFile",
    "EBookFormat",
    "Library",
    "Publisher",
    "Series",
    "Tag",
    "strip_noise_words",
]

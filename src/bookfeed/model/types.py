# ABOUTME: Core entity types for the in-memory library model.
# ABOUTME: Books, authors, series, tags, publishers, files, ratings, and formats.

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

# Leading words ignored when sorting titles, per two-letter language code.
_NOISE_WORDS: dict[str, tuple[str, ...]] = {
    "en": ("the ", "a ", "an "),
    "fr": ("le ", "la ", "les ", "l'", "un ", "une ", "des "),
    "de": ("der ", "die ", "das ", "ein ", "eine "),
    "es": ("el ", "la ", "los ", "las ", "un ", "una "),
    "it": ("il ", "lo ", "la ", "i ", "gli ", "le ", "l'", "un ", "una "),
    "nl": ("de ", "het ", "een "),
}


def strip_noise_words(title: str, language: str | None) -> str:
    """Remove one leading noise word ("The", "Le", ...) from a title.

    Falls back to English rules when the language is unknown.
    """
    lang = (language or "en")[:2].lower()
    words = _NOISE_WORDS.get(lang, _NOISE_WORDS["en"])
    lowered = title.lower()
    for word in words:
        if lowered.startswith(word) and len(title) > len(word):
            return title[len(word):].lstrip()
    return title


class EBookFormat(Enum):
    """Known ebook formats with their MIME type and preference priority.

    Declaration order is the display order of acquisition links; a higher
    priority marks the preferred file of a book.
    """

    EPUB = ("application/epub+zip", 100)
    AZW3 = ("application/vnd.amazon.ebook", 90)
    MOBI = ("application/x-mobipocket-ebook", 80)
    AZW = ("application/vnd.amazon.ebook", 70)
    PDF = ("application/pdf", 60)
    FB2 = ("application/x-fictionbook+xml", 50)
    CBZ = ("application/x-cbz", 40)
    CBR = ("application/x-cbr", 35)
    LIT = ("application/x-ms-reader", 30)
    PDB = ("application/vnd.palm", 25)
    RTF = ("application/rtf", 20)
    DOCX = ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", 15)
    TXT = ("text/plain", 10)
    ZIP = ("application/zip", 5)
    UNKNOWN = ("application/octet-stream", 0)

    def __init__(self, mime: str, priority: int) -> None:
        self.mime = mime
        self.priority = priority

    @property
    def order(self) -> int:
        """Position of this format in declaration order."""
        return list(EBookFormat).index(self)

    @classmethod
    def from_name(cls, name: str | None) -> "EBookFormat":
        """Look up a format by its (case-insensitive) name, UNKNOWN if absent."""
        if name:
            try:
                return cls[name.strip().upper()]
            except KeyError:
                pass
        return cls.UNKNOWN


class BookRating(Enum):
    """Star ratings; Calibre stores them as 0-10 (two points per star)."""

    NOTRATED = 0
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5

    @classmethod
    def from_value(cls, value: int | None) -> "BookRating":
        """Convert a Calibre 0-10 rating value to a star rating."""
        if not value or value < 0:
            return cls.NOTRATED
        stars = min(5, (int(value) + 1) // 2)
        return cls(stars)

    @property
    def label(self) -> str:
        if self is BookRating.NOTRATED:
            return "Not rated"
        return f"{self.value} star" if self.value == 1 else f"{self.value} stars"


@dataclass(frozen=True)
class Author:
    id: str
    name: str
    sort: str

    @property
    def sort_name(self) -> str:
        return self.sort or self.name


@dataclass(frozen=True)
class Publisher:
    id: str
    name: str
    sort: str = ""

    @property
    def sort_name(self) -> str:
        return self.sort or self.name


@dataclass(frozen=True)
class Series:
    id: str
    name: str
    sort: str = ""

    @property
    def sort_name(self) -> str:
        return self.sort or self.name


@dataclass(frozen=True)
class Tag:
    id: str
    name: str

    @property
    def sort_name(self) -> str:
        return self.name

    def parts(self, delimiter: str) -> list[str]:
        """Split the tag name into hierarchy segments, dropping empty ones."""
        if not delimiter:
            return [self.name]
        segments = [part.strip() for part in self.name.split(delimiter)]
        return [part for part in segments if part] or [self.name]


@dataclass(frozen=True)
class EBookFile:
    """One file of a book, as stored in the book's library folder."""

    format: EBookFormat
    name: str

    @property
    def extension(self) -> str:
        if self.format is EBookFormat.UNKNOWN:
            return ""
        return f".{self.format.name.lower()}"

    @property
    def filename(self) -> str:
        return f"{self.name}{self.extension}"


@dataclass(eq=False)
class Book:
    """A cataloged book with its associations.

    Identity is the object itself (one instance per book per load); `id` is
    unique within a library. `sort_title` is derived once at construction
    unless supplied by the loader.
    """

    id: str
    uuid: str
    title: str
    path: str
    series_index: float = 0.0
    added: datetime | None = None
    published: datetime | None = None
    modified: datetime | None = None
    isbn: str = ""
    author_sort: str = ""
    rating: BookRating = BookRating.NOTRATED
    comment: str = ""
    authors: list[Author] = field(default_factory=list)
    publisher: Publisher | None = None
    series: Series | None = None
    tags: list[Tag] = field(default_factory=list)
    files: list[EBookFile] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)
    sort_title: str = ""

    def __post_init__(self) -> None:
        title = (self.title or "").strip()
        if title:
            title = title[0].upper() + title[1:]
        self.title = title
        self.files = sorted(self.files, key=lambda f: f.format.order)
        if not self.sort_title:
            self.sort_title = strip_noise_words(self.title, self.language)

    def __repr__(self) -> str:
        return f"Book({self.id!r}, {self.title!r})"

    @property
    def language(self) -> str | None:
        return self.languages[0] if self.languages else None

    @property
    def main_author(self) -> Author | None:
        return self.authors[0] if self.authors else None

    @property
    def authors_text(self) -> str:
        """Authors joined for display: 'Name & Name'."""
        return " & ".join(author.name for author in self.authors)

    @property
    def preferred_file(self) -> EBookFile | None:
        """The file with the highest format priority, if any."""
        if not self.files:
            return None
        return max(self.files, key=lambda f: f.format.priority)

# ABOUTME: Catalog generation profile: thresholds, feature toggles, and URL templates.
# ABOUTME: Loads user-editable JSON profiles and clamps contradictory values.

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_BEFORE_PAGINATE = 25
DEFAULT_MAX_BEFORE_SPLIT = 100
DEFAULT_MAX_SPLIT_LEVELS = 1
MAX_SPLIT_LEVELS = 5
DEFAULT_RECENT_BOOKS = 50
DEFAULT_THUMBNAIL_HEIGHT = 144
DEFAULT_COVER_HEIGHT = 550
MIN_IMAGE_HEIGHT = 16
DEFAULT_SUMMARY_LENGTH = 250


class ProfileError(Exception):
    """Raised when a profile file cannot be read or is not a JSON object."""


class DeviceMode(Enum):
    """Target device presets; each forces a few profile options."""

    DEFAULT = "default"
    NAS = "nas"
    NOOK = "nook"

    @classmethod
    def from_name(cls, name: str | None) -> "DeviceMode":
        if name:
            for mode in cls:
                if mode.value == name.strip().lower():
                    return mode
        return cls.DEFAULT

    @property
    def forced_options(self) -> dict[str, Any]:
        if self is DeviceMode.NOOK:
            return {
                "thumbnail_height": 144,
                "generate_downloads": True,
                "include_only_one_file": False,
            }
        if self is DeviceMode.NAS:
            return {"books_url": ""}
        return {}


@dataclass
class CatalogProfile:
    """All settings that drive one catalog generation run."""

    catalog_title: str = "Calibre library"
    language: str = "en"
    device_mode: str = DeviceMode.DEFAULT.value

    # Pagination and splitting
    max_before_paginate: int = DEFAULT_MAX_BEFORE_PAGINATE
    max_before_split: int = DEFAULT_MAX_BEFORE_SPLIT
    max_split_levels: int = DEFAULT_MAX_SPLIT_LEVELS
    browse_by_cover: bool = False
    browse_by_cover_without_split: bool = False

    # Sections
    generate_all_books: bool = True
    generate_authors: bool = True
    generate_series: bool = True
    generate_tags: bool = True
    generate_ratings: bool = True
    generate_recent: bool = True
    books_in_recent_additions: int = DEFAULT_RECENT_BOOKS

    # Tags
    split_tags_on: str = ""
    tags_to_ignore: list[str] = field(default_factory=list)
    tag_books_no_split: bool = False
    sort_tags_by_author: bool = False

    # Book entries
    display_title_sort: bool = False
    display_author_sort: bool = False
    suppress_ratings_in_titles: bool = False
    title_date_format: str = "%d/%m"
    book_date_format: str = "%Y-%m-%d"
    max_book_summary_length: int = DEFAULT_SUMMARY_LENGTH
    include_series_in_book_details: bool = True
    include_rating_in_book_details: bool = True
    include_tags_in_book_details: bool = True
    include_publisher_in_book_details: bool = True
    include_published_in_book_details: bool = True
    include_added_in_book_details: bool = False
    include_modified_in_book_details: bool = False
    minimize_changed_files: bool = False
    generate_cross_links: bool = True
    generate_external_links: bool = True
    generate_downloads: bool = True
    include_only_one_file: bool = False
    books_url: str = ""

    # Images
    thumbnail_generate: bool = True
    thumbnail_height: int = DEFAULT_THUMBNAIL_HEIGHT
    cover_resize: bool = True
    cover_height: int = DEFAULT_COVER_HEIGHT
    use_thumbnails_as_covers: bool = False

    # Search index
    generate_index: bool = True

    # External link templates; an empty string disables the link.
    wikipedia_language: str = "en"
    goodreads_isbn_url: str = "https://www.goodreads.com/book/isbn/{isbn}"
    goodreads_review_isbn_url: str = "https://www.goodreads.com/review/isbn/{isbn}"
    goodreads_title_url: str = "https://www.goodreads.com/search?q={title}"
    goodreads_author_url: str = "https://www.goodreads.com/search?q={author}"
    wikipedia_url: str = "https://{lang}.wikipedia.org/wiki/Special:Search?search={title}"
    wikipedia_author_url: str = "https://{lang}.wikipedia.org/wiki/Special:Search?search={author}"
    librarything_isbn_url: str = "https://www.librarything.com/isbn/{isbn}"
    librarything_title_url: str = "https://www.librarything.com/title/{title}"
    librarything_author_url: str = "https://www.librarything.com/author/{author_sort}"
    amazon_isbn_url: str = "https://www.amazon.com/s?k={isbn}"
    amazon_title_url: str = "https://www.amazon.com/s?k={title}+{author}"
    amazon_author_url: str = "https://www.amazon.com/s?k={author}"
    isfdb_author_url: str = "https://www.isfdb.org/cgi-bin/se.cgi?arg={author}&type=Name"

    def __post_init__(self) -> None:
        self._clamp()

    @property
    def pagination_enabled(self) -> bool:
        return self.max_before_paginate > 0

    @property
    def split_without_letters(self) -> bool:
        """True when browse-by-cover asks for unsplit book lists."""
        return self.browse_by_cover and self.browse_by_cover_without_split

    def _clamp(self) -> None:
        """Replace contradictory or out-of-range values with safe ones."""
        if self.max_split_levels < 0 or self.max_split_levels > MAX_SPLIT_LEVELS:
            clamped = max(0, min(self.max_split_levels, MAX_SPLIT_LEVELS))
            logger.warning(
                "max_split_levels=%d out of range, using %d", self.max_split_levels, clamped
            )
            self.max_split_levels = clamped
        if self.max_before_split < 1:
            logger.warning("max_before_split=%d too small, using 1", self.max_before_split)
            self.max_before_split = 1
        if self.max_before_paginate < 0:
            self.max_before_paginate = 0
        if self.books_in_recent_additions < 1:
            logger.warning(
                "books_in_recent_additions=%d too small, using %d",
                self.books_in_recent_additions,
                DEFAULT_RECENT_BOOKS,
            )
            self.books_in_recent_additions = DEFAULT_RECENT_BOOKS
        if self.thumbnail_height < MIN_IMAGE_HEIGHT:
            logger.warning("thumbnail_height=%d too small, using default", self.thumbnail_height)
            self.thumbnail_height = DEFAULT_THUMBNAIL_HEIGHT
        if self.cover_height < MIN_IMAGE_HEIGHT:
            logger.warning("cover_height=%d too small, using default", self.cover_height)
            self.cover_height = DEFAULT_COVER_HEIGHT
        if self.max_book_summary_length < 0:
            self.max_book_summary_length = DEFAULT_SUMMARY_LENGTH

    def apply_device_mode(self) -> None:
        """Force the options mandated by the profile's device mode."""
        for name, value in DeviceMode.from_name(self.device_mode).forced_options.items():
            setattr(self, name, value)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def profile_from_dict(data: dict[str, Any]) -> CatalogProfile:
    """Build a profile from a mapping, ignoring (and warning about) unknown keys."""
    known = {f.name: f for f in dataclasses.fields(CatalogProfile)}
    values: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown profile option %r", key)
            continue
        default = known[key].default
        if isinstance(default, bool) and not isinstance(value, bool):
            logger.warning("Profile option %r expects true/false, ignoring %r", key, value)
            continue
        if isinstance(default, int) and not isinstance(default, bool):
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Profile option %r expects a number, ignoring %r", key, value)
                continue
        values[key] = value

    profile = CatalogProfile(**values)
    profile.apply_device_mode()
    return profile


def load_profile(path: Path | None) -> CatalogProfile:
    """Load a JSON profile file, or the default profile when path is None.

    Raises:
        ProfileError: If the file cannot be read or does not hold a JSON object.
    """
    if path is None:
        return CatalogProfile()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ProfileError(f"Cannot read profile {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ProfileError(f"Profile {path} must contain a JSON object")

    return profile_from_dict(data)

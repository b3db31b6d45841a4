# ABOUTME: Unit tests for book entry building.
# ABOUTME: Covers contextual titles, links, comment handling, details, and the write-once detail page.

from datetime import datetime, timezone

import pytest

from bookfeed.config.profile import CatalogProfile
from bookfeed.core.entries import (
    TitleOption,
    acquisition_links,
    book_details,
    book_entry,
    book_title,
    comment_html,
    external_links,
    format_series_index,
    is_ignored_tag,
    navigation_links,
    shorten,
    summary_text,
)
from bookfeed.core.feed import (
    REL_ACQUISITION,
    REL_ALTERNATE,
    REL_RELATED,
    REL_THUMBNAIL,
    PageType,
)
from bookfeed.core.state import AUTHOR, BOOK, RATING, SERIES, TAG, Breadcrumbs
from bookfeed.model.types import Author, BookRating, EBookFile, EBookFormat, Series, Tag


class RecordingSink:
    """Search index stand-in remembering what it was fed."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, str, str | None]] = []

    def index_book(self, book, detail_url, cover_url) -> None:
        if self.fail:
            raise RuntimeError("index full")
        self.calls.append((book.id, detail_url, cover_url))


class TestFormatSeriesIndex:
    """Tests for format_series_index."""

    def test_whole_numbers_lose_decimals(self) -> None:
        """Integral indexes are shown without a decimal part."""
        assert format_series_index(2.0) == "2"

    def test_fractions_keep_significant_digits(self) -> None:
        """Fractional indexes keep up to two decimals."""
        assert format_series_index(1.5) == "1.5"
        assert format_series_index(1.25) == "1.25"


class TestBookTitle:
    """Tests for contextual book titles."""

    def test_default_appends_rating(self, make_context, sample_books) -> None:
        """Rated books show their rating in plain lists."""
        ctx = make_context(sample_books)
        assert book_title(ctx, sample_books[0], TitleOption.DEFAULT) == (
            "The Name of the Rose (5 stars)"
        )

    def test_unrated_title_unchanged(self, make_context, sample_books) -> None:
        """Unrated books keep their bare title."""
        ctx = make_context(sample_books)
        assert book_title(ctx, sample_books[3], TitleOption.DEFAULT) == "Dune Messiah"

    def test_series_number_prefix(self, make_context, sample_books) -> None:
        """Series lists prefix the series index instead of adding the rating."""
        ctx = make_context(sample_books)
        assert book_title(ctx, sample_books[2], TitleOption.INCLUDE_SERIES_NUMBER) == "1 - Dune"
        assert book_title(ctx, sample_books[3], TitleOption.INCLUDE_SERIES_NUMBER) == (
            "2 - Dune Messiah"
        )

    def test_timestamp_suffix(self, make_context, make_book) -> None:
        """Recent lists show the date the book was added."""
        book = make_book("1", "Emma", added=datetime(2024, 5, 30, tzinfo=timezone.utc))
        ctx = make_context([book])
        assert book_title(ctx, book, TitleOption.INCLUDE_TIMESTAMP) == "Emma [30/05]"

    def test_rating_lists_omit_rating(self, make_context, sample_books) -> None:
        """Rating lists never repeat the rating in titles."""
        ctx = make_context(sample_books)
        assert book_title(ctx, sample_books[0], TitleOption.DONT_INCLUDE_RATING) == (
            "The Name of the Rose"
        )

    def test_ratings_suppressed_by_profile(self, make_context, sample_books) -> None:
        """The profile can turn rating suffixes off everywhere."""
        ctx = make_context(sample_books, CatalogProfile(suppress_ratings_in_titles=True))
        assert book_title(ctx, sample_books[0], TitleOption.DEFAULT) == "The Name of the Rose"

    def test_unnumbered_series_book_has_no_rating(self, make_context, make_book) -> None:
        """Series lists never fall through to the rating rule, even without an index."""
        book = make_book("1", "Prequel", series=Series("1", "Dune"), series_index=0.0,
                         rating=BookRating.FIVE)
        ctx = make_context([book])
        assert book_title(ctx, book, TitleOption.INCLUDE_SERIES_NUMBER) == "Prequel"

    def test_author_prefix(self, make_context, sample_books) -> None:
        """Author-sorted tag lists prefix the author names."""
        ctx = make_context(sample_books)
        title = book_title(ctx, sample_books[1], TitleOption.DEFAULT, author_prefix=True)
        assert title == "Umberto Eco - Foucault's Pendulum (4 stars)"

    def test_author_prefix_lists_every_author(self, make_context, make_book) -> None:
        """Co-written books are prefixed with all their authors, sorted names if asked."""
        authors = [Author("1", "Terry Pratchett", "Pratchett, Terry"),
                   Author("2", "Neil Gaiman", "Gaiman, Neil")]
        book = make_book("1", "Good Omens", authors=authors)

        ctx = make_context([book])
        assert book_title(ctx, book, TitleOption.DEFAULT, author_prefix=True) == (
            "Terry Pratchett & Neil Gaiman - Good Omens"
        )
        ctx = make_context([book], CatalogProfile(display_author_sort=True))
        assert book_title(ctx, book, TitleOption.DEFAULT, author_prefix=True) == (
            "Pratchett, Terry & Gaiman, Neil - Good Omens"
        )

    def test_title_sort_displayed(self, make_context, make_book) -> None:
        """display_title_sort shows the title without its leading article."""
        book = make_book("1", "The Hobbit")
        ctx = make_context([book], CatalogProfile(display_title_sort=True))
        assert book_title(ctx, book, TitleOption.DEFAULT) == "Hobbit"


class TestComments:
    """Tests for comment and summary handling."""

    def test_plain_text_wrapped_in_paragraphs(self, make_context, make_book) -> None:
        """Plain-text comments are escaped and split into paragraphs."""
        book = make_book("1", "Cookbook", comment="Fish & chips\n\nSecond part")
        ctx = make_context([book])
        assert comment_html(ctx, book) == "<p>Fish &amp; chips</p><p>Second part</p>"

    def test_wellformed_html_kept(self, make_context, make_book) -> None:
        """Well-formed XHTML comments are used as they are."""
        book = make_book("1", "Dune", comment="<p>On <b>Arrakis</b>.</p>")
        ctx = make_context([book])
        assert comment_html(ctx, book) == "<p>On <b>Arrakis</b>.</p>"
        assert summary_text(ctx, book) == "On Arrakis."

    def test_calibre_html_converted(self, make_context, make_book) -> None:
        """Void tags are closed and named entities decoded instead of dropping the comment."""
        book = make_book(
            "1", "Cafe", comment="<p>First line<br>second line</p><p>Caf&eacute; &nbsp;end</p>"
        )
        ctx = make_context([book])

        assert comment_html(ctx, book) == (
            "<p>First line<br/>second line</p><p>Caf\u00e9 \u00a0end</p>"
        )
        assert summary_text(ctx, book) == "First line second line Caf\u00e9 end"
        assert ctx.state.warnings == 0

    def test_word_markup_unwrapped(self, make_context, make_book) -> None:
        """Namespaced Word tags and their attributes are removed, their text kept."""
        book = make_book(
            "1", "Memo",
            comment='<p class="MsoNormal" xmlns:o="urn:o">Hello<o:p> world</o:p></p>',
        )
        ctx = make_context([book])
        assert comment_html(ctx, book) == '<p class="MsoNormal">Hello world</p>'

    def test_unclosed_tags_repaired(self, make_context, make_book) -> None:
        """Unclosed paragraphs are closed rather than treated as broken."""
        book = make_book("1", "Draft", comment="<p>Unclosed paragraph")
        ctx = make_context([book])
        assert comment_html(ctx, book) == "<p>Unclosed paragraph</p>"
        assert ctx.state.warnings == 0

    def test_scripts_dropped(self, make_context, make_book) -> None:
        """Scripts and HTML comments never reach the catalog."""
        book = make_book(
            "1", "Web", comment="<p>Text</p><script>alert(1)</script><!-- note -->"
        )
        ctx = make_context([book])
        assert comment_html(ctx, book) == "<p>Text</p>"

    def test_malformed_comment_dropped_with_one_warning(self, make_context, make_book) -> None:
        """A comment that cannot become XML is ignored for the rest of the run."""
        book = make_book("1", "Broken", comment="<p>Corrupted \x01 text</p>")
        ctx = make_context([book])

        assert comment_html(ctx, book) == ""
        assert summary_text(ctx, book) == ""
        assert comment_html(ctx, book) == ""
        assert ctx.state.warnings == 1

    def test_summary_shortened(self, make_context, sample_books) -> None:
        """Summaries are cut at a word boundary and marked with an ellipsis."""
        ctx = make_context(sample_books, CatalogProfile(max_book_summary_length=10))
        assert summary_text(ctx, sample_books[0]) == "A mystery..."

    def test_shorten_zero_limit(self) -> None:
        """A zero summary length disables summaries."""
        assert shorten("anything at all", 0) == ""

    def test_shorten_short_text_untouched(self) -> None:
        """Text within the limit is returned unchanged."""
        assert shorten("short", 10) == "short"


class TestAcquisitionLinks:
    """Tests for download links."""

    @pytest.fixture
    def two_format_book(self, make_book):
        return make_book(
            "9", "Rose", path="Eco/Rose",
            files=[EBookFile(EBookFormat.PDF, "rose"), EBookFile(EBookFormat.EPUB, "rose")],
        )

    def test_links_in_format_order(self, make_context, two_format_book) -> None:
        """Each file gets a link, in format declaration order."""
        ctx = make_context([two_format_book])
        links = acquisition_links(ctx, two_format_book)

        assert [link.href for link in links] == ["../Eco/Rose/rose.epub", "../Eco/Rose/rose.pdf"]
        assert all(link.rel == REL_ACQUISITION for link in links)
        assert links[0].type == "application/epub+zip"

    def test_only_preferred_file(self, make_context, two_format_book) -> None:
        """include_only_one_file keeps the highest-priority format."""
        ctx = make_context([two_format_book], CatalogProfile(include_only_one_file=True))
        links = acquisition_links(ctx, two_format_book)
        assert [link.title for link in links] == ["EPUB"]

    def test_downloads_disabled(self, make_context, two_format_book) -> None:
        """No links are made when downloads are turned off."""
        ctx = make_context([two_format_book], CatalogProfile(generate_downloads=False))
        assert acquisition_links(ctx, two_format_book) == []

    def test_books_url_prefix(self, make_context, two_format_book) -> None:
        """A configured books URL replaces the relative prefix."""
        ctx = make_context([two_format_book], CatalogProfile(books_url="http://nas/books"))
        links = acquisition_links(ctx, two_format_book)
        assert links[0].href == "http://nas/books/Eco/Rose/rose.epub"


class TestNavigationLinks:
    """Tests for cross-reference links."""

    def test_links_to_shared_groups(self, make_context, sample_books) -> None:
        """Groups holding more than one book are linked and flagged as referenced."""
        ctx = make_context(sample_books)
        links = navigation_links(ctx, sample_books[0])

        assert [(link.href, link.title) for link in links] == [
            ("author_1.xml", "Author: Umberto Eco (2 books)"),
            ("tag_1.xml", "Tag: Mystery (2 books)"),
            ("rating_5.xml", "Rating: 5 stars (2 books)"),
        ]
        assert all(link.rel == REL_RELATED for link in links)
        assert ctx.state.is_referenced(AUTHOR, "1")
        assert ctx.state.is_referenced(TAG, "1")
        assert ctx.state.is_referenced(RATING, 5)

    def test_series_link_and_no_unrated_link(self, make_context, sample_books) -> None:
        """Series are linked; the unrated pseudo-rating never is."""
        ctx = make_context(sample_books)
        hrefs = [link.href for link in navigation_links(ctx, sample_books[3])]

        assert "serie_1.xml" in hrefs
        assert not any(href.startswith("rating_") for href in hrefs)
        assert ctx.state.is_referenced(SERIES, "1")
        assert not ctx.state.is_referenced(RATING, 0)

    def test_single_book_groups_not_linked(self, make_context, sample_books) -> None:
        """A rating held by only this book gets no link."""
        ctx = make_context(sample_books)
        hrefs = [link.href for link in navigation_links(ctx, sample_books[1])]
        assert "rating_4.xml" not in hrefs

    def test_placeholder_authors_skipped(self, make_context, make_book) -> None:
        """Unknown authors are never cross-referenced."""
        unknown = Author("9", "Unknown", "Unknown")
        books = [make_book("1", "One", authors=[unknown]), make_book("2", "Two", authors=[unknown])]
        ctx = make_context(books)
        assert navigation_links(ctx, books[0]) == []
        assert not ctx.state.is_referenced(AUTHOR, "9")

    def test_counts_omitted_when_minimizing_changes(self, make_context, sample_books) -> None:
        """minimize_changed_files keeps link titles stable as counts change."""
        ctx = make_context(sample_books, CatalogProfile(minimize_changed_files=True))
        links = navigation_links(ctx, sample_books[0])
        assert links[0].title == "Author: Umberto Eco"


class TestExternalLinks:
    """Tests for third-party links."""

    def test_isbn_variants(self, make_context, sample_books) -> None:
        """Books with an ISBN link by ISBN."""
        ctx = make_context(sample_books)
        links = {link.title: link.href for link in external_links(ctx, sample_books[0])}

        assert links["Goodreads"] == "https://www.goodreads.com/book/isbn/9780156001311"
        assert links["Wikipedia"] == (
            "https://en.wikipedia.org/wiki/Special:Search?search=The+Name+of+the+Rose"
        )
        assert "Goodreads reviews" in links
        assert "ISFDB author" in links

    def test_title_variants_without_isbn(self, make_context, sample_books) -> None:
        """Books without an ISBN link by title."""
        ctx = make_context(sample_books)
        links = {link.title: link.href for link in external_links(ctx, sample_books[1])}

        assert links["Goodreads"] == "https://www.goodreads.com/search?q=Foucault%27s+Pendulum"
        assert "Goodreads reviews" not in links

    def test_bad_template_skipped_with_warning(self, make_context, sample_books) -> None:
        """A template naming an unknown field is reported and skipped."""
        profile = CatalogProfile(amazon_isbn_url="https://amazon.example/{asin}")
        ctx = make_context(sample_books, profile)
        titles = [link.title for link in external_links(ctx, sample_books[0])]

        assert "Amazon" not in titles
        assert ctx.state.warnings == 1

    def test_empty_template_disables_link(self, make_context, sample_books) -> None:
        """An empty template turns one link off."""
        ctx = make_context(sample_books, CatalogProfile(isfdb_author_url=""))
        titles = [link.title for link in external_links(ctx, sample_books[0])]
        assert "ISFDB author" not in titles

    def test_disabled(self, make_context, sample_books) -> None:
        """No external links when the feature is off."""
        ctx = make_context(sample_books, CatalogProfile(generate_external_links=False))
        assert external_links(ctx, sample_books[0]) == []


class TestTagsAndDetails:
    """Tests for ignored tags and detail paragraphs."""

    def test_ignored_tag_patterns(self, make_context, sample_books) -> None:
        """Ignore patterns match case-insensitively, with a trailing wildcard."""
        profile = CatalogProfile(tags_to_ignore=["myst*", "science fiction"])
        ctx = make_context(sample_books, profile)
        assert is_ignored_tag(ctx, Tag("1", "Mystery"))
        assert is_ignored_tag(ctx, Tag("2", "Science Fiction"))
        assert not is_ignored_tag(ctx, Tag("3", "Poetry"))

    def test_details_of_series_book(self, make_context, sample_books) -> None:
        """Series, rating and tags appear as labelled details."""
        ctx = make_context(sample_books)
        details = dict(book_details(ctx, sample_books[2]))

        assert details["Series"] == "Dune [1]"
        assert details["Rating"] == "5 stars"
        assert details["Tags"] == "Science Fiction"

    def test_details_toggles(self, make_context, sample_books) -> None:
        """Each detail can be switched off."""
        profile = CatalogProfile(
            include_series_in_book_details=False, include_rating_in_book_details=False
        )
        ctx = make_context(sample_books, profile)
        labels = [label for label, _ in book_details(ctx, sample_books[2])]
        assert labels == ["Tags"]


class TestBookEntry:
    """Tests for book_entry and the detail page it writes."""

    def test_detail_page_written_once(self, make_context, sample_books) -> None:
        """A book listed twice gets a single detail page."""
        ctx = make_context(sample_books)
        crumbs = Breadcrumbs().extend("Catalog", "index.xml")

        book_entry(ctx, sample_books[0], crumbs)
        book_entry(ctx, sample_books[0], crumbs, TitleOption.DONT_INCLUDE_RATING)

        assert ctx.pages_written == 1
        assert ctx.state.full_entries_built == 1
        assert ctx.state.is_done(BOOK, "1")
        assert ctx.writer["book_1"].page_type is PageType.BOOK_FULL_ENTRY

    def test_partial_entry_links_to_detail(self, make_context, sample_books) -> None:
        """The list entry carries the contextual title and the detail link."""
        ctx = make_context(sample_books)
        entry = book_entry(ctx, sample_books[0], Breadcrumbs())

        assert entry.title == "The Name of the Rose (5 stars)"
        assert entry.id == "urn:book:uuid-1"
        assert entry.links_with_rel(REL_ALTERNATE)[0].href == "book_1.xml"
        assert entry.summary == "A mystery set in a medieval monastery."

    def test_full_entry_content(self, make_context, sample_books) -> None:
        """The detail entry holds metadata, comment and cross links."""
        ctx = make_context(sample_books)
        book_entry(ctx, sample_books[0], Breadcrumbs())
        full = ctx.writer["book_1"].entry

        assert full.title == "The Name of the Rose"
        assert full.content_html == "<p>A mystery set in a medieval monastery.</p>"
        assert ("Tags", "Mystery") in full.details
        assert "Mystery" in full.categories
        assert "author_1.xml" in [link.href for link in full.links_with_rel(REL_RELATED)]

    def test_author_uri_follows_authors_section(self, make_context, sample_books) -> None:
        """Author URIs point at author pages only when those are generated."""
        ctx = make_context(sample_books)
        assert book_entry(ctx, sample_books[0], Breadcrumbs()).authors == [
            ("Umberto Eco", "author_1.xml")
        ]

        ctx = make_context(sample_books, CatalogProfile(generate_authors=False))
        assert book_entry(ctx, sample_books[0], Breadcrumbs()).authors == [("Umberto Eco", None)]

    def test_missing_cover_uses_default_image(self, make_context, sample_books) -> None:
        """Without a library folder the default image is linked."""
        ctx = make_context(sample_books)
        entry = book_entry(ctx, sample_books[0], Breadcrumbs())
        assert entry.links[0].href == "default_cover.jpg"

    def test_failed_resize_linked_consistently(
        self, make_context, sample_books, fake_images, tmp_path
    ) -> None:
        """After a failed resize, list rows link the same image as the detail page."""
        source = tmp_path / "Author" / "Dune (3)" / "cover.jpg"
        thumbs = fake_images(existing={source}, fail=True)
        ctx = make_context(sample_books, library_root=tmp_path, thumbnails=thumbs)

        partial = book_entry(ctx, sample_books[2], Breadcrumbs())
        again = book_entry(ctx, sample_books[2], Breadcrumbs(), TitleOption.INCLUDE_SERIES_NUMBER)
        full = ctx.writer["book_3"].entry

        assert full.links_with_rel(REL_THUMBNAIL)[0].href == "default_cover.jpg"
        assert partial.links_with_rel(REL_THUMBNAIL)[0].href == "default_cover.jpg"
        assert again.links_with_rel(REL_THUMBNAIL)[0].href == "default_cover.jpg"
        assert ctx.state.warnings == 1

    def test_book_indexed_once(self, make_context, sample_books) -> None:
        """Each detail page feeds the search index once."""
        sink = RecordingSink()
        ctx = make_context(sample_books, index_sink=sink)

        book_entry(ctx, sample_books[0], Breadcrumbs())
        book_entry(ctx, sample_books[0], Breadcrumbs())

        assert sink.calls == [("1", "book_1.xml", "default_cover.jpg")]
        assert ctx.books_indexed == 1

    def test_index_disabled(self, make_context, sample_books) -> None:
        """generate_index off leaves the sink untouched."""
        sink = RecordingSink()
        ctx = make_context(sample_books, CatalogProfile(generate_index=False), index_sink=sink)
        book_entry(ctx, sample_books[0], Breadcrumbs())
        assert sink.calls == []

    def test_index_failure_is_a_warning(self, make_context, sample_books) -> None:
        """A failing index is reported without stopping generation."""
        ctx = make_context(sample_books, index_sink=RecordingSink(fail=True))
        book_entry(ctx, sample_books[0], Breadcrumbs())

        assert "book_1" in ctx.writer
        assert ctx.books_indexed == 0
        assert ctx.state.warnings == 1


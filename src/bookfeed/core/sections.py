# ABOUTME: Item kinds describing books, authors, series, tags, tag-tree levels, and ratings.
# ABOUTME: Each kind tells the list generator how to sort, date, name, and render its items.

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING

from bookfeed.core import naming
from bookfeed.core.entries import (
    TitleOption,
    author_display_name,
    book_entry,
    is_ignored_tag,
)
from bookfeed.core.feed import Entry
from bookfeed.core.paginate import ListRequest, SplitOption, retitled
from bookfeed.core.splitting import TreeNode, sort_text
from bookfeed.core.state import AUTHOR, RATING, SERIES, TAG, Breadcrumbs
from bookfeed.model.types import Author, Book, BookRating, Series, Tag

if TYPE_CHECKING:
    from bookfeed.core.context import CatalogContext


def _plural(count: int, noun: str) -> str:
    return f"1 {noun}" if count == 1 else f"{count} {noun}s"


def books_by_title(books: list[Book]) -> list[Book]:
    return sorted(books, key=lambda b: (sort_text(b.sort_title), b.id))


def books_by_author(books: list[Book]) -> list[Book]:
    def key(book: Book):
        author = book.main_author
        return (sort_text(author.sort_name if author else ""), sort_text(book.sort_title), book.id)

    return sorted(books, key=key)


def books_by_series_index(books: list[Book]) -> list[Book]:
    return sorted(books, key=lambda b: (b.series_index, sort_text(b.sort_title), b.id))


class BookItems:
    """Books rendered as partial entries, writing each detail page once."""

    plural = "Books"
    holds_books = True

    def __init__(self, ctx: "CatalogContext", option: TitleOption = TitleOption.DEFAULT,
                 author_prefix: bool = False) -> None:
        self.ctx = ctx
        self.option = option
        self.author_prefix = author_prefix

    def sort_key(self, book: Book) -> str:
        return book.sort_title

    def added(self, book: Book) -> datetime | None:
        return book.added

    def label(self, book: Book) -> str:
        return book.title

    def item_id(self, book: Book) -> str:
        return book.id

    def summarize(self, count: int) -> str:
        return _plural(count, "book")

    def entry(self, book: Book, breadcrumbs: Breadcrumbs) -> Entry:
        return book_entry(self.ctx, book, breadcrumbs, self.option, self.author_prefix)


class _GroupItems(ABC):
    """Entities owning a book list; the list pages are written on first use only."""

    holds_books = False
    state_kind = ""

    def __init__(self, ctx: "CatalogContext") -> None:
        self.ctx = ctx

    def added(self, item) -> datetime | None:
        return None

    def summarize(self, count: int) -> str:
        return _plural(count, self.noun)

    def entry(self, item, breadcrumbs: Breadcrumbs) -> Entry:
        state = self.ctx.state
        key = self.state_key(item)

        def compute() -> Entry:
            state.mark_done(self.state_kind, key)
            return self.ctx.lists.generate(self.book_list(item, breadcrumbs))

        return state.cached("list-entry", (self.state_kind, key), compute)

    def state_key(self, item):
        return self.item_id(item)

    @abstractmethod
    def book_list(self, item, breadcrumbs: Breadcrumbs) -> ListRequest:
        """The request for the book list page of one entity."""


class AuthorItems(_GroupItems):
    plural = "Authors"
    noun = "author"
    state_kind = AUTHOR

    def sort_key(self, author: Author) -> str:
        return author.sort_name

    def label(self, author: Author) -> str:
        return author_display_name(self.ctx, author)

    def item_id(self, author: Author) -> str:
        return author.id

    def book_list(self, author: Author, breadcrumbs: Breadcrumbs) -> ListRequest:
        books = books_by_title(self.ctx.library.books_by_author.get(author, []))
        return ListRequest(
            items=books,
            kind=BookItems(self.ctx),
            title=self.label(author),
            base_filename=naming.author_filename(author),
            urn=f"calibre:author:{author.id}",
            breadcrumbs=breadcrumbs,
            split_option=SplitOption.NO_SPLIT,
        )


class SeriesItems(_GroupItems):
    plural = "Series"
    noun = "series"
    state_kind = SERIES

    def summarize(self, count: int) -> str:
        return f"{count} series"

    def sort_key(self, series: Series) -> str:
        return series.sort_name

    def label(self, series: Series) -> str:
        return series.name

    def item_id(self, series: Series) -> str:
        return series.id

    def book_list(self, series: Series, breadcrumbs: Breadcrumbs) -> ListRequest:
        books = books_by_series_index(self.ctx.library.books_by_series.get(series, []))
        return ListRequest(
            items=books,
            kind=BookItems(self.ctx, TitleOption.INCLUDE_SERIES_NUMBER),
            title=series.name,
            base_filename=naming.series_filename(series),
            urn=f"calibre:series:{series.id}",
            breadcrumbs=breadcrumbs,
            split_option=SplitOption.NO_SPLIT,
        )


class TagItems(_GroupItems):
    plural = "Tags"
    noun = "tag"
    state_kind = TAG

    def sort_key(self, tag: Tag) -> str:
        return tag.name

    def label(self, tag: Tag) -> str:
        return tag.name

    def item_id(self, tag: Tag) -> str:
        return tag.id

    def book_list(self, tag: Tag, breadcrumbs: Breadcrumbs) -> ListRequest:
        profile = self.ctx.profile
        books = self.ctx.library.books_by_tag.get(tag, [])
        if profile.sort_tags_by_author:
            books = books_by_author(books)
        else:
            books = books_by_title(books)

        if profile.tag_books_no_split or profile.max_split_levels <= 0:
            option = SplitOption.PAGINATE
        else:
            option = SplitOption.SPLIT_BY_LETTER
        return ListRequest(
            items=books,
            kind=BookItems(self.ctx, author_prefix=profile.sort_tags_by_author),
            title=tag.name,
            base_filename=naming.tag_filename(tag),
            urn=f"calibre:tag:{tag.id}",
            breadcrumbs=breadcrumbs,
            split_option=option,
        )


class RatingItems(_GroupItems):
    plural = "Ratings"
    noun = "rating"
    state_kind = RATING

    def sort_key(self, rating: BookRating) -> str:
        return rating.label

    def label(self, rating: BookRating) -> str:
        return rating.label

    def item_id(self, rating: BookRating) -> str:
        return str(rating.value)

    def state_key(self, rating: BookRating) -> int:
        return rating.value

    def book_list(self, rating: BookRating, breadcrumbs: Breadcrumbs) -> ListRequest:
        books = books_by_title(self.ctx.library.books_by_rating.get(rating, []))
        return ListRequest(
            items=books,
            kind=BookItems(self.ctx, TitleOption.DONT_INCLUDE_RATING),
            title=rating.label,
            base_filename=naming.rating_filename(rating),
            urn=f"calibre:rating:{rating.value}",
            breadcrumbs=breadcrumbs,
        )


class TagTreeItems:
    """Levels of the tag hierarchy; leaves open the tag's own book list."""

    plural = "Tags"
    holds_books = False

    def __init__(self, ctx: "CatalogContext", tags: TagItems) -> None:
        self.ctx = ctx
        self.tags = tags

    def sort_key(self, node: TreeNode) -> str:
        return node.id

    def added(self, node: TreeNode) -> datetime | None:
        return None

    def label(self, node: TreeNode) -> str:
        return node.path

    def item_id(self, node: TreeNode) -> str:
        return node.guid

    def summarize(self, count: int) -> str:
        return _plural(count, "tag")

    def entry(self, node: TreeNode, breadcrumbs: Breadcrumbs) -> Entry:
        if node.is_leaf:
            return retitled(self.tags.entry(node.data, breadcrumbs), node.id)
        return self.ctx.lists.generate(self.level(node, breadcrumbs))

    def level(self, node: TreeNode, breadcrumbs: Breadcrumbs,
              title: str | None = None, base_filename: str | None = None) -> ListRequest:
        """List of one tree level: the node's own tag first, then its children."""
        items: list[TreeNode] = []
        if node.data is not None:
            items.append(TreeNode(id=node.id, path=node.path, data=node.data))
        items.extend(node.sorted_children())
        return ListRequest(
            items=items,
            kind=self,
            title=title or node.id,
            base_filename=base_filename or naming.tag_level_filename(node.guid),
            urn=f"calibre:tagtree:{node.guid}",
            breadcrumbs=breadcrumbs,
            split_option=SplitOption.PAGINATE,
            summary=_plural(len(node.tags()), "tag"),
        )


def visible_tag_list(ctx: "CatalogContext") -> list[Tag]:
    """Tags that have books and are not ignored, in display order."""
    tags = [
        tag for tag in ctx.library.tags
        if ctx.library.count_for_tag(tag) and not is_ignored_tag(ctx, tag)
    ]
    return sorted(tags, key=lambda t: (sort_text(t.name), t.id))

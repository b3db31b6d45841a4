# ABOUTME: Pure partitioning of item lists by sort-key letters, date ranges, or tag paths.
# ABOUTME: Deterministic: bucket order depends only on the items, never on the system locale.

import hashlib
import unicodedata
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from bookfeed.model.daterange import DateRange
from bookfeed.model.types import Tag

OTHER_KEY = "_"


def sort_text(text: str | None) -> str:
    """Collation key for display strings: accents removed, case folded."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def letter_key(text: str | None, depth: int = 1) -> str:
    """Split key made of the first `depth` letters of `text`, uppercased.

    Text not starting with a letter goes to the "other" bucket. Keys of
    text shorter than `depth` are padded with the "other" character.
    """
    base = sort_text(text).strip().upper()
    if not base or not base[0].isalpha():
        return OTHER_KEY
    key = base[:depth]
    return key + OTHER_KEY * (depth - len(key))


def _key_order(key: str) -> tuple[bool, str]:
    # The "other" bucket is always listed after every letter bucket.
    return (key == OTHER_KEY, key)


def split_by_letter(
    items: Iterable, key_fn: Callable[[object], str], depth: int = 1
) -> dict[str, list]:
    """Group items by the leading letters of their sort key.

    Args:
        items: Items to partition; their relative order is kept in each bucket.
        key_fn: Returns the sort string of an item.
        depth: Number of leading letters in each key.

    Returns:
        Ordered mapping of key -> non-empty item list; letter keys ascending,
        the "_" bucket last.
    """
    buckets: dict[str, list] = {}
    for item in items:
        buckets.setdefault(letter_key(key_fn(item), depth), []).append(item)
    return {key: buckets[key] for key in sorted(buckets, key=_key_order)}


def split_by_date(
    items: Iterable, added_fn: Callable[[object], datetime | None], now: datetime
) -> dict[DateRange, list]:
    """Group items by the date range of their added timestamp, newest range first."""
    buckets: dict[DateRange, list] = {}
    for item in items:
        buckets.setdefault(DateRange.find(added_fn(item), now), []).append(item)
    return {key: buckets[key] for key in sorted(buckets)}


@dataclass
class TreeNode:
    """One level of the tag hierarchy.

    `id` is the visible segment (several segments once a chain is collapsed),
    `path` the full delimited path from the root, which never changes.
    """

    id: str
    path: str = ""
    data: Tag | None = None
    children: list["TreeNode"] = field(default_factory=list)

    @property
    def guid(self) -> str:
        return hashlib.sha256(self.path.encode("utf-8")).hexdigest()[:16]

    @property
    def is_leaf(self) -> bool:
        return self.data is not None and not self.children

    def child(self, segment: str) -> "TreeNode | None":
        for node in self.children:
            if node.id == segment:
                return node
        return None

    def sorted_children(self) -> list["TreeNode"]:
        return sorted(self.children, key=lambda node: (sort_text(node.id), node.id))

    def tags(self) -> list[Tag]:
        """All tags at or below this node."""
        found = [self.data] if self.data is not None else []
        for node in self.children:
            found.extend(node.tags())
        return found


def build_tag_tree(tags: Iterable[Tag], delimiter: str) -> TreeNode:
    """Build the tag hierarchy by splitting tag names on `delimiter`, then prune it."""
    root = TreeNode(id="")
    for tag in tags:
        node = root
        for segment in tag.parts(delimiter):
            found = node.child(segment)
            if found is None:
                path = f"{node.path}{delimiter}{segment}" if node.path else segment
                found = TreeNode(id=segment, path=path)
                node.children.append(found)
            node = found
        if node.data is None:
            node.data = tag
    prune_tree(root, delimiter)
    return root


def prune_tree(node: TreeNode, delimiter: str) -> None:
    """Remove empty levels and collapse single-child chains below `node`.

    A data-less child with no children is dropped; one with a single child
    is replaced by that child, whose id is prefixed with the removed level.
    """
    pruned: list[TreeNode] = []
    for child in node.children:
        while child.data is None and len(child.children) == 1:
            grandchild = child.children[0]
            grandchild.id = f"{child.id}{delimiter}{grandchild.id}"
            child = grandchild
        if child.data is None and not child.children:
            continue
        prune_tree(child, delimiter)
        pruned.append(child)
    node.children = pruned

# ABOUTME: Per-run generation state: breadcrumbs, done/referenced flags, and caches.
# ABOUTME: Scoped to one catalog run so entities stay immutable and runs stay independent.

from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any


class GenerationCancelled(Exception):
    """Raised when the host asks generation to stop between items."""


@dataclass(frozen=True)
class Crumb:
    title: str
    url: str | None


@dataclass(frozen=True)
class Breadcrumbs:
    """Navigation trail from the catalog root to the current page.

    Never mutated; `extend` returns a new trail.
    """

    crumbs: tuple[Crumb, ...] = ()

    def extend(self, title: str, url: str | None) -> "Breadcrumbs":
        return Breadcrumbs(self.crumbs + (Crumb(title, url),))

    def __len__(self) -> int:
        return len(self.crumbs)

    def __iter__(self):
        return iter(self.crumbs)

    @property
    def root(self) -> Crumb | None:
        return self.crumbs[0] if self.crumbs else None

    @property
    def parent(self) -> Crumb | None:
        return self.crumbs[-1] if self.crumbs else None

    def progress_text(self) -> str:
        return " > ".join(crumb.title for crumb in self.crumbs)


# Entity kinds tracked by the done/referenced flags.
BOOK = "book"
AUTHOR = "author"
SERIES = "series"
TAG = "tag"
RATING = "rating"


@dataclass
class GenerationState:
    """Monotonic flags and write-once caches for a single generation run.

    Flags are keyed by (kind, id) and only ever go from unset to set.
    """

    should_continue: Callable[[], bool] = lambda: True
    warnings: int = 0
    full_entries_built: int = 0
    _done: set[tuple[str, Hashable]] = field(default_factory=set)
    _referenced: set[tuple[str, Hashable]] = field(default_factory=set)
    _cache: dict[tuple[str, Hashable], Any] = field(default_factory=dict)

    def is_done(self, kind: str, key: Hashable) -> bool:
        return (kind, key) in self._done

    def mark_done(self, kind: str, key: Hashable) -> None:
        self._done.add((kind, key))

    def is_referenced(self, kind: str, key: Hashable) -> bool:
        return (kind, key) in self._referenced

    def mark_referenced(self, kind: str, key: Hashable) -> None:
        self._referenced.add((kind, key))

    def referenced_keys(self, kind: str) -> set[Hashable]:
        return {key for (k, key) in self._referenced if k == kind}

    def cached(self, name: str, key: Hashable, compute: Callable[[], Any]) -> Any:
        """Return the cached value for (name, key), computing it at most once."""
        slot = (name, key)
        if slot not in self._cache:
            self._cache[slot] = compute()
        return self._cache[slot]

    def override(self, name: str, key: Hashable, value: Any) -> None:
        """Replace a derived value for the rest of the run (e.g. a bad comment)."""
        self._cache[(name, key)] = value

    def warn(self) -> None:
        self.warnings += 1

    def check_continue(self) -> None:
        if not self.should_continue():
            raise GenerationCancelled("Catalog generation cancelled by host")

"""Domain models for nodekeeper."""

from dataclasses import dataclass
from enum import StrEnum

from nodekeeper.core.pattern.ast import Condition


class Order(StrEnum):
    ASC = "asc"
    DESC = "desc"


class ArchiveFilter(StrEnum):
    """Which notes a listing includes, by archived flag."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    ALL = "all"


class SortKey(StrEnum):
    ID = "id"
    EDITED = "edited"
    PRIORITY = "priority"

    def cycle(self) -> "SortKey":
        """Return the next key in the order id -> edited -> priority -> id."""
        members = list(SortKey)
        return members[(members.index(self) + 1) % len(members)]


@dataclass(frozen=True)
class Note:
    """A stored note as returned by a listing, with its aggregated tags."""

    id: int
    content: str
    priority: int = 0
    archived: bool = False
    edited: str = ""
    tags: tuple[str, ...] = ()


@dataclass
class NoteSummary:
    """A browser row. ``selected`` is UI state and never persisted."""

    id: int
    priority: int
    summary: str
    tags: tuple[str, ...] = ()
    selected: bool = False


@dataclass(frozen=True)
class ListArgs:
    """Arguments of a note listing.

    ``preorder`` is applied before the ``count`` cap and ``postorder`` after
    it. ``pattern`` must already be parsed.
    """

    preorder: Order = Order.DESC
    postorder: Order = Order.ASC
    count: int | None = None
    pattern: Condition | None = None
    archived: ArchiveFilter = ArchiveFilter.ACTIVE
    sort: SortKey = SortKey.ID

"""In-memory state of the interactive note browser.

The model caches one listing of notes together with the cursor (``hover``),
the first drawn row (``start``) and the per-row selection flags. It is
replaced wholesale by ``reload`` and trimmed in place after archive and
delete. Invariants kept by every operation::

    0 <= start <= hover < len(nodes)          when nodes is non-empty
    hover - start < height
"""

import sqlite3
from collections.abc import Sequence
from dataclasses import replace

from loguru import logger

from nodekeeper.core.pattern.ast import Condition
from nodekeeper.core.query.lister import list_nodes
from nodekeeper.core.write import store
from nodekeeper.models.node import ArchiveFilter, ListArgs, Note, NoteSummary, SortKey
from nodekeeper.summary import node_summary

# Rows kept between the cursor and the viewport edge while scrolling.
DEFAULT_CURSOR_OFF = 2

# Columns reserved for the "id: " prefix when building summaries.
_ID_COLUMNS = 8


class BrowserModel:
    def __init__(
        self,
        conn: sqlite3.Connection,
        args: ListArgs,
        *,
        height: int = 24,
        width: int = 80,
        cursor_off: int = DEFAULT_CURSOR_OFF,
        pattern_text: str = "",
    ) -> None:
        self.conn = conn
        self.args = args
        self.pattern_text = pattern_text
        self.nodes: list[NoteSummary] = []
        self.hover = 0
        self.start = 0
        self.height = max(1, height)
        self.width = max(1, width)
        self.cursor_off = cursor_off

    # -- geometry ---------------------------------------------------------

    @property
    def hovered(self) -> NoteSummary | None:
        return self.nodes[self.hover] if self.nodes else None

    def visible(self) -> list[tuple[int, NoteSummary]]:
        """Return (index, row) pairs for the rows inside the viewport."""
        end = min(len(self.nodes), self.start + self.height)
        return [(i, self.nodes[i]) for i in range(self.start, end)]

    def resize(self, height: int, width: int) -> None:
        self.height = max(1, height)
        self.width = max(1, width)
        self._clamp()

    def _scroll(self) -> None:
        """Move ``start`` so that ``hover`` stays inside the margin."""
        margin = min(self.cursor_off, (self.height - 1) // 2)
        if self.hover < self.start + margin:
            self.start = self.hover - margin
        elif self.hover > self.start + self.height - 1 - margin:
            self.start = self.hover - (self.height - 1 - margin)
        self.start = max(0, min(self.start, len(self.nodes) - self.height))

    def _clamp(self) -> None:
        if not self.nodes:
            self.hover = 0
            self.start = 0
            return
        self.hover = max(0, min(self.hover, len(self.nodes) - 1))
        self._scroll()

    def cursor_down(self, n: int = 1) -> None:
        if not self.nodes:
            return
        self.hover = min(len(self.nodes) - 1, self.hover + n)
        self._scroll()

    def cursor_up(self, n: int = 1) -> None:
        if not self.nodes:
            return
        self.hover = max(0, self.hover - n)
        self._scroll()

    def jump_top(self) -> None:
        self.hover = 0
        self.start = 0

    def jump_bottom(self) -> None:
        """Hover the last row with the viewport pinned to the bottom."""
        if not self.nodes:
            return
        self.hover = len(self.nodes) - 1
        self.start = max(0, len(self.nodes) - self.height)

    # -- loading ----------------------------------------------------------

    def _summarize(self, note: Note, selected: set[int]) -> NoteSummary:
        return NoteSummary(
            id=note.id,
            priority=note.priority,
            summary=node_summary(note.content, 1, max(1, self.width - _ID_COLUMNS)),
            tags=note.tags,
            selected=note.id in selected,
        )

    def reload(self, *, clear_selection: bool = False, keep_hover_id: int | None = None) -> None:
        """Re-run the listing and replace ``nodes``.

        Selected ids that are still listed stay selected unless
        ``clear_selection`` is set. With ``keep_hover_id`` the cursor follows
        that note to its new position, if it is still listed.
        """
        selected = set() if clear_selection else set(self.selected_ids())
        nodes: list[NoteSummary] = []
        list_nodes(self.conn, self.args, lambda note: nodes.append(self._summarize(note, selected)))
        self.nodes = nodes

        if keep_hover_id is not None:
            for i, node in enumerate(self.nodes):
                if node.id == keep_hover_id:
                    self.hover = i
                    break
        self._clamp()
        logger.debug("Reloaded {} nodes", len(self.nodes))

    def set_pattern(self, pattern: Condition | None, text: str) -> None:
        """Apply a new filter, move to the top and reload."""
        self.args = replace(self.args, pattern=pattern)
        self.pattern_text = text
        self.jump_top()
        self.reload()

    def cycle_sort(self) -> SortKey:
        """Switch to the next sort key, keeping the cursor on the same note."""
        self.args = replace(self.args, sort=self.args.sort.cycle())
        hovered = self.hovered
        self.reload(keep_hover_id=hovered.id if hovered else None)
        return self.args.sort

    def cycle_archive_view(self) -> ArchiveFilter:
        """Toggle between hiding archived notes and showing them mixed in."""
        new = ArchiveFilter.ALL if self.args.archived is ArchiveFilter.ACTIVE else ArchiveFilter.ACTIVE
        return self._set_archive_view(new)

    def toggle_archived_only(self) -> ArchiveFilter:
        """Toggle between showing only archived notes and only active ones."""
        new = (
            ArchiveFilter.ACTIVE
            if self.args.archived is ArchiveFilter.ARCHIVED
            else ArchiveFilter.ARCHIVED
        )
        return self._set_archive_view(new)

    def _set_archive_view(self, archived: ArchiveFilter) -> ArchiveFilter:
        self.args = replace(self.args, archived=archived)
        self.jump_top()
        self.reload()
        return archived

    # -- selection --------------------------------------------------------

    def selected_ids(self) -> list[int]:
        return [node.id for node in self.nodes if node.selected]

    def selection_or_hover(self) -> tuple[list[int], bool]:
        """Return the selected ids, or the hovered id alone.

        The flag is True when the hovered row was used. With no rows the id
        list is empty.
        """
        selected = self.selected_ids()
        if selected:
            return selected, False
        hovered = self.hovered
        return ([hovered.id] if hovered else []), True

    def toggle_selection(self) -> None:
        hovered = self.hovered
        if hovered is not None:
            hovered.selected = not hovered.selected

    def clear_selection(self) -> None:
        for node in self.nodes:
            node.selected = False

    # -- mutations --------------------------------------------------------

    def _drop(self, ids: Sequence[int]) -> None:
        gone = set(ids)
        hovered = self.hovered
        # rows above the cursor that disappear pull it up with them
        removed_above = sum(1 for node in self.nodes[: self.hover] if node.id in gone)
        self.nodes = [node for node in self.nodes if node.id not in gone]
        if hovered is not None and hovered.id not in gone:
            self.hover -= removed_above
        else:
            self.hover = max(0, self.hover - removed_above)
        self._clamp()

    def archive(self) -> list[int]:
        """Toggle archived for the selection, or the hovered note.

        When the view shows only one archive state, the affected rows no
        longer belong to it and are removed without a reload.
        """
        ids, _ = self.selection_or_hover()
        if not ids:
            return []
        store.toggle_archived(self.conn, ids)
        if self.args.archived is not ArchiveFilter.ALL:
            self._drop(ids)
        return ids

    def delete(self, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        count = store.delete_nodes(self.conn, ids)
        self._drop(ids)
        return count

    def add_tags(self, ids: Sequence[int], tags: Sequence[str], *, clear_selection: bool = False) -> None:
        if not ids or not tags:
            return
        store.add_tags(self.conn, ids, tags)
        self.reload(clear_selection=clear_selection)

    def remove_tags(
        self, ids: Sequence[int], tags: Sequence[str], *, clear_selection: bool = False
    ) -> None:
        if not ids or not tags:
            return
        store.remove_tags(self.conn, ids, tags)
        self.reload(clear_selection=clear_selection)

    def adjust_priority(self, ids: Sequence[int], delta: int) -> None:
        """Change priorities and keep the cursor on the note it was on."""
        if not ids:
            return
        hovered = self.hovered
        store.adjust_priority(self.conn, ids, delta)
        self.reload(keep_hover_id=hovered.id if hovered else None)

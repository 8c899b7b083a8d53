"""Drawing the browser onto a curses window."""

import curses
from dataclasses import dataclass
from typing import Any

from nodekeeper.browser.model import BrowserModel
from nodekeeper.models.node import NoteSummary
from nodekeeper.summary import short_string


@dataclass(frozen=True)
class Palette:
    """curses attributes for the different kinds of rows."""

    hover: int = 0
    selected: int = 0
    status: int = 0
    alert: int = 0


@dataclass(frozen=True)
class StatusLine:
    text: str
    alert: bool = False


def format_tags(tags: tuple[str, ...]) -> str:
    return "".join(f"[{tag}]" for tag in tags)


def format_row(node: NoteSummary, columns: int) -> str:
    """Lay out one row as ``id: summary  [tags]`` within ``columns`` cells.

    On wide terminals the summary gets 70% of the space (at least 60
    cells) and the tags are right-aligned in the rest.
    """
    prefix = f"{node.id}: "
    tags = format_tags(node.tags)
    width = max(0, columns - len(prefix) - 1)

    if width > 80:
        summary_width = max(60, int(width * 0.7))
        tags_width = width - summary_width
        summary = short_string(node.summary, summary_width - 2)
        text = f"{prefix}{summary:<{summary_width - 2}}  {short_string(tags, tags_width):>{tags_width}}"
    else:
        text = f"{prefix}{node.summary}"
        if tags:
            text += f"  {tags}"
    return short_string(text, max(0, columns - 1))


def _put(window: Any, y: int, text: str, columns: int, attr: int) -> None:
    # curses refuses to write into the bottom-right cell
    try:
        window.addnstr(y, 0, text.ljust(columns - 1), max(0, columns - 1), attr)
    except curses.error:
        pass


def draw(window: Any, model: BrowserModel, status: StatusLine, palette: Palette) -> None:
    """Redraw the visible rows and the status line, then refresh."""
    columns = model.width
    window.erase()
    for y, (index, node) in enumerate(model.visible()):
        attr = 0
        if index == model.hover:
            attr |= palette.hover
        if node.selected:
            attr |= palette.selected
        _put(window, y, format_row(node, columns), columns, attr)

    attr = palette.alert if status.alert else palette.status
    _put(window, model.height, status.text, columns, attr)
    window.refresh()

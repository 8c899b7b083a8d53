"""Key handling for the interactive browser.

The controller is a state machine over four modes. Normal mode moves the
cursor and triggers actions; Search edits the filter pattern live; Command
collects a ``:`` command line; DeleteConfirm waits for ``y`` to delete the
ids captured when it was entered.
"""

import re
from dataclasses import dataclass, replace

from loguru import logger

from nodekeeper.browser import keys
from nodekeeper.browser.model import BrowserModel
from nodekeeper.browser.render import StatusLine
from nodekeeper.core.pattern.parser import parse_filter
from nodekeeper.core.write import store
from nodekeeper.errors import NodesError, PatternSyntaxError
from nodekeeper.protocols import EditorProtocol, ScreenProtocol


@dataclass(frozen=True)
class Normal:
    count: int = 0
    g_pending: bool = False


@dataclass(frozen=True)
class Search:
    buffer: str = ""


@dataclass(frozen=True)
class Command:
    buffer: str = ""


@dataclass(frozen=True)
class DeleteConfirm:
    ids: tuple[int, ...]
    hovered_only: bool


Mode = Normal | Search | Command | DeleteConfirm

_COMMAND_SPLIT = re.compile(r"[ ,]+")


class BrowserController:
    def __init__(
        self,
        model: BrowserModel,
        screen: ScreenProtocol,
        editor: EditorProtocol,
    ) -> None:
        self.model = model
        self.screen = screen
        self.editor = editor
        self.mode: Mode = Normal()
        self.message = ""
        self.message_is_error = False

    def resize(self, rows: int, columns: int) -> None:
        """Fit the model to a terminal of the given size (one status row)."""
        self.model.resize(rows - 1, columns)

    def status(self) -> StatusLine:
        """Return what the bottom line should show in the current mode."""
        match self.mode:
            case Search(buffer):
                return StatusLine(f"/{buffer}")
            case Command(buffer):
                return StatusLine(f":{buffer}")
            case DeleteConfirm(ids, hovered_only):
                what = f"node {ids[0]}" if hovered_only else f"{len(ids)} selected nodes"
                return StatusLine(f"Delete {what}? [y/n]", alert=True)
            case Normal():
                if self.message:
                    return StatusLine(self.message, alert=self.message_is_error)
                args = self.model.args
                info = f"sort: {args.sort}  view: {args.archived}"
                if self.model.pattern_text:
                    info += f"  filter: {self.model.pattern_text}"
                return StatusLine(info)
        msg = f"Unknown mode: {self.mode!r}"
        raise TypeError(msg)

    def _notify(self, message: str, *, error: bool = False) -> None:
        self.message = message
        self.message_is_error = error

    def handle_key(self, key: str) -> bool:
        """Process one key; return False when the browser should exit."""
        key = keys.normalize(key)
        if key == keys.RESIZE:
            # not a key press: the current mode and its pending input stay
            self.resize(*self.screen.measure())
            return True
        if isinstance(self.mode, Normal):
            self.message = ""
        try:
            match self.mode:
                case Normal():
                    return self._normal(self.mode, key)
                case Search():
                    self._search(self.mode, key)
                case Command():
                    self._command(self.mode, key)
                case DeleteConfirm():
                    self._delete(self.mode, key)
        except NodesError as e:
            logger.warning("{}", e)
            self.mode = Normal()
            self._notify(str(e), error=True)
        return True

    # -- normal mode ------------------------------------------------------

    def _normal(self, state: Normal, key: str) -> bool:
        model = self.model
        count = max(state.count, 1)
        next_state = Normal()

        if key == "q":
            return False
        if len(key) == 1 and key in "0123456789":
            next_state = Normal(count=min(state.count * 10 + int(key), 10**9))
        elif key in ("j", keys.DOWN):
            model.cursor_down(count)
        elif key in ("k", keys.UP):
            model.cursor_up(count)
        elif key in ("G", keys.END):
            model.jump_bottom()
        elif key == keys.HOME:
            model.jump_top()
        elif key == "g":
            if state.g_pending:
                model.jump_top()
            else:
                next_state = Normal(g_pending=True)
        elif key == " ":
            model.toggle_selection()
        elif key == "s":
            model.clear_selection()
        elif key == "a":
            model.archive()
        elif key == "r":
            self.resize(*self.screen.measure())
            model.reload()
        elif key in ("e", keys.ENTER):
            self._edit_hovered()
        elif key == "c":
            self._create()
        elif key == keys.CTRL_O:
            sort = model.cycle_sort()
            self._notify(f"Sorting by {sort}")
        elif key in ("J", "K"):
            ids, _ = model.selection_or_hover()
            model.adjust_priority(ids, -1 if key == "J" else 1)
        elif key == "/":
            next_state = Search(model.pattern_text)
        elif key == ":":
            next_state = Command()
        elif key in ("d", keys.DELETE):
            ids, hovered_only = model.selection_or_hover()
            if ids:
                next_state = DeleteConfirm(tuple(ids), hovered_only)

        self.mode = next_state
        return True

    def _edit_hovered(self) -> None:
        hovered = self.model.hovered
        if hovered is None:
            return
        with self.screen.suspended():
            changed = store.edit_node(self.model.conn, hovered.id, self.editor)
        self.model.reload(keep_hover_id=hovered.id)
        if changed:
            self._notify(f"Updated node {hovered.id}")

    def _create(self) -> None:
        with self.screen.suspended():
            node_id = store.create_with_editor(self.model.conn, self.editor)
        self.model.reload(keep_hover_id=node_id)
        self._notify(f"Created node {node_id}")

    # -- search mode ------------------------------------------------------

    def _search(self, state: Search, key: str) -> None:
        if key == keys.ENTER:
            self.mode = Normal()
            return
        if key in keys.CANCEL_KEYS:
            self.mode = Normal()
            self.model.set_pattern(None, "")
            return
        if key == keys.BACKSPACE:
            if not state.buffer:
                self.mode = Normal()
                return
            buffer = state.buffer[:-1]
        elif keys.is_text(key):
            buffer = state.buffer + key
        else:
            return

        self.mode = replace(state, buffer=buffer)
        try:
            pattern = parse_filter(buffer)
        except PatternSyntaxError as e:
            # keep filtering by the last valid pattern while the user types
            logger.debug("Incomplete pattern {!r}: {}", buffer, e)
            return
        self.model.set_pattern(pattern, buffer)

    # -- command mode -----------------------------------------------------

    def _command(self, state: Command, key: str) -> None:
        if key == keys.ENTER:
            self.mode = Normal()
            self.run_command(state.buffer)
        elif key in keys.CANCEL_KEYS:
            self.mode = Normal()
        elif key == keys.BACKSPACE:
            self.mode = replace(state, buffer=state.buffer[:-1]) if state.buffer else Normal()
        elif keys.is_text(key):
            self.mode = replace(state, buffer=state.buffer + key)

    def run_command(self, line: str) -> None:
        """Execute a command line; unknown commands do nothing."""
        words = [w for w in _COMMAND_SPLIT.split(line.strip()) if w]
        if not words:
            return
        name, args = words[0], words[1:]
        model = self.model

        if name in ("t", "tag") and args:
            ids, _ = model.selection_or_hover()
            model.add_tags(ids, args, clear_selection=True)
            self._notify(f"Tagged {len(ids)} nodes")
        elif name in ("ut", "untag") and args:
            ids, _ = model.selection_or_hover()
            model.remove_tags(ids, args, clear_selection=True)
            self._notify(f"Untagged {len(ids)} nodes")
        elif name == "a":
            self._notify(f"Showing {model.cycle_archive_view()} nodes")
        elif name == "A":
            self._notify(f"Showing {model.toggle_archived_only()} nodes")
        else:
            logger.debug("Ignoring unknown command {!r}", line)

    # -- delete confirmation ----------------------------------------------

    def _delete(self, state: DeleteConfirm, key: str) -> None:
        self.mode = Normal()
        if key in ("y", "Y"):
            count = self.model.delete(state.ids)
            self._notify(f"Deleted {count} nodes")

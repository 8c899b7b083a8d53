"""curses terminal session and the browser main loop.

Only the foreground thread touches curses and the browser model. It reads
keys in short slices; a background thread polls the terminal size and
posts each new size to ``TerminalSession.resizes``, which the foreground
drains between keys. The poller is stopped and joined before the terminal
is restored.
"""

import curses
import os
import queue
import signal
import sqlite3
import sys
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from types import FrameType, TracebackType
from typing import Any

from loguru import logger

from nodekeeper.browser.controller import BrowserController
from nodekeeper.browser.model import BrowserModel
from nodekeeper.browser.render import Palette, draw
from nodekeeper.models.node import ListArgs
from nodekeeper.protocols import EditorProtocol, KeySourceProtocol

POLL_INTERVAL = 0.05

_FALLBACK_SIZE = (24, 80)


def _sigterm(signum: int, frame: FrameType | None) -> None:
    raise SystemExit(128 + signum)


class TerminalSession:
    """Owns the terminal for the lifetime of a ``with`` block.

    Entering switches to curses (alternate screen, raw input, hidden
    cursor). Leaving, on any path, stops the resize poller and restores the
    terminal. When stdout is not a terminal, e.g. because the selected ids
    are piped elsewhere, the screen is drawn on ``/dev/tty`` instead.
    """

    def __init__(self) -> None:
        self.resizes: queue.Queue[tuple[int, int]] = queue.Queue()
        self.stdscr: Any = None
        self.palette = Palette()
        self._stop = threading.Event()
        self._poller: threading.Thread | None = None
        self._saved_stdout: int | None = None
        self._old_sigterm: Any = None

    def __enter__(self) -> "TerminalSession":
        self._attach_tty()
        self._old_sigterm = signal.signal(signal.SIGTERM, _sigterm)
        try:
            self.stdscr = curses.initscr()
            curses.noecho()
            curses.raw()
            self.stdscr.keypad(True)
            # wake up regularly so posted resizes are applied without a key press
            self.stdscr.timeout(int(POLL_INTERVAL * 1000))
            try:
                curses.curs_set(0)
            except curses.error:
                logger.debug("Terminal cannot hide the cursor")
            self.palette = self._make_palette()
        except BaseException:
            self._restore()
            raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop_poller()
        self._restore()

    def _attach_tty(self) -> None:
        if os.isatty(sys.stdout.fileno()):
            return
        sys.stdout.flush()
        tty = os.open("/dev/tty", os.O_RDWR)
        self._saved_stdout = os.dup(1)
        os.dup2(tty, 1)
        os.close(tty)

    def _restore(self) -> None:
        try:
            if self.stdscr is not None:
                try:
                    curses.curs_set(1)
                except curses.error:
                    pass
                self.stdscr.keypad(False)
                curses.noraw()
                curses.echo()
                curses.endwin()
                self.stdscr = None
        finally:
            if self._saved_stdout is not None:
                os.dup2(self._saved_stdout, 1)
                os.close(self._saved_stdout)
                self._saved_stdout = None
            if self._old_sigterm is not None:
                signal.signal(signal.SIGTERM, self._old_sigterm)
                self._old_sigterm = None

    def _make_palette(self) -> Palette:
        if not curses.has_colors():
            return Palette(
                hover=curses.A_REVERSE,
                selected=curses.A_BOLD,
                alert=curses.A_BOLD,
            )
        curses.start_color()
        curses.use_default_colors()
        curses.init_pair(1, curses.COLOR_RED, -1)
        curses.init_pair(2, curses.COLOR_GREEN, -1)
        return Palette(
            hover=curses.A_REVERSE,
            selected=curses.color_pair(1) | curses.A_BOLD,
            status=curses.color_pair(2),
            alert=curses.color_pair(1) | curses.A_BOLD,
        )

    def measure(self) -> tuple[int, int]:
        """Return the terminal size as (rows, columns)."""
        try:
            size = os.get_terminal_size(1)
        except OSError:
            return _FALLBACK_SIZE
        return size.lines, size.columns

    @contextmanager
    def suspended(self) -> Iterator[None]:
        """Leave curses mode while a child process uses the terminal."""
        curses.def_prog_mode()
        curses.endwin()
        try:
            yield
        finally:
            curses.reset_prog_mode()
            try:
                curses.curs_set(0)
            except curses.error:
                pass
            self.stdscr.clear()
            self.stdscr.refresh()

    def read_key(self) -> str | None:
        """Wait briefly for a key; None when none arrived.

        Special keys come back by curses name.
        """
        try:
            key = self.stdscr.get_wch()
        except curses.error:
            # timed out, or interrupted by a signal
            return None
        if isinstance(key, int):
            return curses.keyname(key).decode("ascii", "replace")
        return key

    def latest_size(self) -> tuple[int, int] | None:
        """Drain ``resizes`` and return the newest size posted, if any."""
        size = None
        while True:
            try:
                size = self.resizes.get_nowait()
            except queue.Empty:
                return size

    def apply_size(self, rows: int, columns: int) -> None:
        curses.resizeterm(rows, columns)

    def start_poller(self) -> None:
        """Post the terminal size to ``resizes`` whenever it changes.

        The poller thread only measures; it never calls into curses.
        """
        self._stop.clear()
        last = self.measure()

        def poll() -> None:
            nonlocal last
            while not self._stop.wait(POLL_INTERVAL):
                size = self.measure()
                if size != last:
                    last = size
                    self.resizes.put(size)

        self._poller = threading.Thread(target=poll, name="resize-poller", daemon=True)
        self._poller.start()

    def stop_poller(self) -> None:
        self._stop.set()
        if self._poller is not None:
            self._poller.join()
            self._poller = None


def browse(session: KeySourceProtocol, controller: BrowserController, redraw: Callable[[], None]) -> None:
    """Feed keys to ``controller`` until it asks to quit.

    Sizes posted by the poller are applied before each key, on this thread.
    """
    while True:
        size = session.latest_size()
        if size is not None:
            logger.debug("Terminal resized to {}x{}", *size)
            session.apply_size(*size)
            controller.resize(*size)
            redraw()
        key = session.read_key()
        if key is None:
            continue
        if not controller.handle_key(key):
            return
        redraw()


def run_browser(
    conn: sqlite3.Connection,
    args: ListArgs,
    editor: EditorProtocol,
    *,
    pattern_text: str = "",
) -> list[int]:
    """Run the interactive browser; return the ids selected at exit."""
    model = BrowserModel(conn, args, pattern_text=pattern_text)
    with TerminalSession() as session:
        controller = BrowserController(model, session, editor)

        def redraw() -> None:
            draw(session.stdscr, model, controller.status(), session.palette)

        controller.resize(*session.measure())
        model.reload()
        redraw()

        session.start_poller()
        browse(session, controller, redraw)

    return model.selected_ids()

"""Normalised key names delivered to the browser controller.

Printable characters are passed as themselves. Control characters keep
their raw code. Special keys use their curses names.
"""

ENTER = "\n"
ESC = "\x1b"
CTRL_C = "\x03"
CTRL_D = "\x04"
CTRL_O = "\x0f"

UP = "KEY_UP"
DOWN = "KEY_DOWN"
HOME = "KEY_HOME"
END = "KEY_END"
DELETE = "KEY_DC"
BACKSPACE = "KEY_BACKSPACE"
RESIZE = "KEY_RESIZE"

# Keys that leave a sub-mode without applying it.
CANCEL_KEYS = frozenset({ESC, CTRL_C, CTRL_D})

_ALIASES = {
    "\r": ENTER,
    "KEY_ENTER": ENTER,
    "\x7f": BACKSPACE,
    "\x08": BACKSPACE,
}


def normalize(key: str) -> str:
    """Map terminal-specific spellings onto the names above."""
    return _ALIASES.get(key, key)


def is_text(key: str) -> bool:
    """True for a single printable character (space included)."""
    return len(key) == 1 and key.isprintable()

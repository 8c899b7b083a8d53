"""Text helpers for one-line and multi-line note previews."""

ELLIPSIS = "..."


def short_string(text: str, max_length: int) -> str:
    """Trim ``text`` to ``max_length`` characters, ending in "..." when cut."""
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]
    return text[: max_length - len(ELLIPSIS)] + ELLIPSIS


def node_summary(content: str, lines: int | None = 1, width: int = 80) -> str:
    """Return a preview of a note.

    Args:
        content: The note text.
        lines: Maximum number of lines to include; None for all of them.
        width: Maximum characters per line.

    Multi-line previews are joined with a newline plus tab so that they line
    up under an ``id:\\t`` prefix, and end in ``[...]`` when lines were cut.
    """
    all_lines = content.splitlines()
    shown = all_lines if lines is None else all_lines[:lines]
    shown = [short_string(line, width) for line in shown]
    if lines == 1:
        return shown[0] if shown else ""
    text = "\n\t".join(shown)
    if lines is not None and len(all_lines) > lines:
        text += "\n\t[...]"
    return text

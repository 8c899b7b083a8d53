"""Protocols for dependency injection in the note tools."""

from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable


@runtime_checkable
class EditorProtocol(Protocol):
    """Something that lets the user edit a text buffer."""

    def __call__(self, text: str) -> str:
        """Return the edited text.

        Raises:
            EditorFailed: The edit could not be completed.
        """
        ...


@runtime_checkable
class ScreenProtocol(Protocol):
    """The terminal surface the browser controller draws on."""

    def suspended(self) -> AbstractContextManager[None]:
        """Hand the terminal to a child process for the duration of the block."""
        ...

    def measure(self) -> tuple[int, int]:
        """Return the current terminal size as (rows, columns)."""
        ...


class KeySourceProtocol(Protocol):
    """Where the browser loop gets keys and terminal sizes from."""

    def read_key(self) -> str | None:
        """Return the next key, or None when none arrived in time."""
        ...

    def latest_size(self) -> tuple[int, int] | None:
        """Return the newest terminal size reported since the last call."""
        ...

    def apply_size(self, rows: int, columns: int) -> None:
        ...

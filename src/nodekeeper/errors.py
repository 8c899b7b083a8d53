"""Error taxonomy for nodekeeper."""


class NodesError(Exception):
    """Base class for all nodekeeper errors."""


class PatternSyntaxError(NodesError):
    """A filter pattern could not be parsed.

    ``position`` is the index into the pattern text; ``char`` is the
    offending character, or None when the input ended unexpectedly.
    """

    def __init__(self, message: str, *, position: int, char: str | None) -> None:
        self.position = position
        self.char = char
        where = f"'{char}' at position {position}" if char is not None else "end of pattern"
        super().__init__(f"{message} ({where})")


class QueryFailed(NodesError):
    """Reading notes from the database failed."""


class MutationFailed(NodesError):
    """Writing to the database failed; the transaction was rolled back."""


class InvalidNode(NodesError):
    """A referenced node id does not exist."""

    def __init__(self, node_id: int) -> None:
        self.node_id = node_id
        super().__init__(f"No such node: {node_id}")


class EditorFailed(NodesError):
    """The external editor could not be started or exited with an error."""


class EmptyContent(NodesError):
    """A note was about to be created with empty content."""


class ConfigError(NodesError):
    """The configuration file is unreadable or invalid."""

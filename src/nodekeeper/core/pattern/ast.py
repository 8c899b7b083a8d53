"""Condition tree produced by the pattern parser.

Each variant is an immutable dataclass; ``Condition`` is their union.
``And``/``Or`` always hold at least two children when built by the parser,
since a single-element list collapses to that element.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Not:
    child: "Condition"


@dataclass(frozen=True)
class And:
    children: tuple["Condition", ...]


@dataclass(frozen=True)
class Or:
    children: tuple["Condition", ...]


@dataclass(frozen=True)
class ContentMatch:
    """Note body contains ``text``."""

    text: str


@dataclass(frozen=True)
class Tag:
    """Note has a tag exactly equal to ``text``."""

    text: str


@dataclass(frozen=True)
class TagMatch:
    """Note has a tag containing ``text``."""

    text: str


@dataclass(frozen=True)
class Match:
    """Note body or any of its tags contains ``text``."""

    text: str


Condition = Not | And | Or | ContentMatch | Tag | TagMatch | Match


def format_condition(cond: Condition, indent: int = 0) -> str:
    """Render a condition tree as an indented outline, one node per line."""
    pad = "  " * indent
    match cond:
        case Not(child):
            return f"{pad}Not\n{format_condition(child, indent + 1)}"
        case And(children) | Or(children):
            lines = [f"{pad}{type(cond).__name__}"]
            lines.extend(format_condition(c, indent + 1) for c in children)
            return "\n".join(lines)
        case ContentMatch(text) | Tag(text) | TagMatch(text) | Match(text):
            return f"{pad}{type(cond).__name__}({text!r})"

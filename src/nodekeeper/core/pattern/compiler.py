"""Compile condition trees into parameterised SQL predicates."""

from dataclasses import dataclass

from nodekeeper.core.pattern.ast import And, Condition, ContentMatch, Match, Not, Or, Tag, TagMatch

# The compiled SQL refers to the notes table by this alias.
NODE_ALIAS = "n"

_LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class Predicate:
    """A boolean SQL expression with its bound parameters, in order."""

    sql: str
    params: tuple[str, ...] = ()


def _like_contains(text: str) -> str:
    """Build a LIKE operand matching any value containing ``text`` literally."""
    escaped = (
        text.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def _content_contains(text: str) -> Predicate:
    return Predicate(
        f"{NODE_ALIAS}.content LIKE ? ESCAPE '{_LIKE_ESCAPE}'",
        (_like_contains(text),),
    )


def _tag_exists(condition: str, value: str) -> Predicate:
    return Predicate(
        f"EXISTS (SELECT 1 FROM tags WHERE tags.node = {NODE_ALIAS}.id AND {condition})",
        (value,),
    )


def _tag_equals(text: str) -> Predicate:
    return _tag_exists("tags.tag = ?", text)


def _tag_contains(text: str) -> Predicate:
    return _tag_exists(f"tags.tag LIKE ? ESCAPE '{_LIKE_ESCAPE}'", _like_contains(text))


def _join(op: str, parts: list[Predicate]) -> Predicate:
    sql = f" {op} ".join(f"({p.sql})" for p in parts)
    params = tuple(param for p in parts for param in p.params)
    return Predicate(sql, params)


def compile_condition(cond: Condition) -> Predicate:
    """Translate a condition tree into a predicate over ``nodes AS n``.

    Literal text is never spliced into the SQL; it is bound as parameters.
    Substring matches use LIKE, so they are case-insensitive for ASCII.
    """
    match cond:
        case Not(child):
            inner = compile_condition(child)
            return Predicate(f"NOT ({inner.sql})", inner.params)
        case And(children):
            return _join("AND", [compile_condition(c) for c in children])
        case Or(children):
            return _join("OR", [compile_condition(c) for c in children])
        case ContentMatch(text):
            return _content_contains(text)
        case Tag(text):
            return _tag_equals(text)
        case TagMatch(text):
            return _tag_contains(text)
        case Match(text):
            return _join("OR", [_content_contains(text), _tag_contains(text)])
    msg = f"Unknown condition node: {cond!r}"
    raise TypeError(msg)

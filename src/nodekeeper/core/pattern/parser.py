"""Recursive-descent parser for note filter patterns.

Grammar, loosest binding first::

    or   := and ("|" and)*
    and  := not ("&" not)*
    not  := "!" not | atom
    atom := "(" or ")"
          | "[" text "]"  | "t(" text ")"      -> Tag
          | "<" text ">"  | "t/" text "/"      -> TagMatch
          | "c(" text ")"                      -> ContentMatch
          | '"' text '"'  | bare               -> Match

Atom forms are tried in that order; a form whose closing delimiter is
missing falls through to the next one, so ``t/abc`` is the bare word
``t/abc``. Bare words run until one of ``| & ( ) [ ] < >`` and may contain
inner spaces. Whitespace between tokens is ignored.
"""

from collections.abc import Callable

from nodekeeper.core.pattern.ast import And, Condition, ContentMatch, Match, Not, Or, Tag, TagMatch
from nodekeeper.errors import PatternSyntaxError

DELIMITERS = frozenset("|&()[]<>")


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> Condition:
        cond = self._or()
        if self._peek() is not None:
            raise self._error("Unexpected input")
        return cond

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self) -> str | None:
        self._skip_ws()
        return self.text[self.pos] if self.pos < len(self.text) else None

    def _error(self, message: str) -> PatternSyntaxError:
        char = self.text[self.pos] if self.pos < len(self.text) else None
        return PatternSyntaxError(message, position=self.pos, char=char)

    def _list(self, sep: str, item: Callable[[], Condition], node: type[And] | type[Or]) -> Condition:
        children = [item()]
        while self._peek() == sep:
            self.pos += 1
            children.append(item())
        if len(children) == 1:
            return children[0]
        return node(tuple(children))

    def _or(self) -> Condition:
        return self._list("|", self._and, Or)

    def _and(self) -> Condition:
        return self._list("&", self._not, And)

    def _not(self) -> Condition:
        if self._peek() == "!":
            self.pos += 1
            return Not(self._not())
        return self._atom()

    def _atom(self) -> Condition:
        c = self._peek()
        if c is None:
            raise self._error("Expected an expression")

        if c == "(":
            self.pos += 1
            cond = self._or()
            if self._peek() != ")":
                raise self._error("Expected ')'")
            self.pos += 1
            return cond

        for opener, closer, node in (
            ("[", "]", Tag),
            ("t(", ")", Tag),
            ("<", ">", TagMatch),
            ("t/", "/", TagMatch),
            ("c(", ")", ContentMatch),
            ('"', '"', Match),
        ):
            text = self._delimited(opener, closer)
            if text is not None:
                return node(text)

        text = self._bare()
        if not text:
            raise self._error("Expected an expression")
        return Match(text)

    def _delimited(self, opener: str, closer: str) -> str | None:
        """Consume ``opener text closer`` with non-empty text, if present."""
        if not self.text.startswith(opener, self.pos):
            return None
        start = self.pos + len(opener)
        end = self.text.find(closer, start)
        if end <= start:
            return None
        self.pos = end + len(closer)
        return self.text[start:end]

    def _bare(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in DELIMITERS:
            self.pos += 1
        return self.text[start : self.pos].rstrip()


def parse(text: str) -> Condition:
    """Parse a pattern into a condition tree.

    Raises:
        PatternSyntaxError: The text is not a complete, valid pattern.
    """
    return _Parser(text).parse()


def parse_filter(text: str | None) -> Condition | None:
    """Parse an optional pattern; blank text means no filter."""
    if text is None or not text.strip():
        return None
    return parse(text)

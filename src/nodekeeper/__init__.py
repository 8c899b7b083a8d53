"""Personal note store with a pattern language and an interactive terminal browser."""

from nodekeeper.core.pattern.compiler import Predicate, compile_condition
from nodekeeper.core.pattern.parser import parse, parse_filter
from nodekeeper.core.query.lister import iter_nodes, list_nodes
from nodekeeper.errors import NodesError, PatternSyntaxError
from nodekeeper.models.node import ArchiveFilter, ListArgs, Note, Order, SortKey

__all__ = [
    "ArchiveFilter",
    "ListArgs",
    "NodesError",
    "Note",
    "Order",
    "PatternSyntaxError",
    "Predicate",
    "SortKey",
    "compile_condition",
    "iter_nodes",
    "list_nodes",
    "parse",
    "parse_filter",
]

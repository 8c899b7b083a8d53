"""Filtered, ordered and limited note listings."""

import sqlite3
from collections.abc import Callable, Iterator

from loguru import logger

from nodekeeper.core.pattern.compiler import NODE_ALIAS, compile_condition
from nodekeeper.errors import QueryFailed
from nodekeeper.models.node import ArchiveFilter, ListArgs, Note, Order, SortKey

_SORT_COLUMNS: dict[SortKey, str] = {
    SortKey.ID: "id",
    SortKey.EDITED: "edited",
    SortKey.PRIORITY: "priority",
}

# Separator for aggregated tag lists (ASCII unit separator, char(31) in SQL).
_TAG_SEP = "\x1f"


def _order_by(sort: SortKey, order: Order, prefix: str = "") -> str:
    direction = "ASC" if order is Order.ASC else "DESC"
    column = _SORT_COLUMNS[sort]
    if sort is SortKey.ID:
        return f"{prefix}id {direction}"
    # id breaks ties so that equal keys still list deterministically
    return f"{prefix}{column} {direction}, {prefix}id {direction}"


def build_list_query(args: ListArgs) -> tuple[str, list[str | int]]:
    """Build the SQL and parameters for a listing.

    The ordering by ``preorder`` happens before ``LIMIT``; if ``postorder``
    differs, the capped rows are re-sorted in an outer query.
    """
    n = NODE_ALIAS
    where_clauses: list[str] = []
    params: list[str | int] = []

    if args.archived is ArchiveFilter.ACTIVE:
        where_clauses.append(f"{n}.archived = 0")
    elif args.archived is ArchiveFilter.ARCHIVED:
        where_clauses.append(f"{n}.archived = 1")

    if args.pattern is not None:
        predicate = compile_condition(args.pattern)
        where_clauses.append(f"({predicate.sql})")
        params.extend(predicate.params)

    where_sql = f"WHERE {' AND '.join(where_clauses)}" if where_clauses else ""

    sql = f"""
        SELECT {n}.id, {n}.content, {n}.priority, {n}.archived, {n}.edited,
               (SELECT group_concat(tags.tag, char(31)) FROM tags
                WHERE tags.node = {n}.id) AS tag_list
        FROM nodes {n}
        {where_sql}
        ORDER BY {_order_by(args.sort, args.preorder, prefix=f"{n}.")}
    """
    if args.count is not None:
        sql += " LIMIT ?"
        params.append(args.count)

    if args.postorder != args.preorder:
        sql = f"SELECT * FROM ({sql}) ORDER BY {_order_by(args.sort, args.postorder)}"

    return sql, params


def _row_to_note(row: tuple) -> Note:
    tags = tuple(sorted(row[5].split(_TAG_SEP))) if row[5] else ()
    return Note(
        id=row[0],
        content=row[1],
        priority=row[2],
        archived=bool(row[3]),
        edited=row[4],
        tags=tags,
    )


def iter_nodes(conn: sqlite3.Connection, args: ListArgs) -> Iterator[Note]:
    """Yield the notes selected by ``args`` in their final order.

    Raises:
        QueryFailed: The database reported an error.
    """
    sql, params = build_list_query(args)
    try:
        cursor = conn.execute(sql, params)
        for row in cursor:
            yield _row_to_note(row)
    except sqlite3.Error as e:
        logger.debug("Listing failed for {!r}: {}", args, e)
        msg = f"Listing notes failed: {e}"
        raise QueryFailed(msg) from e


def list_nodes(
    conn: sqlite3.Connection,
    args: ListArgs,
    visit: Callable[[Note], None],
) -> int:
    """Stream the notes selected by ``args`` to ``visit``; return how many."""
    count = 0
    for note in iter_nodes(conn, args):
        visit(note)
        count += 1
    return count

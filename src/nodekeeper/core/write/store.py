"""Write operations and single-note reads against the node database."""

import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager

from loguru import logger

from nodekeeper.errors import EmptyContent, InvalidNode, MutationFailed, QueryFailed
from nodekeeper.protocols import EditorProtocol


@contextmanager
def _transaction(conn: sqlite3.Connection, what: str) -> Iterator[None]:
    """Commit on success; roll back and raise MutationFailed on sqlite errors."""
    try:
        yield
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        logger.debug("Rolled back {}: {}", what, e)
        msg = f"Failed to {what}: {e}"
        raise MutationFailed(msg) from e


def _placeholders(ids: Sequence[int]) -> str:
    return ",".join("?" * len(ids))


def create_node(conn: sqlite3.Connection, content: str, tags: Iterable[str] = ()) -> int:
    """Insert a new note and return its id.

    Raises:
        EmptyContent: ``content`` is empty or whitespace only.
    """
    if not content.strip():
        msg = "Empty note, nothing created"
        raise EmptyContent(msg)

    with _transaction(conn, "create note"):
        [(node_id,)] = conn.execute(
            "INSERT INTO nodes (content) VALUES (?) RETURNING id", (content,)
        ).fetchall()
        conn.executemany(
            "INSERT OR IGNORE INTO tags (node, tag) VALUES (?, ?)",
            [(node_id, tag) for tag in tags],
        )
    logger.debug("Created node {}", node_id)
    return node_id


def get_content(conn: sqlite3.Connection, node_id: int) -> str:
    """Return the content of a note.

    Raises:
        InvalidNode: No note has this id.
    """
    try:
        row = conn.execute("SELECT content FROM nodes WHERE id = ?", (node_id,)).fetchone()
    except sqlite3.Error as e:
        msg = f"Reading node {node_id} failed: {e}"
        raise QueryFailed(msg) from e
    if row is None:
        raise InvalidNode(node_id)
    return row[0]


def existing_ids(conn: sqlite3.Connection, ids: Sequence[int]) -> set[int]:
    """Return the subset of ``ids`` that exist in the database."""
    if not ids:
        return set()
    rows = conn.execute(
        f"SELECT id FROM nodes WHERE id IN ({_placeholders(ids)})", list(ids)
    ).fetchall()
    return {r[0] for r in rows}


def mark_viewed(conn: sqlite3.Connection, node_id: int) -> None:
    with _transaction(conn, f"mark node {node_id} viewed"):
        cursor = conn.execute(
            "UPDATE nodes SET viewed = CURRENT_TIMESTAMP WHERE id = ?", (node_id,)
        )
    if cursor.rowcount == 0:
        raise InvalidNode(node_id)


def set_content(conn: sqlite3.Connection, node_id: int, content: str) -> None:
    """Replace the content of a note and bump its edit time."""
    with _transaction(conn, f"update node {node_id}"):
        cursor = conn.execute(
            "UPDATE nodes SET content = ?, edited = CURRENT_TIMESTAMP WHERE id = ?",
            (content, node_id),
        )
    if cursor.rowcount == 0:
        raise InvalidNode(node_id)


def toggle_archived(conn: sqlite3.Connection, ids: Sequence[int]) -> None:
    """Flip the archived flag of every given note."""
    if not ids:
        return
    with _transaction(conn, "toggle archived"):
        conn.execute(
            f"UPDATE nodes SET archived = NOT archived WHERE id IN ({_placeholders(ids)})",
            list(ids),
        )
    logger.debug("Toggled archived for {} nodes", len(ids))


def delete_nodes(conn: sqlite3.Connection, ids: Sequence[int]) -> int:
    """Delete notes and their tags; return how many notes were deleted."""
    if not ids:
        return 0
    marks = _placeholders(ids)
    with _transaction(conn, "delete nodes"):
        conn.execute(f"DELETE FROM tags WHERE node IN ({marks})", list(ids))
        cursor = conn.execute(f"DELETE FROM nodes WHERE id IN ({marks})", list(ids))
    logger.debug("Deleted {} of {} nodes", cursor.rowcount, len(ids))
    return cursor.rowcount


def add_tags(conn: sqlite3.Connection, ids: Sequence[int], tags: Sequence[str]) -> None:
    """Attach every tag to every given note; existing pairs are kept."""
    with _transaction(conn, "add tags"):
        pairs = [(node_id, tag) for node_id in existing_ids(conn, ids) for tag in tags]
        conn.executemany("INSERT OR IGNORE INTO tags (node, tag) VALUES (?, ?)", pairs)
    logger.debug("Tagged {} nodes with {}", len(ids), list(tags))


def remove_tags(conn: sqlite3.Connection, ids: Sequence[int], tags: Sequence[str]) -> None:
    with _transaction(conn, "remove tags"):
        conn.executemany(
            "DELETE FROM tags WHERE node = ? AND tag = ?",
            [(node_id, tag) for node_id in ids for tag in tags],
        )
    logger.debug("Untagged {} nodes: {}", len(ids), list(tags))


def adjust_priority(conn: sqlite3.Connection, ids: Sequence[int], delta: int) -> None:
    """Add ``delta`` to the priority of every given note."""
    if not ids:
        return
    with _transaction(conn, "adjust priority"):
        conn.execute(
            f"UPDATE nodes SET priority = priority + ? WHERE id IN ({_placeholders(ids)})",
            [delta, *ids],
        )


def edit_node(conn: sqlite3.Connection, node_id: int, editor: EditorProtocol) -> bool:
    """Edit a note's content in ``editor``; return True if the content changed.

    The note is marked viewed either way. An editor failure leaves the
    content untouched.
    """
    content = get_content(conn, node_id)
    mark_viewed(conn, node_id)
    new_content = editor(content)
    if new_content == content:
        logger.debug("Node {} unchanged", node_id)
        return False
    set_content(conn, node_id, new_content)
    logger.info("Updated node {}", node_id)
    return True


def create_with_editor(
    conn: sqlite3.Connection, editor: EditorProtocol, tags: Iterable[str] = ()
) -> int:
    """Create a note from text written in ``editor``.

    Raises:
        EmptyContent: The editor returned an empty buffer.
    """
    return create_node(conn, editor(""), tags)

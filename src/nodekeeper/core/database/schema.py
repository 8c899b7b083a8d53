"""SQLite schema creation and migration for the node store."""

import sqlite3
from pathlib import Path

from loguru import logger

SCHEMA_VERSION = 1

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS nodes (
    id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    content TEXT NOT NULL,
    priority INTEGER NOT NULL DEFAULT 0,
    created DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
    edited DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
    viewed DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
    archived BOOLEAN NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS tags (
    node INTEGER NOT NULL,
    tag TEXT NOT NULL,
    PRIMARY KEY (node, tag),
    FOREIGN KEY (node) REFERENCES nodes(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_tags_tag ON tags(tag);
CREATE INDEX IF NOT EXISTS idx_nodes_edited ON nodes(edited);
CREATE INDEX IF NOT EXISTS idx_nodes_priority ON nodes(priority);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


_VERSION_KEY = "schema_version"


def _store_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
        (_VERSION_KEY, str(version)),
    )


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the node, tag and metadata tables with their indexes."""
    conn.executescript(_SCHEMA_SQL)
    _store_version(conn, SCHEMA_VERSION)
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the recorded schema version; None for a database without one."""
    has_metadata = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'metadata'"
    ).fetchone()
    if not has_metadata:
        return None
    row = conn.execute("SELECT value FROM metadata WHERE key = ?", (_VERSION_KEY,)).fetchone()
    return int(row[0]) if row else None


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Bring the database up to SCHEMA_VERSION, creating it when empty."""
    version = get_schema_version(conn)
    if version is None:
        logger.debug("Creating schema version {}", SCHEMA_VERSION)
        create_schema(conn)
    elif version > SCHEMA_VERSION:
        logger.warning(
            "Database schema version {} is newer than this program ({})",
            version,
            SCHEMA_VERSION,
        )


def connect(db_path: Path | str) -> sqlite3.Connection:
    """Open a node database, creating the schema on first use."""
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA foreign_keys = ON")
    # the browser writes on single keystrokes; skip the fsync per commit
    conn.execute("PRAGMA synchronous = OFF")
    migrate_schema(conn)
    return conn

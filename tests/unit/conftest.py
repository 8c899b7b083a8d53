"""Shared test fixtures."""

import sqlite3

import pytest

from nodekeeper.core.database.schema import create_schema
from nodekeeper.core.write.store import create_node

SAMPLE_NOTES: list[tuple[str, list[str]]] = [
    ("Buy milk and eggs", ["shopping"]),
    ("Python packaging notes\nuse pyproject.toml", ["dev", "python"]),
    ("Call mom on sunday", ["family", "urgent"]),
    ("Write quarterly report", ["work", "urgent"]),
    ("Aim for 100% coverage_ok", ["dev"]),
    ("Grocery list: bread, butter", []),
]


@pytest.fixture
def db() -> sqlite3.Connection:
    """Return an empty in-memory node database."""
    conn = sqlite3.connect(":memory:")
    conn.execute("PRAGMA foreign_keys = ON")
    create_schema(conn)
    return conn


@pytest.fixture
def populated_db(db: sqlite3.Connection) -> sqlite3.Connection:
    """Return a database holding SAMPLE_NOTES with ids 1..6."""
    for content, tags in SAMPLE_NOTES:
        create_node(db, content, tags)
    return db


@pytest.fixture
def ten_notes_db(db: sqlite3.Connection) -> sqlite3.Connection:
    """Return a database holding notes "note 1" .. "note 10" with matching ids."""
    for i in range(1, 11):
        create_node(db, f"note {i}")
    return db

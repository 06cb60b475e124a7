"""Database schema definitions and migration helpers."""

from __future__ import annotations

import sqlite3
from pathlib import Path

_SCHEMA_VERSION = 1

_DDL = """
CREATE TABLE IF NOT EXISTS food_batches (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    name_key TEXT NOT NULL,
    emoji TEXT NOT NULL DEFAULT '🍎',
    quantity INTEGER NOT NULL DEFAULT 1 CHECK (quantity >= 1),
    expiry_date TEXT,
    added_date TEXT NOT NULL,
    location TEXT NOT NULL DEFAULT 'fridge',
    is_recurring INTEGER NOT NULL DEFAULT 0,
    measure_value REAL,
    measure_unit TEXT NOT NULL DEFAULT 'pieces',
    is_opened INTEGER NOT NULL DEFAULT 0,
    is_thawed INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'available'
);

CREATE INDEX IF NOT EXISTS idx_batches_name_key ON food_batches(name_key);
CREATE INDEX IF NOT EXISTS idx_batches_expiry ON food_batches(expiry_date);

CREATE TABLE IF NOT EXISTS shopping_entries (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    name_key TEXT NOT NULL,
    is_completed INTEGER NOT NULL DEFAULT 0,
    added_date TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS frequent_items (
    name_key TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    emoji TEXT NOT NULL DEFAULT '🍎',
    quantity INTEGER NOT NULL DEFAULT 1,
    measure_value REAL,
    measure_unit TEXT NOT NULL DEFAULT 'pieces',
    location TEXT NOT NULL DEFAULT 'fridge',
    is_recurring INTEGER NOT NULL DEFAULT 0,
    shelf_life_days INTEGER,
    last_used TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_frequent_last_used ON frequent_items(last_used);

CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""


def ensure_schema(db_path: str | Path) -> sqlite3.Connection:
    """Open (or create) the database and ensure the schema is up to date.

    Args:
        db_path: Path to the SQLite database file, or ":memory:".

    Returns:
        An open sqlite3.Connection with the schema applied.
    """
    if str(db_path) == ":memory:":
        conn = sqlite3.connect(":memory:")
    else:
        db_path = Path(db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path))
        conn.execute("PRAGMA journal_mode=WAL")

    conn.row_factory = sqlite3.Row

    # Check current schema version
    try:
        row = conn.execute("SELECT version FROM schema_version").fetchone()
        current_version = row["version"] if row else 0
    except sqlite3.OperationalError:
        current_version = 0

    if current_version < _SCHEMA_VERSION:
        conn.executescript(_DDL)
        conn.execute("DELETE FROM schema_version")
        conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (_SCHEMA_VERSION,),
        )
        conn.commit()

    return conn

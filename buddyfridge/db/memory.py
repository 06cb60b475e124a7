"""Storage for learned per-product defaults."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from ..config import DEFAULT_DB_PATH
from ..models import FrequentItem, MeasureUnit, StorageLocation, normalize_name
from .schema import ensure_schema


def _row_to_item(row: sqlite3.Row) -> FrequentItem:
    return FrequentItem(
        name=row["name"],
        emoji=row["emoji"],
        quantity=row["quantity"],
        measure_value=row["measure_value"],
        measure_unit=MeasureUnit(row["measure_unit"]),
        location=StorageLocation(row["location"]),
        is_recurring=bool(row["is_recurring"]),
        shelf_life_days=row["shelf_life_days"],
        last_used=datetime.fromisoformat(row["last_used"]),
    )


class FrequentItemDB:
    """Manages the frequent_items and meta tables."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get(self, name: str) -> FrequentItem | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM frequent_items WHERE name_key = ?",
            (normalize_name(name),),
        ).fetchone()
        return _row_to_item(row) if row else None

    def upsert(self, item: FrequentItem) -> None:
        """Insert the record, or replace the one stored under its name key."""
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO frequent_items
               (name_key, name, emoji, quantity, measure_value, measure_unit,
                location, is_recurring, shelf_life_days, last_used)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(name_key) DO UPDATE SET
                   name = excluded.name,
                   emoji = excluded.emoji,
                   quantity = excluded.quantity,
                   measure_value = excluded.measure_value,
                   measure_unit = excluded.measure_unit,
                   location = excluded.location,
                   is_recurring = excluded.is_recurring,
                   shelf_life_days = excluded.shelf_life_days,
                   last_used = excluded.last_used""",
            (
                item.name_key,
                item.name,
                item.emoji,
                item.quantity,
                item.measure_value,
                item.measure_unit.value,
                item.location.value,
                int(item.is_recurring),
                item.shelf_life_days,
                item.last_used.isoformat(),
            ),
        )
        conn.commit()

    def delete(self, name: str) -> bool:
        conn = self._get_conn()
        cur = conn.execute(
            "DELETE FROM frequent_items WHERE name_key = ?",
            (normalize_name(name),),
        )
        conn.commit()
        return cur.rowcount > 0

    def list_all(self) -> list[FrequentItem]:
        """Return every record, most recently used first."""
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT * FROM frequent_items ORDER BY last_used DESC, name_key"
        ).fetchall()
        return [_row_to_item(r) for r in rows]

    def get_flag(self, key: str) -> bool:
        conn = self._get_conn()
        row = conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
        return row is not None and row["value"] == "1"

    def set_flag(self, key: str, value: bool = True) -> None:
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO meta (key, value) VALUES (?, ?)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value""",
            (key, "1" if value else "0"),
        )
        conn.commit()

"""Food batch and shopping list storage."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Callable

from ..config import DEFAULT_DB_PATH
from ..errors import NotFound
from ..models import (
    BatchStatus,
    FoodBatch,
    MeasureUnit,
    ShoppingEntry,
    StorageLocation,
    normalize_name,
)
from .schema import ensure_schema


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_batch(row: sqlite3.Row) -> FoodBatch:
    return FoodBatch(
        id=row["id"],
        name=row["name"],
        emoji=row["emoji"],
        quantity=row["quantity"],
        expiry_date=_parse_ts(row["expiry_date"]),
        added_date=_parse_ts(row["added_date"]),
        location=StorageLocation(row["location"]),
        is_recurring=bool(row["is_recurring"]),
        measure_value=row["measure_value"],
        measure_unit=MeasureUnit(row["measure_unit"]),
        is_opened=bool(row["is_opened"]),
        is_thawed=bool(row["is_thawed"]),
        status=BatchStatus(row["status"]),
    )


def _batch_params(batch: FoodBatch) -> tuple:
    return (
        batch.name,
        batch.name_key,
        batch.emoji,
        batch.quantity,
        _ts(batch.expiry_date),
        _ts(batch.added_date),
        batch.location.value,
        int(batch.is_recurring),
        batch.measure_value,
        batch.measure_unit.value,
        int(batch.is_opened),
        int(batch.is_thawed),
        batch.status.value,
        batch.id,
    )


def _row_to_entry(row: sqlite3.Row) -> ShoppingEntry:
    return ShoppingEntry(
        id=row["id"],
        name=row["name"],
        is_completed=bool(row["is_completed"]),
        added_date=_parse_ts(row["added_date"]),
    )


class InventoryDB:
    """Manages the food_batches and shopping_entries tables."""

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

    # --- food batches ---------------------------------------------------

    def insert(self, batch: FoodBatch) -> FoodBatch:
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO food_batches
               (name, name_key, emoji, quantity, expiry_date, added_date,
                location, is_recurring, measure_value, measure_unit,
                is_opened, is_thawed, status, id)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            _batch_params(batch),
        )
        conn.commit()
        return batch

    def get(self, batch_id: str) -> FoodBatch | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM food_batches WHERE id = ?", (batch_id,)
        ).fetchone()
        return _row_to_batch(row) if row else None

    def delete(self, batch_id: str) -> bool:
        """Delete a batch by ID. Returns False if it did not exist."""
        conn = self._get_conn()
        cur = conn.execute("DELETE FROM food_batches WHERE id = ?", (batch_id,))
        conn.commit()
        return cur.rowcount > 0

    def update(
        self, batch_id: str, mutator: Callable[[FoodBatch], None]
    ) -> FoodBatch:
        """Apply ``mutator`` to the stored batch and write it back.

        Raises:
            NotFound: If no batch has this ID.
        """
        batch = self.get(batch_id)
        if batch is None:
            raise NotFound("batch", batch_id)
        mutator(batch)
        batch.id = batch_id
        conn = self._get_conn()
        conn.execute(
            """UPDATE food_batches
               SET name = ?, name_key = ?, emoji = ?, quantity = ?,
                   expiry_date = ?, added_date = ?, location = ?,
                   is_recurring = ?, measure_value = ?, measure_unit = ?,
                   is_opened = ?, is_thawed = ?, status = ?
               WHERE id = ?""",
            _batch_params(batch),
        )
        conn.commit()
        return batch

    def query_all(
        self, predicate: Callable[[FoodBatch], bool] | None = None
    ) -> list[FoodBatch]:
        """Return all batches ordered by expiry (no expiry last)."""
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT * FROM food_batches
               ORDER BY expiry_date IS NULL, expiry_date, added_date"""
        ).fetchall()
        batches = [_row_to_batch(r) for r in rows]
        if predicate is not None:
            batches = [b for b in batches if predicate(b)]
        return batches

    def find_by_name(self, name: str) -> list[FoodBatch]:
        """Return available batches whose normalized name matches."""
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT * FROM food_batches
               WHERE name_key = ? AND status = 'available'
               ORDER BY expiry_date IS NULL, expiry_date""",
            (normalize_name(name),),
        ).fetchall()
        return [_row_to_batch(r) for r in rows]

    # --- shopping list ---------------------------------------------------

    def add_shopping_entry(self, entry: ShoppingEntry) -> ShoppingEntry:
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO shopping_entries
               (id, name, name_key, is_completed, added_date)
               VALUES (?, ?, ?, ?, ?)""",
            (
                entry.id,
                entry.name,
                entry.name_key,
                int(entry.is_completed),
                _ts(entry.added_date),
            ),
        )
        conn.commit()
        return entry

    def get_shopping_entry(self, entry_id: str) -> ShoppingEntry | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM shopping_entries WHERE id = ?", (entry_id,)
        ).fetchone()
        return _row_to_entry(row) if row else None

    def find_open_shopping_entry(self, name: str) -> ShoppingEntry | None:
        conn = self._get_conn()
        row = conn.execute(
            """SELECT * FROM shopping_entries
               WHERE name_key = ? AND is_completed = 0
               ORDER BY added_date LIMIT 1""",
            (normalize_name(name),),
        ).fetchone()
        return _row_to_entry(row) if row else None

    def list_shopping(self) -> list[ShoppingEntry]:
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT * FROM shopping_entries ORDER BY added_date"
        ).fetchall()
        return [_row_to_entry(r) for r in rows]

    def set_shopping_completed(self, entry_id: str, completed: bool) -> None:
        conn = self._get_conn()
        cur = conn.execute(
            "UPDATE shopping_entries SET is_completed = ? WHERE id = ?",
            (int(completed), entry_id),
        )
        conn.commit()
        if cur.rowcount == 0:
            raise NotFound("shopping entry", entry_id)

    def delete_shopping_entry(self, entry_id: str) -> bool:
        conn = self._get_conn()
        cur = conn.execute(
            "DELETE FROM shopping_entries WHERE id = ?", (entry_id,)
        )
        conn.commit()
        return cur.rowcount > 0

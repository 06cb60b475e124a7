"""SQLite storage for batches, the shopping list and product memory."""

from .inventory import InventoryDB
from .memory import FrequentItemDB
from .schema import ensure_schema

__all__ = [
    "InventoryDB",
    "FrequentItemDB",
    "ensure_schema",
]

"""Core data types for the food inventory."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class StorageLocation(str, Enum):
    FRIDGE = "fridge"
    FREEZER = "freezer"
    PANTRY = "pantry"


class MeasureUnit(str, Enum):
    PIECES = "pieces"
    GRAMS = "g"
    KILOGRAMS = "kg"
    LITERS = "L"
    MILLILITERS = "ml"


class BatchStatus(str, Enum):
    AVAILABLE = "available"
    CONSUMED = "consumed"
    THROWN = "thrown"
    TO_BUY = "toBuy"


# Sorts missing expiry dates after every real one.
NEVER = datetime.max


def normalize_name(name: str) -> str:
    """Return the comparison key for a product name.

    Every lookup by name (sibling checks, memory keys, grouping) goes
    through this function.
    """
    return " ".join(name.split()).casefold()


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class FoodBatch:
    """One procurement lot of a named product."""

    name: str
    added_date: datetime
    quantity: int = 1
    emoji: str = "🍎"
    expiry_date: datetime | None = None
    location: StorageLocation = StorageLocation.FRIDGE
    is_recurring: bool = False
    measure_value: float | None = None
    measure_unit: MeasureUnit = MeasureUnit.PIECES
    is_opened: bool = False
    is_thawed: bool = False  # once out of the freezer, never back in
    status: BatchStatus = BatchStatus.AVAILABLE
    id: str = field(default_factory=new_id)

    @property
    def name_key(self) -> str:
        return normalize_name(self.name)

    @property
    def is_frozen(self) -> bool:
        return self.location == StorageLocation.FREEZER

    @property
    def formatted_measure(self) -> str:
        """"500 g" style text, or "" for piece-counted batches."""
        if self.measure_unit == MeasureUnit.PIECES or self.measure_value is None:
            return ""
        return f"{self.measure_value:g} {self.measure_unit.value}"


@dataclass
class ShoppingEntry:
    name: str
    added_date: datetime
    is_completed: bool = False
    id: str = field(default_factory=new_id)

    @property
    def name_key(self) -> str:
        return normalize_name(self.name)


@dataclass
class FrequentItem:
    """Learned defaults for a product name."""

    name: str
    last_used: datetime
    emoji: str = "🍎"
    quantity: int = 1
    measure_value: float | None = None
    measure_unit: MeasureUnit = MeasureUnit.PIECES
    location: StorageLocation = StorageLocation.FRIDGE
    is_recurring: bool = False
    shelf_life_days: int | None = None

    @property
    def name_key(self) -> str:
        return normalize_name(self.name)


@dataclass
class BatchInput:
    """User-supplied fields for a new batch."""

    name: str
    quantity: int = 1
    expiry_date: datetime | None = None
    location: StorageLocation = StorageLocation.FRIDGE
    emoji: str | None = None
    is_recurring: bool = False
    measure_value: float | None = None
    measure_unit: MeasureUnit = MeasureUnit.PIECES


def expiry_or_never(batch: FoodBatch) -> datetime:
    """Expiry used for ordering and comparisons; no expiry means never."""
    return batch.expiry_date if batch.expiry_date is not None else NEVER


def is_expired(batch: FoodBatch, now: datetime) -> bool:
    return (
        batch.status == BatchStatus.AVAILABLE
        and batch.expiry_date is not None
        and batch.expiry_date < now
    )

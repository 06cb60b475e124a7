"""Aggregate freshness signals derived from the inventory."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable

from .models import BatchStatus, FoodBatch, expiry_or_never, is_expired


class Mood(str, Enum):
    FRESH = "fresh"
    WARNING = "warning"
    CRITICAL = "critical"
    EMPTY = "empty"


_MOOD_MESSAGES: dict[Mood, str] = {
    Mood.FRESH: "Everything is fresh! 😎",
    Mood.WARNING: "Keep an eye on the dates... 😬",
    Mood.CRITICAL: "Something has gone off! 🤢",
    Mood.EMPTY: "The fridge is empty. Time to go shopping?",
}


def classify(
    batches: list[FoodBatch], now: datetime, warning_days: int = 2
) -> Mood:
    """Reduce the inventory to one freshness signal.

    Frozen batches never count; an inventory that is all frozen is fresh.
    """
    if not batches:
        return Mood.EMPTY

    active = [b for b in batches if not b.is_frozen]
    if not active:
        return Mood.FRESH
    if any(is_expired(b, now) for b in active):
        return Mood.CRITICAL

    soon = now + timedelta(days=warning_days)
    if any(b.expiry_date is not None and b.expiry_date <= soon for b in active):
        return Mood.WARNING
    return Mood.FRESH


def mood_message(mood: Mood) -> str:
    return _MOOD_MESSAGES[mood]


@dataclass
class ProductGroup:
    """All available batches of one product."""

    name: str
    emoji: str
    batches: list[FoodBatch] = field(default_factory=list)

    @property
    def total_quantity(self) -> int:
        return sum(b.quantity for b in self.batches)


def group_by_product(batches: Iterable[FoodBatch]) -> list[ProductGroup]:
    """Group available batches by normalized name, sorted by name.

    Batches inside a group are ordered by expiry, undated ones last.
    """
    groups: dict[str, ProductGroup] = {}
    for batch in batches:
        if batch.status != BatchStatus.AVAILABLE:
            continue
        group = groups.get(batch.name_key)
        if group is None:
            group = groups[batch.name_key] = ProductGroup(name=batch.name, emoji=batch.emoji)
        group.batches.append(batch)

    for group in groups.values():
        group.batches.sort(key=expiry_or_never)
    return [groups[k] for k in sorted(groups)]


def product_status(group: ProductGroup, now: datetime, warning_days: int = 3) -> str:
    """"expired", "expiring" or "fresh" for a product card."""
    if any(is_expired(b, now) for b in group.batches):
        return "expired"
    soon = now + timedelta(days=warning_days)
    if any(expiry_or_never(b) <= soon for b in group.batches):
        return "expiring"
    return "fresh"


def expiring_soon(
    batches: Iterable[FoodBatch], now: datetime, days: int = 3
) -> list[FoodBatch]:
    """Available, unexpired batches whose expiry falls within ``days``."""
    soon = now + timedelta(days=days)
    return sorted(
        (
            b
            for b in batches
            if b.status == BatchStatus.AVAILABLE
            and b.expiry_date is not None
            and now <= b.expiry_date <= soon
        ),
        key=expiry_or_never,
    )

"""Frequency memory: learned defaults for repeated purchases."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from .clock import Clock
from .db.memory import FrequentItemDB
from .models import BatchInput, FoodBatch, FrequentItem, normalize_name

logger = logging.getLogger(__name__)


class FrequencyMemory:
    """Keeps one "most recent preference" record per product name."""

    def __init__(self, db: FrequentItemDB, clock: Clock | None = None) -> None:
        self._db = db
        self._clock = clock or Clock()

    @property
    def db(self) -> FrequentItemDB:
        return self._db

    @property
    def clock(self) -> Clock:
        return self._clock

    def estimate_shelf_life(self, expiry_date: datetime | None) -> int | None:
        """Days from today until ``expiry_date``; None when not positive."""
        if expiry_date is None:
            return None
        days = self._clock.days_between(self._clock.now(), expiry_date)
        return days if days > 0 else None

    def record_usage(self, batch: FoodBatch) -> FrequentItem:
        """Learn from a saved batch, creating or updating its record."""
        now = self._clock.now()
        estimate = self.estimate_shelf_life(batch.expiry_date)
        existing = self._db.get(batch.name)

        if existing is None:
            record = FrequentItem(
                name=batch.name,
                emoji=batch.emoji,
                quantity=batch.quantity,
                measure_value=batch.measure_value,
                measure_unit=batch.measure_unit,
                location=batch.location,
                is_recurring=batch.is_recurring,
                last_used=now,
                shelf_life_days=estimate,
            )
            logger.info("New product memory: %s", batch.name)
        else:
            record = replace(
                existing,
                emoji=batch.emoji,
                quantity=batch.quantity,
                measure_value=batch.measure_value,
                measure_unit=batch.measure_unit,
                location=batch.location,
                is_recurring=batch.is_recurring,
                last_used=max(existing.last_used, now),
                shelf_life_days=(
                    estimate if estimate is not None else existing.shelf_life_days
                ),
            )
            logger.debug("Updated product memory: %s", existing.name)

        self._db.upsert(record)
        return record

    def touch(self, name: str) -> FrequentItem | None:
        """Refresh only ``last_used`` for an existing record."""
        existing = self._db.get(name)
        if existing is None:
            return None
        record = replace(existing, last_used=max(existing.last_used, self._clock.now()))
        self._db.upsert(record)
        return record

    def get(self, name: str) -> FrequentItem | None:
        return self._db.get(name)

    def suggest(self, partial_name: str) -> list[FrequentItem]:
        """Records whose name contains ``partial_name``, newest first.

        A record whose name is exactly what was typed is left out; the
        user has already picked it.
        """
        key = normalize_name(partial_name)
        if not key:
            return []
        return [
            item
            for item in self._db.list_all()
            if key in item.name_key and item.name_key != key
        ]

    def list_all(self) -> list[FrequentItem]:
        return self._db.list_all()

    def forget(self, name: str) -> bool:
        removed = self._db.delete(name)
        if removed:
            logger.info("Forgot product memory: %s", name)
        return removed

    def project_expiry(self, record: FrequentItem) -> datetime | None:
        if record.shelf_life_days is None:
            return None
        return self._clock.add_days(self._clock.now(), record.shelf_life_days)

    def prefill(self, record: FrequentItem) -> BatchInput:
        """Build new-batch input from a remembered product."""
        return BatchInput(
            name=record.name,
            quantity=record.quantity,
            expiry_date=self.project_expiry(record),
            location=record.location,
            emoji=record.emoji,
            is_recurring=record.is_recurring,
            measure_value=record.measure_value,
            measure_unit=record.measure_unit,
        )

"""Batch lifecycle: create, consume, open, edit and discard food batches."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from .clock import Clock, as_expiry
from .config import ReminderPreferences
from .db.inventory import InventoryDB
from .errors import InvalidOperation, InvalidQuantity, NotFound
from .lookup import guess_emoji
from .memory import FrequencyMemory
from .models import (
    BatchInput,
    BatchStatus,
    FoodBatch,
    MeasureUnit,
    ShoppingEntry,
    StorageLocation,
    is_expired,
)
from .reminders import ReminderScheduler

logger = logging.getLogger(__name__)

# Remaining fractions at or below this count as "finished".
CONSUME_THRESHOLD = 0.01


@dataclass
class ConsumeResult:
    batch: FoodBatch
    deleted: bool
    shopping_suggested: bool = False
    shopping_entry: ShoppingEntry | None = None


@dataclass(frozen=True)
class PendingOpen:
    """Open request for a multi-unit batch awaiting "one" vs "all"."""

    batch_id: str
    shelf_life_days: int
    quantity: int


@dataclass
class OpenResult:
    remainder: FoodBatch | None  # None when the whole batch was opened
    opened: FoodBatch


@dataclass
class BatchPatch:
    """Field-level edit. None means "leave unchanged"."""

    name: str | None = None
    emoji: str | None = None
    quantity: int | None = None
    measure_value: float | None = None
    measure_unit: MeasureUnit | None = None
    location: StorageLocation | None = None
    expiry_date: datetime | None = None
    clear_expiry: bool = False


@dataclass(frozen=True)
class PendingThaw:
    """An edit that moves a batch out of the freezer, awaiting acknowledgement."""

    batch_id: str
    patch: BatchPatch
    message: str


def _validate_quantity(quantity) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantity(f"quantity must be an integer >= 1, got {quantity!r}")


def _validate_name(name: str) -> str:
    name = " ".join((name or "").split())
    if not name:
        raise InvalidOperation("product name must not be empty")
    return name


def _validate_measure(value: float | None) -> None:
    if value is not None and value < 0:
        raise InvalidQuantity(f"measure value must not be negative, got {value!r}")


def _coerce_expiry(value) -> datetime | None:
    try:
        return as_expiry(value)
    except (TypeError, ValueError) as e:
        raise InvalidOperation(f"invalid expiry date: {value!r}") from e


class BatchLifecycle:
    """All state transitions on food batches.

    Store writes happen first; reminder changes follow and never roll a
    committed write back.
    """

    def __init__(
        self,
        store: InventoryDB,
        memory: FrequencyMemory,
        reminders: ReminderScheduler,
        preferences: ReminderPreferences | None = None,
        clock: Clock | None = None,
        consume_threshold: float = CONSUME_THRESHOLD,
    ) -> None:
        self.store = store
        self.memory = memory
        self.reminders = reminders
        self.preferences = preferences or ReminderPreferences()
        self.clock = clock or Clock()
        self.consume_threshold = consume_threshold

    # --- queries ---------------------------------------------------------

    def get_batch(self, batch_id: str) -> FoodBatch:
        """Return an available batch or raise NotFound.

        A batch whose last reminder sync failed is rescheduled on the way out.
        """
        batch = self.store.get(batch_id)
        if batch is None or batch.status != BatchStatus.AVAILABLE:
            raise NotFound("batch", batch_id)
        if batch.id in self.reminders.pending_resync:
            self.reminders.schedule(batch, self.preferences)
        return batch

    def list_batches(self) -> list[FoodBatch]:
        return self.store.query_all(lambda b: b.status == BatchStatus.AVAILABLE)

    def siblings(self, name: str, exclude_id: str | None = None) -> list[FoodBatch]:
        """Available batches sharing ``name``'s normalized form."""
        return [b for b in self.store.find_by_name(name) if b.id != exclude_id]

    def is_expired(self, batch: FoodBatch) -> bool:
        return is_expired(batch, self.clock.now())

    # --- creation --------------------------------------------------------

    def create_batch(self, data: BatchInput) -> FoodBatch:
        """Validate and store a new batch, learn from it, schedule reminders."""
        name = _validate_name(data.name)
        _validate_quantity(data.quantity)
        _validate_measure(data.measure_value)
        expiry = _coerce_expiry(data.expiry_date)

        emoji = data.emoji
        if not emoji:
            known = self.memory.get(name)
            emoji = known.emoji if known else guess_emoji(name)

        batch = FoodBatch(
            name=name,
            emoji=emoji,
            quantity=data.quantity,
            expiry_date=expiry,
            added_date=self.clock.now(),
            location=StorageLocation(data.location),
            is_recurring=data.is_recurring,
            measure_value=data.measure_value,
            measure_unit=MeasureUnit(data.measure_unit),
        )
        self.store.insert(batch)
        logger.info("Added %s x%d (%s)", batch.name, batch.quantity, batch.id)

        self.memory.record_usage(batch)
        if batch.expiry_date is not None:
            self.reminders.schedule(batch, self.preferences)
        return batch

    def add_one(self, batch_id: str) -> FoodBatch:
        """Increase a batch by one unit."""
        batch = self.get_batch(batch_id)
        batch = self.store.update(batch.id, lambda b: setattr(b, "quantity", b.quantity + 1))
        self.memory.touch(batch.name)
        return batch

    # --- consumption -----------------------------------------------------

    def consume_one(self, batch_id: str, add_to_shopping: bool = True) -> ConsumeResult:
        """Eat one unit; the last unit deletes the batch.

        When the deleted batch was the last of its product, a shopping
        entry is suggested, and created if ``add_to_shopping``.
        """
        batch = self.get_batch(batch_id)

        if batch.quantity > 1:
            batch = self.store.update(
                batch.id, lambda b: setattr(b, "quantity", b.quantity - 1)
            )
            logger.info("Consumed one %s, %d left", batch.name, batch.quantity)
            return ConsumeResult(batch=batch, deleted=False)

        # Sibling check must run before the delete and exclude this batch.
        is_last = not self.siblings(batch.name, exclude_id=batch.id)

        self.store.delete(batch.id)
        self.reminders.cancel(batch.id)
        batch.status = BatchStatus.CONSUMED
        logger.info("Finished %s (%s)", batch.name, batch.id)

        entry = None
        if is_last and add_to_shopping:
            entry = self.add_shopping_entry(batch.name)
        return ConsumeResult(
            batch=batch, deleted=True, shopping_suggested=is_last, shopping_entry=entry
        )

    def consume_partial(
        self, batch_id: str, remaining_fraction: float, add_to_shopping: bool = True
    ) -> ConsumeResult:
        """Use part of a measured batch, keeping ``remaining_fraction`` of it.

        A remainder at or below the threshold (or one that rounds to zero)
        counts as finishing the unit and goes through consume_one.
        """
        batch = self.get_batch(batch_id)
        if batch.measure_unit == MeasureUnit.PIECES or batch.measure_value is None:
            raise InvalidOperation(f"{batch.name} is counted in pieces, not measured")
        if not 0 <= remaining_fraction <= 1:
            raise InvalidQuantity(
                f"remaining fraction must be between 0 and 1, got {remaining_fraction!r}"
            )

        new_value = round(batch.measure_value * remaining_fraction, 2)
        if remaining_fraction <= self.consume_threshold or new_value <= 0:
            return self.consume_one(batch.id, add_to_shopping=add_to_shopping)

        batch = self.store.update(batch.id, lambda b: setattr(b, "measure_value", new_value))
        logger.info("Used part of %s, %s left", batch.name, batch.formatted_measure)
        return ConsumeResult(batch=batch, deleted=False)

    # --- opening ---------------------------------------------------------

    def request_open(self, batch_id: str, shelf_life_days: int) -> OpenResult | PendingOpen:
        """Start opening a batch.

        A single unit is opened right away. For a multi-unit batch the
        caller gets a PendingOpen and must call confirm_open with its
        choice.
        """
        batch = self._openable(batch_id, shelf_life_days)
        pending = PendingOpen(
            batch_id=batch.id, shelf_life_days=shelf_life_days, quantity=batch.quantity
        )
        if batch.quantity == 1:
            return self.confirm_open(pending, open_all=True)
        return pending

    def confirm_open(self, pending: PendingOpen, open_all: bool) -> OpenResult:
        """Open one unit (split) or the whole batch."""
        batch = self._openable(pending.batch_id, pending.shelf_life_days)
        now = self.clock.now()
        moved = batch.quantity if open_all else 1

        remainder: FoodBatch | None
        if batch.quantity > moved:
            remainder = self.store.update(
                batch.id, lambda b: setattr(b, "quantity", b.quantity - moved)
            )
        else:
            self.store.delete(batch.id)
            self.reminders.cancel(batch.id)
            remainder = None

        opened = FoodBatch(
            name=batch.name,
            emoji=batch.emoji,
            quantity=moved,
            expiry_date=self.clock.add_days(now, pending.shelf_life_days),
            added_date=now,
            location=batch.location,
            is_recurring=batch.is_recurring,
            measure_value=batch.measure_value,
            measure_unit=batch.measure_unit,
            is_opened=True,
            is_thawed=batch.is_thawed,
        )
        self.store.insert(opened)
        logger.info(
            "Opened %d of %s, good for %d days", moved, batch.name, pending.shelf_life_days
        )
        self.reminders.schedule(opened, self.preferences)
        return OpenResult(remainder=remainder, opened=opened)

    def _openable(self, batch_id: str, shelf_life_days: int) -> FoodBatch:
        batch = self.get_batch(batch_id)
        if batch.is_frozen:
            raise InvalidOperation(f"{batch.name} is frozen; thaw it before opening")
        if batch.is_opened:
            raise InvalidOperation(f"{batch.name} is already open")
        if isinstance(shelf_life_days, bool) or not isinstance(shelf_life_days, int) or shelf_life_days < 1:
            raise InvalidOperation(
                f"days after opening must be an integer >= 1, got {shelf_life_days!r}"
            )
        return batch

    # --- editing ---------------------------------------------------------

    def edit_batch(
        self, batch_id: str, patch: BatchPatch, acknowledge_thaw: bool = False
    ) -> FoodBatch | PendingThaw:
        """Apply a field-level edit and resync the batch's reminders.

        Moving a batch out of the freezer is a thaw: unless
        ``acknowledge_thaw`` is set, nothing is written and a PendingThaw
        is returned for confirm_thaw.
        """
        batch = self.get_batch(batch_id)
        self._validate_patch(batch, patch)

        thawing = (
            batch.is_frozen
            and patch.location is not None
            and patch.location != StorageLocation.FREEZER
        )
        if thawing and not acknowledge_thaw:
            return PendingThaw(
                batch_id=batch.id,
                patch=patch,
                message=(
                    f"You took '{batch.name}' out of the freezer. "
                    f"Once thawed, do not freeze it again!"
                ),
            )
        return self._commit_edit(batch, patch, thawing)

    def confirm_thaw(self, pending: PendingThaw) -> FoodBatch:
        return self.edit_batch(pending.batch_id, pending.patch, acknowledge_thaw=True)

    def _validate_patch(self, batch: FoodBatch, patch: BatchPatch) -> None:
        if patch.name is not None:
            _validate_name(patch.name)
        if patch.quantity is not None:
            _validate_quantity(patch.quantity)
        _validate_measure(patch.measure_value)
        if patch.expiry_date is not None:
            _coerce_expiry(patch.expiry_date)
        if (
            patch.location == StorageLocation.FREEZER
            and not batch.is_frozen
            and batch.is_thawed
        ):
            raise InvalidOperation(f"{batch.name} was thawed and cannot be refrozen")

    def _commit_edit(self, batch: FoodBatch, patch: BatchPatch, thawing: bool) -> FoodBatch:
        def mutate(b: FoodBatch) -> None:
            if patch.name is not None:
                b.name = _validate_name(patch.name)
            if patch.emoji is not None:
                b.emoji = patch.emoji
            if patch.quantity is not None:
                b.quantity = patch.quantity
            if patch.measure_unit is not None:
                b.measure_unit = MeasureUnit(patch.measure_unit)
            if patch.measure_value is not None:
                b.measure_value = patch.measure_value
            if patch.location is not None:
                b.location = StorageLocation(patch.location)
            if thawing:
                b.is_thawed = True
            if patch.clear_expiry:
                b.expiry_date = None
            elif patch.expiry_date is not None:
                b.expiry_date = _coerce_expiry(patch.expiry_date)

        updated = self.store.update(batch.id, mutate)
        if thawing:
            logger.info("Thawed %s (%s)", updated.name, updated.id)
        logger.info("Edited %s (%s)", updated.name, updated.id)
        self.reminders.reschedule(updated, self.preferences)
        return updated

    # --- discard ---------------------------------------------------------

    def delete_batch(self, batch_id: str) -> FoodBatch:
        """Throw a batch away. No shopping list side effect."""
        batch = self.store.get(batch_id)
        if batch is None:
            raise NotFound("batch", batch_id)
        self.store.delete(batch.id)
        self.reminders.cancel(batch.id)
        batch.status = BatchStatus.THROWN
        logger.info("Discarded %s (%s)", batch.name, batch.id)
        return batch

    # --- shopping list ---------------------------------------------------

    def add_shopping_entry(self, name: str) -> ShoppingEntry:
        """Add a name to the shopping list unless it is already open there."""
        name = _validate_name(name)
        existing = self.store.find_open_shopping_entry(name)
        if existing is not None:
            return existing
        entry = ShoppingEntry(name=name, added_date=self.clock.now())
        self.store.add_shopping_entry(entry)
        logger.info("Added %s to the shopping list", name)
        return entry

    def list_shopping(self) -> list[ShoppingEntry]:
        return self.store.list_shopping()

    def set_shopping_completed(self, entry_id: str, completed: bool = True) -> None:
        self.store.set_shopping_completed(entry_id, completed)

    def delete_shopping_entry(self, entry_id: str) -> None:
        if not self.store.delete_shopping_entry(entry_id):
            raise NotFound("shopping entry", entry_id)

    def stock_from_shopping(
        self,
        entry_id: str,
        quantity: int = 1,
        expiry_date: datetime | None = None,
        location: StorageLocation = StorageLocation.FRIDGE,
        emoji: str | None = None,
    ) -> FoodBatch:
        """Move a bought shopping entry into the inventory."""
        entry = self.store.get_shopping_entry(entry_id)
        if entry is None:
            raise NotFound("shopping entry", entry_id)

        known = self.memory.get(entry.name)
        data = BatchInput(
            name=entry.name,
            quantity=quantity,
            expiry_date=expiry_date,
            location=location,
            emoji=emoji,
        )
        if known is not None:
            data = replace(
                data,
                is_recurring=known.is_recurring,
                measure_value=known.measure_value,
                measure_unit=known.measure_unit,
            )
        batch = self.create_batch(data)
        self.store.delete_shopping_entry(entry.id)
        return batch

    # --- reminders -------------------------------------------------------

    def resync_reminders(self) -> int:
        return self.reminders.resync(self.list_batches(), self.preferences)

    def resync_pending(self) -> int:
        """Retry only the batches whose last reminder sync failed."""
        count = 0
        for batch_id in self.reminders.pending_resync:
            batch = self.store.get(batch_id)
            if batch is None or batch.status != BatchStatus.AVAILABLE:
                self.reminders.cancel(batch_id)
                continue
            count += len(self.reminders.schedule(batch, self.preferences))
        return count

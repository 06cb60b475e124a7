"""Expiry reminder computation and dispatch synchronisation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from .clock import Clock
from .config import ReminderPreferences
from .errors import DispatchUnavailable
from .models import FoodBatch
from .notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

SAME_DAY_KEY = "today"

# Every key a batch can own; cancellation clears all of them.
REMINDER_KEYS: tuple[str, ...] = ("today", "1day", "5days")

_MESSAGES: dict[str, tuple[str, str]] = {
    "today": ("Expires today! ⚠️", "'{emoji} {name}' expires today. Use it now!"),
    "1day": ("Expires tomorrow 🕒", "Reminder: '{emoji} {name}' expires tomorrow."),
    "5days": ("Expires in 5 days", "'{emoji} {name}' expires in 5 days."),
}


def days_before_key(n: int) -> str:
    return f"{n}day" if n == 1 else f"{n}days"


def reminder_identifier(batch_id: str, key: str) -> str:
    return f"{batch_id}-{key}"


@dataclass(frozen=True)
class Reminder:
    batch_id: str
    key: str
    fire_at: datetime
    title: str
    body: str

    @property
    def identifier(self) -> str:
        return reminder_identifier(self.batch_id, self.key)


def _make_reminder(batch: FoodBatch, key: str, fire_at: datetime) -> Reminder:
    title, body = _MESSAGES[key]
    return Reminder(
        batch_id=batch.id,
        key=key,
        fire_at=fire_at,
        title=title,
        body=body.format(emoji=batch.emoji, name=batch.name),
    )


def compute_reminders(
    batch: FoodBatch, prefs: ReminderPreferences, now: datetime
) -> list[Reminder]:
    """Derive the reminder set for a batch.

    Frozen batches and batches without an expiry get none. The same-day
    reminder is always emitted when enabled; "days before" reminders are
    only emitted while their target day is still in the future.
    """
    if not prefs.notifications_enabled or batch.is_frozen or batch.expiry_date is None:
        return []

    expiry = batch.expiry_date
    reminders: list[Reminder] = []

    if prefs.same_day:
        reminders.append(
            _make_reminder(batch, SAME_DAY_KEY, Clock.at_hour(expiry, prefs.same_day_hour))
        )

    for n in prefs.offsets():
        target = Clock.add_days(expiry, -n)
        if target > now:
            reminders.append(
                _make_reminder(
                    batch, days_before_key(n), Clock.at_hour(target, prefs.days_before_hour)
                )
            )

    return reminders


class ReminderScheduler:
    """Keeps the dispatcher's reminder set in step with each batch.

    Every schedule call is a full replace: cancel all keys for the
    batch, then install the freshly computed set. Dispatch failures are
    logged and remembered for a later resync; they never propagate.
    """

    def __init__(self, dispatcher: NotificationDispatcher, clock: Clock | None = None) -> None:
        self._dispatcher = dispatcher
        self._clock = clock or Clock()
        self._pending_resync: set[str] = set()

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def pending_resync(self) -> frozenset[str]:
        """Batch ids whose last schedule/cancel did not fully go through."""
        return frozenset(self._pending_resync)

    def compute(self, batch: FoodBatch, prefs: ReminderPreferences) -> list[Reminder]:
        return compute_reminders(batch, prefs, self._clock.now())

    def schedule(self, batch: FoodBatch, prefs: ReminderPreferences) -> list[Reminder]:
        """Replace the batch's reminders. Returns those actually installed."""
        complete = self._cancel(batch.id)
        installed: list[Reminder] = []
        for reminder in self.compute(batch, prefs):
            try:
                self._dispatcher.schedule_at(
                    reminder.identifier, reminder.fire_at, reminder.title, reminder.body
                )
            except DispatchUnavailable as e:
                logger.warning("Reminder not scheduled (%s): %s", reminder.identifier, e)
                complete = False
                continue
            installed.append(reminder)

        if complete:
            self._pending_resync.discard(batch.id)
        else:
            self._pending_resync.add(batch.id)
        return installed

    reschedule = schedule

    def cancel(self, batch_id: str) -> None:
        if self._cancel(batch_id):
            self._pending_resync.discard(batch_id)
        else:
            self._pending_resync.add(batch_id)

    def _cancel(self, batch_id: str) -> bool:
        try:
            self._dispatcher.cancel(
                [reminder_identifier(batch_id, key) for key in REMINDER_KEYS]
            )
        except DispatchUnavailable as e:
            logger.warning("Reminders not cancelled for %s: %s", batch_id, e)
            return False
        return True

    def resync(self, batches: Iterable[FoodBatch], prefs: ReminderPreferences) -> int:
        """Reschedule every given batch and cancel stale pending ids.

        Returns the number of reminders installed.
        """
        count = 0
        seen: set[str] = set()
        for batch in batches:
            seen.add(batch.id)
            count += len(self.schedule(batch, prefs))
        for batch_id in self._pending_resync - seen:
            self.cancel(batch_id)
        logger.info("Reminders resynced: %d batches, %d reminders", len(seen), count)
        return count

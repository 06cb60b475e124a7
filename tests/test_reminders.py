"""Tests for reminder computation and dispatcher synchronisation."""

from datetime import datetime, timedelta

import pytest

from buddyfridge.config import ReminderPreferences
from buddyfridge.errors import DispatchUnavailable
from buddyfridge.models import FoodBatch, StorageLocation
from buddyfridge.notifications.log import LogDispatcher
from buddyfridge.reminders import (
    REMINDER_KEYS,
    ReminderScheduler,
    compute_reminders,
    days_before_key,
    reminder_identifier,
)

NOW = datetime(2025, 3, 10, 12, 0)

ALL_ON = ReminderPreferences(
    notifications_enabled=True, same_day=True, one_day_before=True, five_days_before=True
)


def _batch(expiry=None, location=StorageLocation.FRIDGE, **kw):
    return FoodBatch(
        name=kw.pop("name", "Milk"),
        emoji=kw.pop("emoji", "🥛"),
        added_date=NOW,
        expiry_date=expiry,
        location=location,
        **kw,
    )


class FlakyDispatcher(LogDispatcher):
    """Refuses every schedule request while ``down`` is set."""

    def __init__(self):
        super().__init__()
        self.down = True

    def schedule_at(self, identifier, fire_at, title, body):
        if self.down:
            raise DispatchUnavailable("notification service offline")
        super().schedule_at(identifier, fire_at, title, body)


class TestComputeReminders:
    def test_all_enabled_ten_days_out(self):
        """Three triggers: expiry day 09:00, day before and five days before at 18:00."""
        batch = _batch(NOW + timedelta(days=10))
        reminders = compute_reminders(batch, ALL_ON, NOW)

        by_key = {r.key: r.fire_at for r in reminders}
        assert len(reminders) == 3
        assert by_key["today"] == datetime(2025, 3, 20, 9, 0)
        assert by_key["1day"] == datetime(2025, 3, 19, 18, 0)
        assert by_key["5days"] == datetime(2025, 3, 15, 18, 0)

    def test_defaults_skip_five_days(self):
        batch = _batch(NOW + timedelta(days=10))
        keys = {r.key for r in compute_reminders(batch, ReminderPreferences(), NOW)}
        assert keys == {"today", "1day"}

    @pytest.mark.parametrize("prefs", [
        ALL_ON,
        ReminderPreferences(),
        ReminderPreferences(same_day=False, one_day_before=False),
    ])
    def test_freezer_never_gets_reminders(self, prefs):
        batch = _batch(NOW + timedelta(days=10), location=StorageLocation.FREEZER)
        assert compute_reminders(batch, prefs, NOW) == []

    def test_no_expiry(self):
        assert compute_reminders(_batch(None), ALL_ON, NOW) == []

    def test_notifications_disabled(self):
        prefs = ReminderPreferences(notifications_enabled=False, five_days_before=True)
        assert compute_reminders(_batch(NOW + timedelta(days=10)), prefs, NOW) == []

    def test_days_before_never_in_the_past(self):
        """Expiring tomorrow at this time: the day-before target is now, so skipped."""
        batch = _batch(NOW + timedelta(days=1))
        keys = [r.key for r in compute_reminders(batch, ALL_ON, NOW)]
        assert keys == ["today"]

    def test_same_day_kept_for_expired_batch(self):
        batch = _batch(NOW - timedelta(days=2))
        keys = [r.key for r in compute_reminders(batch, ALL_ON, NOW)]
        assert keys == ["today"]

    def test_custom_hours(self):
        prefs = ReminderPreferences(same_day_hour=7, days_before_hour=20)
        batch = _batch(NOW + timedelta(days=3))
        by_key = {r.key: r.fire_at for r in compute_reminders(batch, prefs, NOW)}
        assert by_key["today"].hour == 7
        assert by_key["1day"].hour == 20

    def test_message_mentions_product(self):
        batch = _batch(NOW + timedelta(days=3), name="Yogurt", emoji="🥣")
        today = compute_reminders(batch, ReminderPreferences(), NOW)[0]
        assert today.key == "today"
        assert "🥣 Yogurt" in today.body
        assert today.identifier == f"{batch.id}-today"


def test_reminder_keys():
    assert days_before_key(1) == "1day"
    assert days_before_key(5) == "5days"
    assert set(REMINDER_KEYS) == {"today", "1day", "5days"}
    assert reminder_identifier("abc", "1day") == "abc-1day"


class TestReminderScheduler:
    def test_schedule_installs_reminders(self, clock):
        dispatcher = LogDispatcher()
        scheduler = ReminderScheduler(dispatcher, clock)
        batch = _batch(NOW + timedelta(days=10))

        installed = scheduler.schedule(batch, ALL_ON)

        assert len(installed) == 3
        ids = {n.identifier for n in dispatcher.pending()}
        assert ids == {f"{batch.id}-{k}" for k in REMINDER_KEYS}

    def test_reschedule_is_idempotent(self, clock):
        dispatcher = LogDispatcher()
        scheduler = ReminderScheduler(dispatcher, clock)
        batch = _batch(NOW + timedelta(days=10))

        scheduler.reschedule(batch, ALL_ON)
        once = dispatcher.pending()
        scheduler.reschedule(batch, ALL_ON)
        assert dispatcher.pending() == once

    def test_reschedule_replaces_stale_keys(self, clock):
        """Shortening the expiry drops reminders that no longer apply."""
        dispatcher = LogDispatcher()
        scheduler = ReminderScheduler(dispatcher, clock)
        batch = _batch(NOW + timedelta(days=10))
        scheduler.schedule(batch, ALL_ON)

        batch.expiry_date = NOW + timedelta(days=1)
        scheduler.reschedule(batch, ALL_ON)

        assert [n.identifier for n in dispatcher.pending()] == [f"{batch.id}-today"]

    def test_cancel_removes_all_keys(self, clock):
        dispatcher = LogDispatcher()
        scheduler = ReminderScheduler(dispatcher, clock)
        keep = _batch(NOW + timedelta(days=4), name="Eggs")
        drop = _batch(NOW + timedelta(days=10))
        scheduler.schedule(keep, ALL_ON)
        scheduler.schedule(drop, ALL_ON)

        scheduler.cancel(drop.id)

        assert all(n.identifier.startswith(keep.id) for n in dispatcher.pending())
        assert len(dispatcher.pending()) == 2

    def test_dispatch_failure_is_swallowed(self, clock, caplog):
        dispatcher = FlakyDispatcher()
        scheduler = ReminderScheduler(dispatcher, clock)
        batch = _batch(NOW + timedelta(days=10))

        installed = scheduler.schedule(batch, ALL_ON)

        assert installed == []
        assert batch.id in scheduler.pending_resync
        assert "Reminder not scheduled" in caplog.text

    def test_resync_retries_failed_batches(self, clock):
        dispatcher = FlakyDispatcher()
        scheduler = ReminderScheduler(dispatcher, clock)
        batch = _batch(NOW + timedelta(days=10))
        scheduler.schedule(batch, ALL_ON)

        dispatcher.down = False
        count = scheduler.resync([batch], ALL_ON)

        assert count == 3
        assert scheduler.pending_resync == frozenset()
        assert len(dispatcher.pending()) == 3

"""Shared fixtures: a frozen clock, temporary databases and a wired engine."""

from datetime import datetime

import pytest

from buddyfridge.clock import FixedClock
from buddyfridge.config import ReminderPreferences
from buddyfridge.db import FrequentItemDB, InventoryDB
from buddyfridge.lifecycle import BatchLifecycle
from buddyfridge.memory import FrequencyMemory
from buddyfridge.notifications.log import LogDispatcher
from buddyfridge.reminders import ReminderScheduler

NOW = datetime(2025, 3, 10, 12, 0)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def inventory(tmp_path):
    db = InventoryDB(db_path=tmp_path / "fridge.db")
    yield db
    db.close()


@pytest.fixture
def memory_db(tmp_path):
    db = FrequentItemDB(db_path=tmp_path / "fridge.db")
    yield db
    db.close()


@pytest.fixture
def memory(memory_db, clock):
    return FrequencyMemory(memory_db, clock)


@pytest.fixture
def dispatcher():
    return LogDispatcher()


@pytest.fixture
def reminders(dispatcher, clock):
    return ReminderScheduler(dispatcher, clock)


@pytest.fixture
def engine(inventory, memory, reminders, clock):
    return BatchLifecycle(
        store=inventory,
        memory=memory,
        reminders=reminders,
        preferences=ReminderPreferences(),
        clock=clock,
    )

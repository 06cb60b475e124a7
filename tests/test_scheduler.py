"""Tests for FridgeScheduler."""

import logging
import threading
from datetime import datetime, timedelta

import pytest

from buddyfridge.config import FridgeConfig
from buddyfridge.errors import DispatchUnavailable
from buddyfridge.lifecycle import BatchLifecycle
from buddyfridge.models import BatchInput
from buddyfridge.notifications.log import LogDispatcher
from buddyfridge.reminders import ReminderScheduler

NOW = datetime(2025, 3, 10, 12, 0)


@pytest.fixture
def config(tmp_path):
    """Config pointing at the same database file as the engine fixture."""
    cfg = FridgeConfig()
    cfg.database.path = str(tmp_path / "fridge.db")
    return cfg


def _run_in_thread(func):
    worker = threading.Thread(target=func)
    worker.start()
    worker.join(timeout=10)
    assert not worker.is_alive()


def test_scheduler_init(config, reminders):
    """FridgeScheduler starts out stopped."""
    try:
        from buddyfridge.scheduler import FridgeScheduler

        scheduler = FridgeScheduler(config, reminders)
        assert scheduler is not None
        assert scheduler.running is False
    except ImportError:
        pytest.skip("apscheduler not installed")


def test_scheduler_setup_jobs(config, reminders):
    """All cron jobs are registered."""
    try:
        from buddyfridge.scheduler import FridgeScheduler

        config.scheduler.digest_schedule = "30 7 * * *"

        scheduler = FridgeScheduler(config, reminders)
        scheduler.setup_jobs()

        jobs = scheduler.get_jobs()
        job_ids = {j["id"] for j in jobs}
        assert job_ids == {"resync_reminders", "retry_reminders", "daily_digest"}
    except ImportError:
        pytest.skip("apscheduler not installed")


def test_scheduler_invalid_cron(config, reminders):
    """A malformed cron expression is rejected."""
    try:
        from buddyfridge.scheduler import FridgeScheduler

        config.scheduler.resync_schedule = "every night"

        scheduler = FridgeScheduler(config, reminders)
        with pytest.raises(ValueError, match="invalid cron expression"):
            scheduler.setup_jobs()
    except ImportError:
        pytest.skip("apscheduler not installed")


def test_scheduler_start_resyncs_and_stop(config, engine, reminders, dispatcher, clock):
    """Starting resyncs reminders from the stored inventory."""
    try:
        from buddyfridge.scheduler import FridgeScheduler

        batch = engine.create_batch(
            BatchInput(name="Milk", expiry_date=NOW + timedelta(days=3))
        )
        dispatcher.cancel([n.identifier for n in dispatcher.pending()])

        scheduler = FridgeScheduler(config, reminders, clock=clock)
        scheduler.start()
        try:
            assert scheduler.running is True
            assert {n.identifier for n in dispatcher.pending()} == {
                f"{batch.id}-today",
                f"{batch.id}-1day",
            }
        finally:
            scheduler.stop()
        assert scheduler.running is False
    except ImportError:
        pytest.skip("apscheduler not installed")


def test_resync_job_runs_on_worker_thread(config, engine, reminders, dispatcher, clock, caplog):
    """Jobs fired by APScheduler run off the thread that opened the engine."""
    try:
        from buddyfridge.scheduler import FridgeScheduler

        batch = engine.create_batch(
            BatchInput(name="Milk", expiry_date=NOW + timedelta(days=3))
        )
        dispatcher.cancel([n.identifier for n in dispatcher.pending()])
        runner = FridgeScheduler(config, reminders, clock=clock)

        _run_in_thread(runner._job_resync_reminders)
        _run_in_thread(runner._job_daily_digest)

        assert "failed" not in caplog.text
        assert {n.identifier for n in dispatcher.pending()} == {
            f"{batch.id}-today",
            f"{batch.id}-1day",
        }
    except ImportError:
        pytest.skip("apscheduler not installed")


def test_retry_job_installs_failed_reminders(config, inventory, memory, clock):
    """A batch saved while delivery was down is picked up by the retry job."""
    try:
        from buddyfridge.scheduler import FridgeScheduler

        class DownDispatcher(LogDispatcher):
            down = True

            def schedule_at(self, identifier, fire_at, title, body):
                if self.down:
                    raise DispatchUnavailable("offline")
                super().schedule_at(identifier, fire_at, title, body)

        dispatcher = DownDispatcher()
        reminders = ReminderScheduler(dispatcher, clock)
        engine = BatchLifecycle(
            store=inventory, memory=memory, reminders=reminders, clock=clock
        )
        batch = engine.create_batch(
            BatchInput(name="Milk", expiry_date=NOW + timedelta(days=3))
        )
        assert reminders.pending_resync == {batch.id}

        dispatcher.down = False
        runner = FridgeScheduler(config, reminders, clock=clock)
        _run_in_thread(runner._job_retry_reminders)

        assert reminders.pending_resync == frozenset()
        assert len(dispatcher.pending()) == 2
    except ImportError:
        pytest.skip("apscheduler not installed")


def test_daily_digest_logs_mood(config, engine, reminders, clock, caplog):
    try:
        from buddyfridge.scheduler import FridgeScheduler

        engine.create_batch(
            BatchInput(name="Ham", expiry_date=datetime(2025, 3, 9, 12, 0))
        )
        caplog.set_level(logging.INFO, logger="buddyfridge")

        FridgeScheduler(config, reminders, clock=clock)._job_daily_digest()

        assert "Something has gone off" in caplog.text
        assert "1 items" in caplog.text
    except ImportError:
        pytest.skip("apscheduler not installed")


def test_resync_job_failure_is_logged(config, reminders, caplog, monkeypatch):
    try:
        from buddyfridge.scheduler import FridgeScheduler

        def boom(self):
            raise RuntimeError("database locked")

        monkeypatch.setattr(BatchLifecycle, "resync_reminders", boom)
        FridgeScheduler(config, reminders)._job_resync_reminders()

        assert "Reminder resync failed" in caplog.text
    except ImportError:
        pytest.skip("apscheduler not installed")

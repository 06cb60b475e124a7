"""Tests for notification dispatchers."""

from datetime import datetime, timedelta

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from buddyfridge.config import FridgeConfig
from buddyfridge.notifications import create_dispatcher
from buddyfridge.notifications.background import BackgroundDispatcher
from buddyfridge.notifications.log import LogDispatcher


@pytest.fixture
def scheduler():
    sched = BackgroundScheduler()
    sched.start(paused=True)
    yield sched
    sched.shutdown(wait=False)


def test_create_dispatcher_log():
    assert isinstance(create_dispatcher(FridgeConfig()), LogDispatcher)


def test_create_dispatcher_apscheduler():
    config = FridgeConfig()
    config.notifications.backend = "apscheduler"
    sched = BackgroundScheduler()
    dispatcher = create_dispatcher(config, scheduler=sched)
    assert isinstance(dispatcher, BackgroundDispatcher)
    assert dispatcher.scheduler is sched


def test_create_dispatcher_unknown():
    config = FridgeConfig()
    config.notifications.backend = "pigeon"
    with pytest.raises(ValueError, match="unknown notification backend"):
        create_dispatcher(config)


def test_log_dispatcher_replace_and_cancel():
    dispatcher = LogDispatcher()
    at = datetime(2025, 3, 20, 9, 0)
    dispatcher.schedule_at("b1-today", at, "Expires today!", "old")
    dispatcher.schedule_at("b1-today", at, "Expires today!", "new")
    dispatcher.schedule_at("b2-1day", at - timedelta(hours=15), "Expires tomorrow", "x")

    pending = dispatcher.pending()
    assert [n.identifier for n in pending] == ["b2-1day", "b1-today"]
    assert pending[1].body == "new"

    dispatcher.cancel(["b1-today", "unknown"])
    assert [n.identifier for n in dispatcher.pending()] == ["b2-1day"]


def test_log_dispatcher_keeps_past_fire_times():
    dispatcher = LogDispatcher()
    dispatcher.schedule_at("b1-today", datetime(2000, 1, 1, 9, 0), "t", "b")
    assert len(dispatcher.pending()) == 1


def test_background_dispatcher_schedules_job(scheduler):
    dispatcher = BackgroundDispatcher(scheduler=scheduler)
    at = (datetime.now() + timedelta(days=2)).replace(microsecond=0)

    dispatcher.schedule_at("b1-today", at, "Expires today!", "Milk expires today.")

    [note] = dispatcher.pending()
    assert note.identifier == "b1-today"
    assert note.fire_at == at
    assert note.body == "Milk expires today."


def test_background_dispatcher_replaces_same_identifier(scheduler):
    dispatcher = BackgroundDispatcher(scheduler=scheduler)
    at = (datetime.now() + timedelta(days=2)).replace(microsecond=0)

    dispatcher.schedule_at("b1-today", at, "t", "first")
    dispatcher.schedule_at("b1-today", at + timedelta(hours=1), "t", "second")

    [note] = dispatcher.pending()
    assert note.body == "second"


def test_background_dispatcher_skips_past(scheduler):
    dispatcher = BackgroundDispatcher(scheduler=scheduler)
    dispatcher.schedule_at("b1-today", datetime.now() - timedelta(hours=1), "t", "b")
    assert dispatcher.pending() == []


def test_background_dispatcher_cancel_ignores_unknown(scheduler):
    dispatcher = BackgroundDispatcher(scheduler=scheduler)
    at = datetime.now() + timedelta(days=2)
    dispatcher.schedule_at("b1-today", at, "t", "b")

    dispatcher.cancel(["b1-today", "b1-1day"])

    assert dispatcher.pending() == []


def test_background_dispatcher_delivers():
    delivered = []
    dispatcher = BackgroundDispatcher(
        scheduler=BackgroundScheduler(),
        notify=lambda ident, title, body: delivered.append((ident, title)),
    )
    dispatcher._deliver("b1-today", "Expires today!", "body")
    assert delivered == [("b1-today", "Expires today!")]


def test_background_dispatcher_delivery_failure_is_logged(caplog):
    def broken(identifier, title, body):
        raise RuntimeError("speaker unplugged")

    dispatcher = BackgroundDispatcher(scheduler=BackgroundScheduler(), notify=broken)
    dispatcher._deliver("b1-today", "t", "b")
    assert "Reminder delivery failed" in caplog.text

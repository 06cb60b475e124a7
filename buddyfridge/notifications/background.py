"""Timed delivery through an APScheduler background scheduler."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from ..errors import DispatchUnavailable
from . import NotificationDispatcher, ScheduledNotification

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str, str], None]


def _log_notification(identifier: str, title: str, body: str) -> None:
    logger.info("🔔 %s: %s", title, body)


class BackgroundDispatcher(NotificationDispatcher):
    """Registers one date-triggered job per reminder.

    The job id is the reminder identifier, so re-scheduling replaces the
    previous job and cancelling removes it.
    """

    def __init__(
        self,
        scheduler: BackgroundScheduler | None = None,
        notify: Notifier | None = None,
    ) -> None:
        self._scheduler = scheduler or BackgroundScheduler()
        self._notify = notify or _log_notification

    @property
    def scheduler(self) -> BackgroundScheduler:
        return self._scheduler

    def schedule_at(
        self, identifier: str, fire_at: datetime, title: str, body: str
    ) -> None:
        if fire_at <= datetime.now():
            logger.debug("Skipping reminder in the past: %s (%s)", identifier, fire_at)
            return
        try:
            self._scheduler.add_job(
                self._deliver,
                trigger=DateTrigger(run_date=fire_at),
                args=[identifier, title, body],
                id=identifier,
                name=title,
                replace_existing=True,
            )
        except Exception as e:
            raise DispatchUnavailable(
                f"could not schedule {identifier}: {e}"
            ) from e

    def cancel(self, identifiers: list[str]) -> None:
        for identifier in identifiers:
            try:
                self._scheduler.remove_job(identifier)
            except JobLookupError:
                continue
            except Exception as e:
                raise DispatchUnavailable(
                    f"could not cancel {identifier}: {e}"
                ) from e

    def pending(self) -> list[ScheduledNotification]:
        result = []
        for job in self._scheduler.get_jobs():
            if not isinstance(job.trigger, DateTrigger):
                continue
            identifier, title, body = job.args
            result.append(
                ScheduledNotification(
                    identifier=identifier,
                    fire_at=job.trigger.run_date.replace(tzinfo=None),
                    title=title,
                    body=body,
                )
            )
        return sorted(result, key=lambda n: (n.fire_at, n.identifier))

    def _deliver(self, identifier: str, title: str, body: str) -> None:
        try:
            self._notify(identifier, title, body)
        except Exception:
            logger.exception("Reminder delivery failed: %s", identifier)

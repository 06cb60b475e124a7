"""Dispatcher that only records and logs what would be delivered."""

from __future__ import annotations

import logging
from datetime import datetime

from . import NotificationDispatcher, ScheduledNotification

logger = logging.getLogger(__name__)


class LogDispatcher(NotificationDispatcher):
    """In-process registry of pending notifications.

    Used by one-shot CLI commands and tests; nothing is ever delivered.
    """

    def __init__(self) -> None:
        self._pending: dict[str, ScheduledNotification] = {}

    def schedule_at(
        self, identifier: str, fire_at: datetime, title: str, body: str
    ) -> None:
        self._pending[identifier] = ScheduledNotification(
            identifier=identifier, fire_at=fire_at, title=title, body=body
        )
        logger.info("Reminder %s at %s: %s", identifier, fire_at, title)

    def cancel(self, identifiers: list[str]) -> None:
        for identifier in identifiers:
            if self._pending.pop(identifier, None) is not None:
                logger.debug("Reminder cancelled: %s", identifier)

    def pending(self) -> list[ScheduledNotification]:
        return sorted(self._pending.values(), key=lambda n: (n.fire_at, n.identifier))

"""Notification dispatch base class, data types, and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import FridgeConfig


@dataclass
class ScheduledNotification:
    identifier: str  # "<batch id>-<reminder key>"
    fire_at: datetime
    title: str
    body: str


class NotificationDispatcher(ABC):
    """Delivery channel for timed reminders.

    Implementations raise DispatchUnavailable when a request cannot be
    accepted.
    """

    @abstractmethod
    def schedule_at(
        self, identifier: str, fire_at: datetime, title: str, body: str
    ) -> None:
        """Install (or replace) the notification with this identifier."""
        ...

    @abstractmethod
    def cancel(self, identifiers: list[str]) -> None:
        """Remove pending notifications; unknown identifiers are ignored."""
        ...

    @abstractmethod
    def pending(self) -> list[ScheduledNotification]:
        """Return notifications that have not fired yet."""
        ...


def create_dispatcher(config: FridgeConfig, scheduler=None) -> NotificationDispatcher:
    """Create a dispatcher based on configuration.

    Args:
        config: FridgeConfig instance.
        scheduler: Optional APScheduler instance shared with the job runner.
    """
    backend_name = config.notifications.backend

    match backend_name:
        case "log":
            from .log import LogDispatcher

            return LogDispatcher()
        case "apscheduler":
            from .background import BackgroundDispatcher

            return BackgroundDispatcher(scheduler=scheduler)
        case _:
            raise ValueError(
                f"unknown notification backend: {backend_name!r} "
                f"(choose from log / apscheduler)"
            )


__all__ = [
    "NotificationDispatcher",
    "ScheduledNotification",
    "create_dispatcher",
]

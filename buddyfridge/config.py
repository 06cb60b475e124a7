"""TOML configuration loader."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULT_DB_PATH = "~/.config/buddyfridge/fridge.db"


@dataclass(frozen=True)
class ReminderPreferences:
    """Reminder toggles, passed explicitly to every scheduling call."""

    notifications_enabled: bool = True
    same_day: bool = True
    one_day_before: bool = True
    five_days_before: bool = False
    same_day_hour: int = 9
    days_before_hour: int = 18

    def offsets(self) -> list[int]:
        """Enabled "days before" offsets, nearest first."""
        result = []
        if self.one_day_before:
            result.append(1)
        if self.five_days_before:
            result.append(5)
        return result


@dataclass
class DatabaseConfig:
    path: str = DEFAULT_DB_PATH


@dataclass
class ReminderConfig:
    enabled: bool = True
    same_day: bool = True
    one_day_before: bool = True
    five_days_before: bool = False
    same_day_hour: int = 9
    days_before_hour: int = 18

    def preferences(self) -> ReminderPreferences:
        return ReminderPreferences(
            notifications_enabled=self.enabled,
            same_day=self.same_day,
            one_day_before=self.one_day_before,
            five_days_before=self.five_days_before,
            same_day_hour=self.same_day_hour,
            days_before_hour=self.days_before_hour,
        )


@dataclass
class NotificationConfig:
    backend: str = "log"


@dataclass
class SchedulerConfig:
    resync_schedule: str = "0 3 * * *"
    retry_schedule: str = "*/15 * * * *"
    digest_schedule: str = "0 8 * * *"


@dataclass
class InventoryConfig:
    warning_days: int = 2
    card_warning_days: int = 3
    consume_threshold: float = 0.01
    seed_starter_pack: bool = True


@dataclass
class FridgeConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    reminders: ReminderConfig = field(default_factory=ReminderConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)


def load_config(path: str | Path | None = None) -> FridgeConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    The database path can be overridden via BUDDYFRIDGE_DB.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    rem = raw.get("reminders", {})
    ntf = raw.get("notifications", {})
    sch = raw.get("scheduler", {})
    inv = raw.get("inventory", {})

    # Resolve database path: config file → environment variable → default
    db_path = dbs.get("path", "") or os.environ.get("BUDDYFRIDGE_DB", "")

    return FridgeConfig(
        database=DatabaseConfig(path=db_path or DEFAULT_DB_PATH),
        reminders=ReminderConfig(
            enabled=rem.get("enabled", True),
            same_day=rem.get("same_day", True),
            one_day_before=rem.get("one_day_before", True),
            five_days_before=rem.get("five_days_before", False),
            same_day_hour=rem.get("same_day_hour", 9),
            days_before_hour=rem.get("days_before_hour", 18),
        ),
        notifications=NotificationConfig(
            backend=ntf.get("backend", "log"),
        ),
        scheduler=SchedulerConfig(
            resync_schedule=sch.get("resync_schedule", "0 3 * * *"),
            retry_schedule=sch.get("retry_schedule", "*/15 * * * *"),
            digest_schedule=sch.get("digest_schedule", "0 8 * * *"),
        ),
        inventory=InventoryConfig(
            warning_days=inv.get("warning_days", 2),
            card_warning_days=inv.get("card_warning_days", 3),
            consume_threshold=inv.get("consume_threshold", 0.01),
            seed_starter_pack=inv.get("seed_starter_pack", True),
        ),
    )

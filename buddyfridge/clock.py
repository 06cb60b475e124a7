"""Wall clock and calendar arithmetic."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

# Date-only expiry values mean "good until the end of that day".
END_OF_DAY = time(23, 59, 59)

EXPIRY_PRESETS: dict[str, int] = {
    "3d": 3,
    "1w": 7,
    "2w": 14,
}


class Clock:
    """Local naive wall clock."""

    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)

    @staticmethod
    def add_days(t: datetime, n: int) -> datetime:
        return t + timedelta(days=n)

    @staticmethod
    def days_between(a: datetime, b: datetime) -> int:
        """Calendar days from a to b (negative when b is earlier)."""
        return (b.date() - a.date()).days

    @staticmethod
    def at_hour(t: datetime, hour: int) -> datetime:
        return datetime.combine(t.date(), time(hour, 0))


class FixedClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self._now += timedelta(days=days, hours=hours)


def as_expiry(value: date | datetime | str | None) -> datetime | None:
    """Coerce user input into an expiry timestamp.

    Accepts a datetime, a date (end of that day) or an ISO string.

    Raises:
        TypeError: For anything that is not a date-like value.
        ValueError: For unparseable strings.
    """
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, END_OF_DAY)
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return datetime.combine(date.fromisoformat(text), END_OF_DAY)
        return datetime.fromisoformat(text)
    raise TypeError(f"not a date: {value!r}")


def preset_expiry(clock: Clock, key: str) -> datetime:
    """Expiry for one of the quick presets ("3d", "1w", "2w")."""
    try:
        days = EXPIRY_PRESETS[key]
    except KeyError:
        raise ValueError(
            f"unknown expiry preset: {key!r} "
            f"(choose from {', '.join(EXPIRY_PRESETS)})"
        ) from None
    return clock.add_days(clock.now(), days)

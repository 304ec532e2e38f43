"""
Time provider abstraction and calendar arithmetic

Everything that asks "is this overdue?" takes its notion of now from an
injected TimeProvider, so deadline and penalty calculations are reproducible
in tests and in audits.

Statutory periods are expressed in months and years, which timedelta cannot
represent, so the month arithmetic lives here too. Adding months clamps to the
last day of the target month (31 January + 1 month = 28/29 February).
"""

import calendar
import math
from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Protocol

from pydantic import AfterValidator

SECONDS_PER_DAY = 86400


class TimeProvider(Protocol):
    """Protocol for time providers - allows deterministic testing"""

    def now(self) -> datetime:
        """Return current UTC datetime"""
        ...


class RealTimeProvider:
    """Production time provider using system clock"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class TestTimeProvider:
    """
    Controllable time provider for deterministic tests

    Lets a test freeze the clock on a known date and walk it forward past
    report deadlines and bond expiries.
    """

    def __init__(self, initial_time: datetime | None = None) -> None:
        """
        Args:
            initial_time: Starting time (defaults to Unix epoch)
        """
        self._current_time = initial_time or datetime(1970, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current_time

    def set_time(self, dt: datetime) -> None:
        """Set current time to specific value"""
        self._current_time = dt

    def advance_seconds(self, seconds: int) -> None:
        """Advance time by specified seconds"""
        self._current_time += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        """Advance time by specified days"""
        self._current_time += timedelta(days=days)


# Global default time provider
default_time_provider: TimeProvider = RealTimeProvider()


def add_months(dt: datetime, months: int) -> datetime:
    """
    Shift a datetime by a whole number of months

    Args:
        dt: Starting point
        months: Months to add (negative to go back)

    Returns:
        Same time of day, day clamped to the length of the target month
    """
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def add_years(dt: datetime, years: int) -> datetime:
    """Shift a datetime by whole years (29 February lands on 28 February)"""
    return add_months(dt, years * 12)


def start_of_day(d: date) -> datetime:
    """Midnight UTC on the given calendar date"""
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def days_until(target: datetime, now: datetime) -> int:
    """Whole days from now until target, rounded up (negative once passed)"""
    return math.ceil((target - now).total_seconds() / SECONDS_PER_DAY)


def days_since(past: datetime, now: datetime) -> int:
    """Whole days elapsed since past, rounded up (negative if still ahead)"""
    return math.ceil((now - past).total_seconds() / SECONDS_PER_DAY)


def ensure_utc(dt: datetime) -> datetime:
    """Read a naive datetime as UTC; aware ones are converted to UTC"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# Model field type for timestamps arriving from outside (JSON, CLI files)
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]

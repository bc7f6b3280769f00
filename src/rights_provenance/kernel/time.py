"""
Time provider abstraction for deterministic testing

The ledger's notion of "now" drives expiry checks, title entry timestamps and
the transfer signature digest. Injecting it keeps all of those reproducible.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


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

    Allows tests to freeze time and move it forward, e.g. past a right's
    valid_until.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, initial_time: datetime | None = None) -> None:
        self._current_time = initial_time or EPOCH

    def now(self) -> datetime:
        return self._current_time

    def set_time(self, dt: datetime) -> None:
        self._current_time = dt

    def advance_seconds(self, seconds: int) -> None:
        self._current_time += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._current_time += timedelta(days=days)


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are returned unchanged"""
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def unix_seconds(dt: datetime) -> int:
    """Whole seconds since the Unix epoch (naive datetimes are taken as UTC)"""
    return int((as_utc(dt) - EPOCH) // timedelta(seconds=1))

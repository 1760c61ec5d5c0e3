"""
Clock -- injectable source of decision timestamps.

Created, Submitted, Approved and Rejected history entries are dated from a
Clock passed into the services; engine functions take ``now`` as an
argument and never read the system time themselves.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2025, 11, 10, 9, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Returns timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at a given instant until moved explicitly.

    Repeated ``now()`` calls return the same value, so every entry written
    by one service call carries the same date.  ``tick`` moves forward one
    second; ``advance`` by any ``timedelta``.
    """

    def __init__(self, start: datetime = DEFAULT_TEST_TIME):
        if start.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware start time")
        self._current = start.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta) -> datetime:
        self._current += delta
        return self._current

    def tick(self) -> datetime:
        return self.advance(timedelta(seconds=1))

"""
Clock -- injectable source of the current time.

Responsibility:
    Every timestamp the kernel writes (``createdAt``, ``modifiedAt``,
    ``inventory.lastUpdated``, movement and audit timestamps, session expiry,
    export date) comes from a Clock passed to the constructor of the store,
    ledger, selector or gate that writes it.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only place that reads the wall
    clock.

Failure modes:
    - ``SequentialClock`` refuses an empty list of times (ValueError).
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen time that only moves when told to.

    ``now()`` keeps returning the same instant until ``advance``, ``tick``
    or ``set_time`` is called, so tests can assert exact timestamps and
    step past expiry windows (sessions, ``recent(days=...)``).
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: float = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Move forward one second and return the new time."""
        self.advance(1)
        return self._current


class SequentialClock(Clock):
    """Returns the given times one per call, then keeps returning the last."""

    def __init__(self, times: Sequence[datetime]):
        if not times:
            raise ValueError("SequentialClock requires at least one time")
        self._times = list(times)
        self._index = 0

    def now(self) -> datetime:
        current = self._times[self._index]
        if self._index < len(self._times) - 1:
            self._index += 1
        return current

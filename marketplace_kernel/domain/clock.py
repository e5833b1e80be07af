"""
Injectable time source.

Services and the workflow facade never read the wall clock themselves.
Row timestamps, the submission order of proposals and milestone
completion dates all come from the Clock they were constructed with, so
tests can pin and step time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware current instant."""


class SystemClock(Clock):
    """Wall-clock UTC.  The default everywhere outside tests."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen time for tests.

    ``now()`` keeps returning the same instant until ``advance()`` moves it
    forward, which makes created_at ordering explicit in a test body.
    """

    def __init__(self, start: datetime = DEFAULT_TEST_EPOCH):
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

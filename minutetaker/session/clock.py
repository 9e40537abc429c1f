"""Wall-clock time source for elapsed-time math."""

import time
from abc import ABC, abstractmethod


class ClockSource(ABC):
    """Source of timestamps in seconds.

    Durations are always computed as differences between two now() readings,
    never by counting ticks, so delayed or skipped ticks cannot undercount.
    """

    @abstractmethod
    def now(self) -> float:
        """Return the current timestamp in seconds."""
        pass


class SystemClock(ClockSource):
    """Monotonic real-time clock; unaffected by system clock adjustments."""

    def now(self) -> float:
        return time.monotonic()

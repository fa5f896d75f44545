"""
Clock Interface

Every time-dependent rule in the temporal core (forgetting, signal decay,
day-bucket indexing) reads the current time through this contract instead of
calling the wall clock directly.

Timestamps are epoch milliseconds as floats, so a day bucket is simply
floor(timestamp / 86_400_000).
"""
from abc import ABC, abstractmethod
import time


MS_PER_DAY = 1000 * 60 * 60 * 24


class Clock(ABC):
    """
    Abstract time source.

    SequenceMemory and PredictionErrorProcessor take a Clock at construction.
    Production code uses SystemClock; tests use ManualClock to make decay
    and expiry deterministic.
    """

    @abstractmethod
    def now(self) -> float:
        """
        Current time in epoch milliseconds

        Example:
            clock = SystemClock()
            ts = clock.now()
            # ts = 1760870400123.0
        """
        pass


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> float:
        return time.time() * 1000.0


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Example:
        clock = ManualClock(start=0.0)
        clock.advance_days(2)
        clock.now()  # 172800000.0
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def set(self, timestamp: float):
        self._now = float(timestamp)

    def advance(self, milliseconds: float):
        """Move forward by a number of milliseconds"""
        self._now += float(milliseconds)

    def advance_seconds(self, seconds: float):
        self.advance(seconds * 1000.0)

    def advance_days(self, days: float):
        self.advance(days * MS_PER_DAY)

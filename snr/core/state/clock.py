"""
Clocks - sources of the current timestamp.

Every registry call reads the time once, at entry, and uses that single
value for all of its window checks. SystemClock follows wall time;
ManualClock is driven explicitly (tests, the demo, simulations).
"""

import time


class SystemClock:
    """Wall-clock time in whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    A clock that only moves when told to.
    
    Attributes:
        timestamp: Current time in seconds
    """

    def __init__(self, start: int = 1_700_000_000):
        self.timestamp = start

    def now(self) -> int:
        return self.timestamp

    def advance(self, seconds: int) -> int:
        """Move forward by `seconds` and return the new time."""
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.timestamp += seconds
        return self.timestamp

    def set(self, timestamp: int) -> None:
        if timestamp < self.timestamp:
            raise ValueError("Clock cannot move backwards")
        self.timestamp = timestamp


# Time units (seconds)
MINUTES = 60
HOURS = 60 * MINUTES
DAYS = 24 * HOURS
WEEKS = 7 * DAYS

__all__ = ["SystemClock", "ManualClock", "MINUTES", "HOURS", "DAYS", "WEEKS"]

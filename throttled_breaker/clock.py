"""
Clocks
======
Time sources for the circuit monitor. Time is whole epoch seconds.
"""

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Supplies the current time."""
    
    @abstractmethod
    def now(self) -> int:
        """Current time as integer epoch seconds."""


class SystemClock(Clock):
    """Wall clock."""
    
    def now(self) -> int:
        return int(time.time())


class FixedClock(Clock):
    """Returns the same timestamp whenever it's asked."""
    
    def __init__(self, timestamp: int):
        self._timestamp = timestamp
    
    def now(self) -> int:
        return self._timestamp


class MockClock(Clock):
    """
    Settable clock for tests.
    
    Example:
        clock = MockClock(1407424500)
        clock.advance(60)  # Next minute
    """
    
    def __init__(self, timestamp: int):
        self._timestamp = timestamp
    
    def now(self) -> int:
        return self._timestamp
    
    def advance(self, seconds: int) -> None:
        self._timestamp += seconds
    
    def set(self, timestamp: int) -> None:
        self._timestamp = timestamp

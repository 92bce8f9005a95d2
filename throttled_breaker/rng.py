"""
Random Sources
==============
Uniform integer draws used by probabilistic recovery.
"""

import random
from abc import ABC, abstractmethod
from typing import Optional


class RandomSource(ABC):
    """Supplies uniformly distributed integers."""
    
    @abstractmethod
    def rand(self, minimum: int, maximum: int) -> int:
        """Return an integer N such that minimum <= N <= maximum."""


class SystemRandom(RandomSource):
    """Backed by a private random.Random instance, never the module-level RNG."""
    
    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)
    
    def rand(self, minimum: int, maximum: int) -> int:
        return self._random.randint(minimum, maximum)


class SequentialRandom(RandomSource):
    """
    Deterministic source for tests.
    
    Returns minimum, minimum + 1, ... maximum, then wraps back to minimum.
    """
    
    def __init__(self):
        self._counter: Optional[int] = None
    
    def rand(self, minimum: int, maximum: int) -> int:
        if self._counter is None or self._counter >= maximum or self._counter < minimum:
            self._counter = minimum
        else:
            self._counter += 1
        return self._counter

"""
Counter Store Interface
=======================
Abstract key-value counter consumed by the circuit monitor.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Union

CounterValue = Union[int, str, bytes]


class CounterStore(ABC):
    """
    Atomic counters addressed by string keys.
    
    Implementations must make increment atomic across every caller that
    shares the store; the monitor and breaker hold no locks of their own.
    """
    
    @abstractmethod
    def increment(self, key: str, amount: int = 1, initial_value: int = 1) -> int:
        """
        Add amount to key, or set it to initial_value if absent.
        
        Returns:
            The counter value after the operation
        """
    
    @abstractmethod
    def multi_get(self, keys: Iterable[str]) -> Dict[str, Optional[CounterValue]]:
        """
        Read several counters in one round trip.
        
        Keys never written are omitted or mapped to None; they are not errors.
        Values may come back as numeric strings or bytes.
        """

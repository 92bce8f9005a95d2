"""
In-Memory Counter Store
=======================
Process-local counters for development, testing and as a fallback.
"""

import threading
import time
from typing import Dict, Iterable, Optional, Tuple

from .base import CounterStore, CounterValue


class InMemoryCounterStore(CounterStore):
    """
    Thread-safe dict of counters.
    
    Not shared between processes. Use RedisCounterStore in production.
    """
    
    def __init__(self, ttl_seconds: Optional[int] = None):
        """
        Args:
            ttl_seconds: Drop counters this long after creation (None keeps them)
        """
        self.ttl_seconds = ttl_seconds
        self._counters: Dict[str, Tuple[CounterValue, float]] = {}
        self._lock = threading.Lock()
    
    def increment(self, key: str, amount: int = 1, initial_value: int = 1) -> int:
        with self._lock:
            self._cleanup()
            if key in self._counters:
                value, created_at = self._counters[key]
                new_value = int(value) + amount
            else:
                created_at = time.time()
                new_value = initial_value
            self._counters[key] = (new_value, created_at)
            return new_value
    
    def multi_get(self, keys: Iterable[str]) -> Dict[str, Optional[CounterValue]]:
        with self._lock:
            self._cleanup()
            return {
                key: self._counters[key][0]
                for key in keys
                if key in self._counters
            }
    
    def set(self, key: str, value: CounterValue) -> None:
        """Overwrite a counter, e.g. to seed a test."""
        with self._lock:
            self._counters[key] = (value, time.time())
    
    def contents(self) -> Dict[str, CounterValue]:
        """Snapshot of every live counter."""
        with self._lock:
            self._cleanup()
            return {key: value for key, (value, _) in self._counters.items()}
    
    def _cleanup(self) -> None:
        """Remove expired counters."""
        if self.ttl_seconds is None:
            return
        current_time = time.time()
        expired = [
            key for key, (_, created_at) in self._counters.items()
            if current_time - created_at > self.ttl_seconds
        ]
        for key in expired:
            del self._counters[key]

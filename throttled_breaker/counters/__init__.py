"""
Counter Stores
==============
Atomic counter backends for circuit monitoring.
"""

from .base import CounterStore, CounterValue
from .in_memory import InMemoryCounterStore
from .redis_store import RedisCounterStore, INCREMENT_SCRIPT, DEFAULT_TTL_SECONDS

__all__ = [
    # Interface
    "CounterStore",
    "CounterValue",
    # Stores
    "InMemoryCounterStore",
    "RedisCounterStore",
    # Scripts
    "INCREMENT_SCRIPT",
    "DEFAULT_TTL_SECONDS",
]

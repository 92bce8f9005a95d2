"""
Throttled Breaker
=================
Circuit breaker with time-bucketed statistics and probabilistic recovery.

Outcomes of calls to a dependency are counted per sample period in a shared
counter store. Each admission decision looks at the last complete period:
a high failure rate trips the circuit, and a tripped circuit lets traffic
back in gradually before snapping fully closed.

Usage:
    from throttled_breaker import create_breaker, CircuitOpenError
    
    breaker = create_breaker("identity-service", redis_url="redis://localhost:6379/0")
    
    if breaker.is_closed():
        ...
        breaker.register_success()
    else:
        breaker.register_rejection()
"""

__version__ = "1.0.0"

# Models
from .models import EventType, PeriodStats, BreakerConfig

# Exceptions
from .exceptions import (
    BreakerError,
    InvalidArgumentError,
    CounterStoreError,
    CircuitOpenError,
)

# Collaborators
from .clock import Clock, SystemClock, FixedClock, MockClock
from .rng import RandomSource, SystemRandom, SequentialRandom
from .counters import CounterStore, InMemoryCounterStore, RedisCounterStore

# Core
from .monitor import CircuitMonitor
from .breaker import CircuitBreaker, FIRST_RECOVERY_STEP, THROTTLE_SNAPBACK
from .decorators import protected

# Metrics
from .metrics import StatsCollector, SimpleStatsCollector, PrometheusStatsCollector

# Builder
from .builder import build_store, create_monitor, create_breaker

__all__ = [
    # Models
    "EventType",
    "PeriodStats",
    "BreakerConfig",
    # Exceptions
    "BreakerError",
    "InvalidArgumentError",
    "CounterStoreError",
    "CircuitOpenError",
    # Collaborators
    "Clock",
    "SystemClock",
    "FixedClock",
    "MockClock",
    "RandomSource",
    "SystemRandom",
    "SequentialRandom",
    "CounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    # Core
    "CircuitMonitor",
    "CircuitBreaker",
    "FIRST_RECOVERY_STEP",
    "THROTTLE_SNAPBACK",
    "protected",
    # Metrics
    "StatsCollector",
    "SimpleStatsCollector",
    "PrometheusStatsCollector",
    # Builder
    "build_store",
    "create_monitor",
    "create_breaker",
]

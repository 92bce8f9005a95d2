"""
Breaker Builder
===============
Assembles counter store, clock, random source and configuration into a
ready CircuitMonitor or CircuitBreaker.

Store resolution order: explicit store, store_factory(), redis_url, and
finally an in-memory store. A failing factory or unreachable Redis falls
back to memory once, at construction time.
"""

from typing import Any, Callable, Mapping, Optional, Union

import structlog

from .breaker import CircuitBreaker
from .clock import Clock, SystemClock
from .counters import DEFAULT_TTL_SECONDS, CounterStore, InMemoryCounterStore, RedisCounterStore
from .exceptions import CounterStoreError
from .metrics import StatsCollector
from .models import BreakerConfig
from .monitor import SAMPLE_PERIOD_DEFAULT, CircuitMonitor, validate_sample_period
from .rng import RandomSource, SystemRandom

logger = structlog.get_logger(__name__)

# Counters outlive this many sample periods
TTL_PERIODS = 100


def counter_ttl(sample_period: int) -> int:
    """Counter expiry for a sample period, never below DEFAULT_TTL_SECONDS."""
    return max(DEFAULT_TTL_SECONDS, TTL_PERIODS * sample_period)


def build_store(
    service_name: str,
    store: Optional[CounterStore] = None,
    store_factory: Optional[Callable[[], Any]] = None,
    redis_url: Optional[str] = None,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
) -> CounterStore:
    """
    Pick the counter store for a new monitor.
    
    Stores built here, the in-memory fallback included, expire counters
    after ttl_seconds.
    """
    if store is not None:
        return store
    
    if store_factory is not None:
        try:
            built = store_factory()
        except Exception as e:
            logger.critical(
                "counter_store_build_failed",
                service=service_name,
                error=str(e),
                fallback="in-memory",
            )
        else:
            if isinstance(built, CounterStore):
                return built
            logger.critical(
                "counter_store_build_failed",
                service=service_name,
                error=f"factory returned {type(built).__name__}",
                fallback="in-memory",
            )
        return InMemoryCounterStore(ttl_seconds=ttl_seconds)
    
    if redis_url is not None:
        try:
            return RedisCounterStore.from_url(redis_url, ttl_seconds=ttl_seconds)
        except CounterStoreError as e:
            logger.warning(
                "counter_store_redis_unavailable",
                service=service_name,
                error=str(e),
                fallback="in-memory (not distributed)",
            )
    
    return InMemoryCounterStore(ttl_seconds=ttl_seconds)


def create_monitor(
    service_name: str,
    store: Optional[CounterStore] = None,
    store_factory: Optional[Callable[[], Any]] = None,
    redis_url: Optional[str] = None,
    clock: Optional[Clock] = None,
    sample_period: int = SAMPLE_PERIOD_DEFAULT,
) -> CircuitMonitor:
    """Create a CircuitMonitor, defaulting to the system clock."""
    return CircuitMonitor(
        service_name,
        build_store(
            service_name,
            store,
            store_factory,
            redis_url,
            ttl_seconds=counter_ttl(validate_sample_period(sample_period)),
        ),
        clock or SystemClock(),
        sample_period,
    )


def create_breaker(
    service_name: str,
    config: Union[BreakerConfig, Mapping[str, Any], None] = None,
    store: Optional[CounterStore] = None,
    store_factory: Optional[Callable[[], Any]] = None,
    redis_url: Optional[str] = None,
    clock: Optional[Clock] = None,
    random: Optional[RandomSource] = None,
    stats: Optional[StatsCollector] = None,
    stats_prefix: Optional[str] = None,
) -> CircuitBreaker:
    """
    Create a CircuitBreaker with its monitor.
    
    Args:
        service_name: Name of the dependency; used in counter keys
        config: BreakerConfig, or a mapping of options (camelCase accepted)
        store: Counter store to use as-is
        store_factory: Callable building a store; failures fall back to memory
        redis_url: Redis to connect to when no store or factory is given
        clock: Time source (default SystemClock)
        random: Random source (default SystemRandom)
        stats: Collector notified of each registered outcome
        stats_prefix: Prefix for stats names (default service_name)
    
    Raises:
        InvalidArgumentError: If the configuration is invalid
    """
    if config is None:
        config = BreakerConfig()
    elif not isinstance(config, BreakerConfig):
        config = BreakerConfig.from_mapping(config)
    
    monitor = create_monitor(
        service_name,
        store=store,
        store_factory=store_factory,
        redis_url=redis_url,
        clock=clock,
        sample_period=config.sample_period,
    )
    breaker = CircuitBreaker(monitor, random or SystemRandom(), config)
    
    if stats is not None:
        breaker.set_stats_collector(stats, stats_prefix)
    
    logger.info(
        "circuit_breaker_created",
        service=service_name,
        store=type(monitor.store).__name__,
        enabled=config.enabled,
        probabilistic=config.probabilistic_dynamics,
    )
    return breaker

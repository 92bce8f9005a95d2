"""
Circuit Breaker Core
====================
Trip and recovery policy over the statistics of the previous sample period.

Every is_closed() call is evaluated fresh from the last complete period:

1. Disabled: always closed (events are still recorded)
2. Not tripped: closed
3. Tripped, deterministic: open
4. Tripped, probabilistic: closed with probability equal to a recovery
   threshold that ramps up by recovery_factor each clean period, capped by
   the previous success rate, and snaps fully closed above THROTTLE_SNAPBACK
"""

import inspect
import math
import threading
from dataclasses import replace
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

import structlog

from .exceptions import CircuitOpenError, InvalidArgumentError
from .metrics import StatsCollector
from .models import BreakerConfig, EventType, PeriodStats
from .monitor import CircuitMonitor
from .rng import RandomSource

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# If the circuit is letting no traffic through, this is the
# throttle (percent) for the next period.
FIRST_RECOVERY_STEP = 10

# Throttle (percent) beyond which the circuit snaps back to fully closed.
THROTTLE_SNAPBACK = 80


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_flag(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be boolean.")
    return value


def _check_minimum_requests(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgumentError("minimum_requests_before_trigger must be a non-negative int.")
    return value


def _check_threshold(value: Any) -> float:
    if not _is_number(value) or not 0 <= value <= 100:
        raise InvalidArgumentError("percentage_failure_threshold must be a number from 0 to 100.")
    return value


def _check_recovery_factor(value: Any) -> float:
    if not _is_number(value) or not math.isfinite(value) or value <= 1:
        raise InvalidArgumentError("recovery_factor must be a number >1.")
    return value


class CircuitBreaker:
    """
    Admission decisions for calls to one dependency.
    
    Example:
        if breaker.is_closed():
            try:
                response = client.charge(order)
            except ProviderError:
                breaker.register_failure()
                raise
            breaker.register_success()
        else:
            breaker.register_rejection()
    """
    
    def __init__(
        self,
        monitor: CircuitMonitor,
        random: RandomSource,
        config: Optional[BreakerConfig] = None,
    ):
        self._monitor = monitor
        self._random = random
        self._config = BreakerConfig(sample_period=monitor.sample_period)
        self._config_lock = threading.Lock()
        self._stats: Optional[StatsCollector] = None
        self._stats_prefix = monitor.service_name
        
        if config is not None:
            self.configure(config)
    
    @property
    def monitor(self) -> CircuitMonitor:
        return self._monitor
    
    @property
    def service_name(self) -> str:
        return self._monitor.service_name
    
    @property
    def config(self) -> BreakerConfig:
        """Immutable snapshot of the current configuration."""
        return replace(self._config, sample_period=self._monitor.sample_period)
    
    # Configuration
    
    def configure(self, config: BreakerConfig) -> None:
        """
        Apply every field of config.
        
        All fields are validated before any is applied.
        """
        changes = dict(
            enabled=_check_flag("enabled", config.enabled),
            percentage_failure_threshold=_check_threshold(config.percentage_failure_threshold),
            minimum_requests_before_trigger=_check_minimum_requests(config.minimum_requests_before_trigger),
            probabilistic_dynamics=_check_flag("probabilistic_dynamics", config.probabilistic_dynamics),
            recovery_factor=_check_recovery_factor(config.recovery_factor),
        )
        self._monitor.set_sample_period(config.sample_period)
        self._update(**changes)
    
    def set_enabled(self, enabled: bool) -> None:
        self._update(enabled=_check_flag("enabled", enabled))
    
    def set_minimum_requests_before_trigger(self, minimum_requests: int) -> None:
        self._update(minimum_requests_before_trigger=_check_minimum_requests(minimum_requests))
    
    def set_percentage_failure_threshold(self, threshold: float) -> None:
        self._update(percentage_failure_threshold=_check_threshold(threshold))
    
    def set_probabilistic_dynamics(self, probabilistic: bool) -> None:
        self._update(probabilistic_dynamics=_check_flag("probabilistic_dynamics", probabilistic))
    
    def set_recovery_factor(self, recovery_factor: float) -> None:
        self._update(recovery_factor=_check_recovery_factor(recovery_factor))
    
    def set_stats_collector(self, stats: StatsCollector, prefix: Optional[str] = None) -> None:
        """Also send each registered outcome to stats as "{prefix}.{event}"."""
        self._stats = stats
        self._stats_prefix = prefix or self._monitor.service_name
    
    def _update(self, **changes: Any) -> None:
        with self._config_lock:
            self._config = replace(self._config, **changes)
        logger.info("circuit_configured", service=self.service_name, **changes)
    
    # Outcomes
    
    def register_success(self) -> None:
        """Register a successful request to the service."""
        self._register_event(EventType.SUCCESS)
    
    def register_failure(self) -> None:
        """Register a failed request to the service."""
        self._register_event(EventType.FAILURE)
    
    def register_rejection(self) -> None:
        """Register a request the breaker refused to send."""
        self._register_event(EventType.REJECTION)
    
    def _register_event(self, event: EventType) -> None:
        self._monitor.register_event(event)
        if self._stats is not None:
            self._stats.increment(f"{self._stats_prefix}.{event.value}")
    
    # Decision
    
    def is_closed(self) -> bool:
        """Is the circuit closed, i.e. should this call go ahead?"""
        config = self._config
        if not config.enabled:
            return True
        
        results = self._monitor.get_results_for_previous_period()
        if self.has_tripped(results, config):
            return self.trip_response(results, config)
        return True
    
    def has_tripped(self, results: PeriodStats, config: Optional[BreakerConfig] = None) -> bool:
        """
        Has the circuit been tripped by the given period?
        
        A throttle below the snapback line means the circuit is still
        recovering, so it stays on the probabilistic ramp even when the
        failure rate looks fine.
        """
        config = config or self._config
        sufficient_requests = results.total_requests >= config.minimum_requests_before_trigger
        failure_rate_met = results.failure_rate >= config.percentage_failure_threshold
        recovering = results.throttle < THROTTLE_SNAPBACK
        
        tripped = (sufficient_requests and failure_rate_met) or recovering
        if tripped:
            logger.debug(
                "circuit_tripped",
                service=self.service_name,
                total_requests=results.total_requests,
                failure_rate=results.failure_rate,
                throttle=results.throttle,
            )
        return tripped
    
    def trip_response(self, results: PeriodStats, config: Optional[BreakerConfig] = None) -> bool:
        """
        Decide a call on a tripped circuit.
        
        Deterministic circuits stay open. Probabilistic circuits close with
        probability min(success rate, throttle * recovery_factor) percent.
        """
        config = config or self._config
        if not config.probabilistic_dynamics:
            return False
        
        success_rate = 100 - results.failure_rate
        
        new_throttle = results.throttle * config.recovery_factor
        if new_throttle == 0:
            new_throttle = FIRST_RECOVERY_STEP
        
        threshold = min(success_rate, new_throttle)
        if threshold > THROTTLE_SNAPBACK:
            return True
        
        draw = self._random.rand(0, 100)
        closed = draw < threshold
        logger.debug(
            "circuit_throttled",
            service=self.service_name,
            threshold=threshold,
            draw=draw,
            closed=closed,
        )
        return closed
    
    # Protected calls
    
    def call(
        self,
        func: Callable[..., T],
        *args,
        fallback: Optional[Callable[[], T]] = None,
        **kwargs,
    ) -> T:
        """
        Run func if the circuit is closed and register the outcome.
        
        Raises:
            CircuitOpenError: If rejected and no fallback is given
        """
        if not self._admit():
            if fallback is not None:
                return fallback()
            raise CircuitOpenError(self.service_name)
        
        try:
            result = func(*args, **kwargs)
        except Exception:
            self.register_failure()
            raise
        self.register_success()
        return result
    
    async def call_async(
        self,
        func: Callable[..., Awaitable[T]],
        *args,
        fallback: Optional[Callable[[], Union[T, Awaitable[T]]]] = None,
        **kwargs,
    ) -> T:
        """Coroutine version of call(). fallback may be sync or async."""
        if not self._admit():
            if fallback is not None:
                result = fallback()
                if inspect.isawaitable(result):
                    return await result
                return result
            raise CircuitOpenError(self.service_name)
        
        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.register_failure()
            raise
        self.register_success()
        return result
    
    def _admit(self) -> bool:
        if self.is_closed():
            return True
        self.register_rejection()
        logger.debug("circuit_rejected", service=self.service_name)
        return False

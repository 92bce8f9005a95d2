"""
Circuit Monitor
===============
Records call outcomes in time-bucketed counters and reports per-period
statistics for a single service.

Each sample period owns three counters in the store:

    {service_name}.{period}.successes
    {service_name}.{period}.failures
    {service_name}.{period}.rejections

where period = floor(timestamp / sample_period). Counters are created on
first increment and left to the store's expiry.
"""

from typing import Dict, List, Optional, Union

import structlog

from .clock import Clock
from .counters.base import CounterStore, CounterValue
from .exceptions import CounterStoreError, InvalidArgumentError
from .models import EventType, PeriodStats

logger = structlog.get_logger(__name__)

SAMPLE_PERIOD_DEFAULT = 60

_COUNTER_NAMES = {
    EventType.SUCCESS: "successes",
    EventType.FAILURE: "failures",
    EventType.REJECTION: "rejections",
}


def validate_sample_period(sample_period) -> int:
    if isinstance(sample_period, bool) or not isinstance(sample_period, int) or sample_period <= 0:
        raise InvalidArgumentError("sample_period must be a positive int.")
    return sample_period


def _to_count(value: Optional[CounterValue]) -> int:
    """Coerce a stored counter to int; absent means zero."""
    if value is None:
        return 0
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    return int(value)


class CircuitMonitor:
    """
    Time-bucketed outcome counters for one service.
    
    Example:
        monitor = CircuitMonitor("payments", InMemoryCounterStore(), SystemClock())
        monitor.register_event(EventType.FAILURE)
        stats = monitor.get_results_for_previous_period()
    """
    
    def __init__(
        self,
        service_name: str,
        store: CounterStore,
        clock: Clock,
        sample_period: int = SAMPLE_PERIOD_DEFAULT,
    ):
        self._service_name = service_name
        self.store = store
        self.clock = clock
        self._sample_period = validate_sample_period(sample_period)
    
    @property
    def service_name(self) -> str:
        return self._service_name
    
    @property
    def sample_period(self) -> int:
        return self._sample_period
    
    def set_sample_period(self, sample_period: int) -> None:
        """
        Change the bucket width for subsequent events and queries.
        
        Existing counters are not re-bucketed, so treat this as fixed
        per deployment.
        """
        self._sample_period = validate_sample_period(sample_period)
    
    def register_event(self, event: Union[EventType, str]) -> None:
        """
        Count one outcome against the current period.
        
        Raises:
            InvalidArgumentError: If event is not a recognised kind
            CounterStoreError: If the store fails
        """
        try:
            event = EventType(event)
        except ValueError as e:
            raise InvalidArgumentError(f"Unrecognised event: {event!r}") from e
        
        key = self._counter_key(self.clock.now(), event)
        try:
            self.store.increment(key, 1, 1)
        except CounterStoreError as e:
            logger.error(
                "circuit_event_not_recorded",
                service=self._service_name,
                key=key,
                error=str(e),
            )
            raise
        logger.debug("circuit_event", service=self._service_name, event_type=event.value)
    
    def get_results_for_period(self, timestamp: int) -> PeriodStats:
        """Statistics for the period containing timestamp."""
        keys = self._keys_for_period(timestamp)
        values = self.store.multi_get(list(keys.values()))
        return self._build_results(values, keys, timestamp)
    
    def get_results_for_previous_period(self) -> PeriodStats:
        """Statistics for the last complete period, never the one in progress."""
        return self.get_results_for_period(self.clock.now() - self._sample_period)
    
    def get_results_for_previous_periods(self, how_many: int) -> Dict[int, PeriodStats]:
        """
        Statistics for the how_many periods before the current one.
        
        All counters are fetched in a single multi_get.
        
        Args:
            how_many: Number of complete periods to report
        
        Returns:
            Dict keyed by relative offset (-how_many ... -1), oldest first
        """
        if isinstance(how_many, bool) or not isinstance(how_many, int) or how_many <= 0:
            raise InvalidArgumentError("how_many must be a positive integer.")
        
        now = self.clock.now()
        keys_by_offset: Dict[int, Dict[EventType, str]] = {}
        all_keys: List[str] = []
        
        for offset in range(-how_many, 0):
            keys = self._keys_for_period(now + offset * self._sample_period)
            keys_by_offset[offset] = keys
            all_keys.extend(keys.values())
        
        values = self.store.multi_get(all_keys)
        return {
            offset: self._build_results(values, keys, now + offset * self._sample_period)
            for offset, keys in keys_by_offset.items()
        }
    
    def _build_results(
        self,
        values: Dict[str, Optional[CounterValue]],
        keys: Dict[EventType, str],
        timestamp: int,
    ) -> PeriodStats:
        period = self._period(timestamp)
        return PeriodStats.from_counts(
            period_start=period * self._sample_period,
            period_end=(period + 1) * self._sample_period - 1,
            successes=_to_count(values.get(keys[EventType.SUCCESS])),
            failures=_to_count(values.get(keys[EventType.FAILURE])),
            rejections=_to_count(values.get(keys[EventType.REJECTION])),
        )
    
    def _period(self, timestamp: int) -> int:
        return int(timestamp // self._sample_period)
    
    def _counter_key(self, timestamp: int, event: EventType) -> str:
        return f"{self._service_name}.{self._period(timestamp)}.{_COUNTER_NAMES[event]}"
    
    def _keys_for_period(self, timestamp: int) -> Dict[EventType, str]:
        return {event: self._counter_key(timestamp, event) for event in EventType}

"""
Tests for CircuitMonitor.
"""

import logging
from unittest.mock import MagicMock

import pytest
import structlog
from structlog.testing import capture_logs

from throttled_breaker import (
    CircuitMonitor,
    CounterStoreError,
    EventType,
    InvalidArgumentError,
    PeriodStats,
)

START_TIME = 1407424500


def register_events(monitor, clock, events):
    for timestamp, event in events:
        clock.set(timestamp)
        monitor.register_event(event)


@pytest.fixture
def debug_logs():
    """Capture logs with debug events let through."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG))
    with capture_logs() as logs:
        yield logs
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.INFO))


class TestPeriodStats:
    """Tests for rate derivation."""
    
    def test_rates_round_half_up(self):
        """1 of 8 is 12.5%, which should round up."""
        stats = PeriodStats.from_counts(0, 59, successes=7, failures=1, rejections=0)
        
        assert stats.failure_rate == 13
    
    def test_empty_period(self):
        """No traffic should mean no failures and a fully open throttle."""
        stats = PeriodStats.from_counts(0, 59, 0, 0, 0)
        
        assert stats.failure_rate == 0
        assert stats.throttle == 100
    
    def test_only_rejections(self):
        """All attempts rejected should mean throttle 0 and no failure rate."""
        stats = PeriodStats.from_counts(0, 59, 0, 0, 4)
        
        assert stats.total_requests == 0
        assert stats.total_attempts == 4
        assert stats.failure_rate == 0
        assert stats.throttle == 0
    
    def test_as_dict(self):
        """Should export every field."""
        stats = PeriodStats.from_counts(0, 59, 3, 1, 0)
        
        assert stats.as_dict() == {
            "period_start": 0,
            "period_end": 59,
            "successes": 3,
            "failures": 1,
            "rejections": 0,
            "total_requests": 4,
            "failure_rate": 25,
            "throttle": 100,
        }


class TestCircuitMonitor:
    """Tests for event registration and period queries."""
    
    def test_no_input(self, monitor):
        """Should still calculate if no requests are made."""
        results = monitor.get_results_for_previous_period()
        
        assert results.successes == 0
        assert results.failures == 0
        assert results.rejections == 0
        assert results.total_requests == 0
        assert results.failure_rate == 0
        assert results.throttle == 100
    
    def test_detect_failure_rate(self, monitor, clock):
        """Should report 7 failures in 10 requests as 70%."""
        register_events(monitor, clock, [(t, EventType.FAILURE) for t in range(1, 8)])
        register_events(monitor, clock, [(t, EventType.SUCCESS) for t in range(8, 11)])
        
        clock.set(60)
        results = monitor.get_results_for_previous_period()
        
        assert results.successes == 3
        assert results.failures == 7
        assert results.rejections == 0
        assert results.total_requests == 10
        assert results.failure_rate == 70
        assert results.throttle == 100
    
    def test_excludes_rejections_from_failure_rate(self, monitor, clock):
        """Rejected requests should count toward the throttle only."""
        register_events(monitor, clock, [(t, EventType.FAILURE) for t in range(1, 5)])
        register_events(monitor, clock, [(5, EventType.SUCCESS)])
        register_events(monitor, clock, [(t, EventType.REJECTION) for t in range(6, 11)])
        
        clock.set(60)
        results = monitor.get_results_for_previous_period()
        
        assert results.successes == 1
        assert results.failures == 4
        assert results.rejections == 5
        assert results.total_requests == 5
        assert results.failure_rate == 80
        assert results.throttle == 50
    
    def test_handles_strings_from_store(self, monitor, clock, store):
        """Counts stored as text or bytes should come back as ints."""
        register_events(monitor, clock, [(t, EventType.FAILURE) for t in range(1, 5)])
        register_events(monitor, clock, [(5, EventType.SUCCESS)])
        register_events(monitor, clock, [(t, EventType.REJECTION) for t in range(6, 11)])
        
        for i, (key, value) in enumerate(store.contents().items()):
            store.set(key, str(value) if i % 2 else str(value).encode())
        
        clock.set(60)
        results = monitor.get_results_for_previous_period()
        
        assert results.successes == 1
        assert results.failures == 4
        assert results.rejections == 5
        assert results.total_requests == 5
        assert results.failure_rate == 80
        assert results.throttle == 50
        assert isinstance(results.successes, int)
    
    def test_accepts_event_strings(self, monitor, store, clock):
        """Should accept the enum's string values."""
        monitor.register_event("failure")
        
        assert store.contents() == {f"myService.{START_TIME // 60}.failures": 1}
    
    def test_rejects_unknown_event(self, monitor, store):
        """Should raise for an unrecognised event and write nothing."""
        with pytest.raises(InvalidArgumentError):
            monitor.register_event("timeout")
        
        assert store.contents() == {}
    
    def test_key_layout(self, monitor, store, clock):
        """Keys should be service.period.kind."""
        monitor.register_event(EventType.SUCCESS)
        monitor.register_event(EventType.REJECTION)
        
        period = START_TIME // 60
        assert set(store.contents()) == {
            f"myService.{period}.successes",
            f"myService.{period}.rejections",
        }
    
    def test_period_boundaries(self, monitor, clock):
        """Previous period should span the full minute before now."""
        clock.set(START_TIME + 75)
        results = monitor.get_results_for_previous_period()
        
        assert results.period_start == START_TIME
        assert results.period_end == START_TIME + 59
    
    def test_ignores_current_period(self, monitor, clock):
        """Events in the period in progress should not affect the previous one."""
        monitor.register_event(EventType.FAILURE)
        
        results = monitor.get_results_for_previous_period()
        
        assert results.failures == 0
    
    def test_get_results_for_period_idempotent(self, monitor, clock):
        """Two reads with no writes between should match."""
        register_events(monitor, clock, [(1, EventType.FAILURE), (2, EventType.SUCCESS)])
        
        assert monitor.get_results_for_period(30) == monitor.get_results_for_period(30)
    
    def test_previous_periods_single_batch(self, store, clock):
        """Should report each earlier period using one multi_get."""
        spy = MagicMock(wraps=store)
        monitor = CircuitMonitor("myService", spy, clock)
        register_events(monitor, clock, [
            (0, EventType.FAILURE),
            (60, EventType.SUCCESS),
            (61, EventType.SUCCESS),
            (120, EventType.REJECTION),
            (180, EventType.FAILURE),
        ])
        
        clock.set(185)
        results = monitor.get_results_for_previous_periods(3)
        
        assert list(results) == [-3, -2, -1]
        assert results[-3].failures == 1
        assert results[-2].successes == 2
        assert results[-1].rejections == 1
        assert results[-1].throttle == 0
        assert results[-3].period_start == 0
        assert results[-1].period_end == 179
        assert spy.multi_get.call_count == 1
    
    @pytest.mark.parametrize("how_many", [0, -1, 1.5, True, "3"])
    def test_previous_periods_rejects_bad_count(self, monitor, how_many):
        """Should require a positive int."""
        with pytest.raises(InvalidArgumentError):
            monitor.get_results_for_previous_periods(how_many)
    
    def test_sample_period(self, monitor, clock):
        """Changing the sample period should change bucket width."""
        monitor.set_sample_period(10)
        clock.set(5)
        monitor.register_event(EventType.FAILURE)
        
        clock.set(15)
        results = monitor.get_results_for_previous_period()
        
        assert results.failures == 1
        assert (results.period_start, results.period_end) == (0, 9)
    
    @pytest.mark.parametrize("sample_period", [0, -60, 1.5, "60", None])
    def test_sample_period_validation(self, monitor, sample_period):
        """Should require a positive int."""
        with pytest.raises(InvalidArgumentError):
            monitor.set_sample_period(sample_period)
        
        assert monitor.sample_period == 60
    
    def test_store_failure_propagates(self, clock):
        """Store errors should not be swallowed."""
        store = MagicMock()
        store.increment.side_effect = RuntimeError("backend down")
        monitor = CircuitMonitor("myService", store, clock)
        
        with pytest.raises(RuntimeError):
            monitor.register_event(EventType.SUCCESS)
    
    def test_store_failure_logged_with_service_and_key(self, clock):
        """Should log which service and counter were lost before re-raising."""
        store = MagicMock()
        store.increment.side_effect = CounterStoreError("backend down")
        monitor = CircuitMonitor("myService", store, clock)
        
        with capture_logs() as logs:
            with pytest.raises(CounterStoreError):
                monitor.register_event(EventType.FAILURE)
        
        assert logs == [{
            "event": "circuit_event_not_recorded",
            "service": "myService",
            "key": "myService.23457075.failures",
            "error": "backend down",
            "log_level": "error",
        }]
    
    def test_register_event_logs_event_type(self, monitor, store, debug_logs):
        """Each registration should be counted and logged at debug."""
        monitor.register_event(EventType.SUCCESS)
        monitor.register_event("rejection")
        
        assert store.contents() == {
            "myService.23457075.successes": 1,
            "myService.23457075.rejections": 1,
        }
        assert [(log["event"], log["event_type"], log["log_level"]) for log in debug_logs] == [
            ("circuit_event", "success", "debug"),
            ("circuit_event", "rejection", "debug"),
        ]

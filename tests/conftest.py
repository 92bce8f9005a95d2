"""
Shared fixtures for throttled_breaker tests.
"""

import logging

import pytest
import structlog

from throttled_breaker import (
    BreakerConfig,
    CircuitMonitor,
    InMemoryCounterStore,
    MockClock,
    PeriodStats,
    SequentialRandom,
    create_breaker,
)

# Start of a minute
START_TIME = 1407424500


class StubMonitor:
    """Monitor double that records events and serves canned previous-period stats."""
    
    def __init__(self, service_name: str = "myService", sample_period: int = 60):
        self.service_name = service_name
        self.sample_period = sample_period
        self.events = []
        self.previous_results = PeriodStats(period_start=0, period_end=59)
    
    def set_sample_period(self, sample_period: int) -> None:
        self.sample_period = sample_period
    
    def register_event(self, event) -> None:
        self.events.append(event)
    
    def get_results_for_previous_period(self) -> PeriodStats:
        return self.previous_results


@pytest.fixture
def store():
    return InMemoryCounterStore()


@pytest.fixture
def clock():
    return MockClock(START_TIME)


@pytest.fixture
def random():
    return SequentialRandom()


@pytest.fixture
def monitor(store, clock):
    return CircuitMonitor("myService", store, clock)


@pytest.fixture
def stub_monitor():
    return StubMonitor()


@pytest.fixture
def make_breaker(store, clock, random):
    """Factory for breakers sharing the test store, clock and random source."""
    def _make(config=None):
        return create_breaker(
            "myService",
            config=config or BreakerConfig(),
            store=store,
            clock=clock,
            random=random,
        )
    return _make


@pytest.fixture(autouse=True, scope="session")
def quiet_debug_logs():
    """Per-event debug logs are noisy over thousands of registrations."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.INFO))
    yield
    structlog.reset_defaults()

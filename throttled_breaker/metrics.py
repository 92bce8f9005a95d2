"""
Breaker Metrics
===============
Stats collectors notified of every outcome a breaker registers.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

from .models import PeriodStats

logger = structlog.get_logger(__name__)


class StatsCollector(ABC):
    """Receives one increment per registered outcome."""
    
    @abstractmethod
    def increment(self, name: str) -> None:
        """Increment the counter called name, e.g. "payments.failure"."""


class SimpleStatsCollector(StatsCollector):
    """
    In-memory collector.
    
    For tests and local runs; use PrometheusStatsCollector in services.
    """
    
    def __init__(self):
        self._counters: Dict[str, int] = {}
    
    def increment(self, name: str) -> None:
        self._counters[name] = self._counters.get(name, 0) + 1
    
    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)


class PrometheusStatsCollector(StatsCollector):
    """
    Collector backed by prometheus_client.
    
    Metrics live in their own registry unless one is passed in, so several
    collectors can coexist in one process.
    
    Example:
        stats = PrometheusStatsCollector()
        breaker.set_stats_collector(stats, "payments")
        stats.observe_period("payments", breaker.monitor.get_results_for_previous_period())
        body = stats.export()
    """
    
    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        
        self.events = Counter(
            name="circuit_breaker_events",
            documentation="Outcomes registered with circuit breakers",
            labelnames=["name"],
            registry=self.registry,
        )
        self.failure_rate = Gauge(
            name="circuit_breaker_failure_rate",
            documentation="Failure rate in the last complete sample period (percent)",
            labelnames=["service"],
            registry=self.registry,
        )
        self.throttle = Gauge(
            name="circuit_breaker_throttle",
            documentation="Share of attempts not rejected in the last complete sample period (percent)",
            labelnames=["service"],
            registry=self.registry,
        )
    
    def increment(self, name: str) -> None:
        self.events.labels(name=name).inc()
    
    def observe_period(self, service: str, stats: PeriodStats) -> None:
        """Publish the rates of a period as gauges."""
        self.failure_rate.labels(service=service).set(stats.failure_rate)
        self.throttle.labels(service=service).set(stats.throttle)
        logger.debug(
            "circuit_period_observed",
            service=service,
            failure_rate=stats.failure_rate,
            throttle=stats.throttle,
        )
    
    def export(self) -> bytes:
        """Registry contents in Prometheus text format."""
        return generate_latest(self.registry)

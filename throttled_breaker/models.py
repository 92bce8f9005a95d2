"""
Breaker Models
==============
Event kinds, per-period statistics and breaker configuration.
"""

import os
from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from .exceptions import InvalidArgumentError


class EventType(str, Enum):
    """Outcome of a call to the protected dependency."""
    SUCCESS = "success"
    FAILURE = "failure"
    REJECTION = "rejection"  # Never reached the dependency


def percentage(part: int, whole: int) -> int:
    """Integer percentage of part/whole, rounded half up."""
    return (200 * part + whole) // (2 * whole)


@dataclass(frozen=True)
class PeriodStats:
    """Aggregated outcomes for one sample period."""
    period_start: int
    period_end: int  # Inclusive
    successes: int = 0
    failures: int = 0
    rejections: int = 0
    total_requests: int = 0
    failure_rate: int = 0
    throttle: Union[int, float] = 100
    
    @classmethod
    def from_counts(
        cls,
        period_start: int,
        period_end: int,
        successes: int,
        failures: int,
        rejections: int,
    ) -> "PeriodStats":
        """Derive rates from raw counts."""
        total_requests = successes + failures
        failure_rate = percentage(failures, total_requests) if total_requests else 0
        total_attempts = total_requests + rejections
        throttle = 100 - percentage(rejections, total_attempts) if total_attempts else 100
        
        return cls(
            period_start=period_start,
            period_end=period_end,
            successes=successes,
            failures=failures,
            rejections=rejections,
            total_requests=total_requests,
            failure_rate=failure_rate,
            throttle=throttle,
        )
    
    @property
    def total_attempts(self) -> int:
        return self.total_requests + self.rejections
    
    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


# camelCase option names accepted alongside the field names
_OPTION_ALIASES = {
    "enabled": "enabled",
    "samplePeriod": "sample_period",
    "percentageFailureThreshold": "percentage_failure_threshold",
    "minimumRequestsBeforeTrigger": "minimum_requests_before_trigger",
    "probabilisticDynamics": "probabilistic_dynamics",
    "recoveryFactor": "recovery_factor",
}


@dataclass(frozen=True)
class BreakerConfig:
    """Configuration for a circuit breaker."""
    enabled: bool = True
    sample_period: int = 60                     # Seconds per bucket
    percentage_failure_threshold: float = 50    # Trip at or above this failure rate
    minimum_requests_before_trigger: int = 3    # Ignore quieter periods
    probabilistic_dynamics: bool = True         # Ramp back up instead of staying open
    recovery_factor: float = 2                  # Throttle multiplier per clean period
    
    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "BreakerConfig":
        """
        Build a config from a mapping of options.
        
        Accepts both the field names and their camelCase spellings.
        
        Raises:
            InvalidArgumentError: On an unknown option name
        """
        field_names = {f.name for f in fields(cls)}
        values = {}
        for key, value in mapping.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in field_names:
                raise InvalidArgumentError(f"Unknown breaker option: {key}")
            values[name] = value
        return cls(**values)
    
    @classmethod
    def from_env(cls, prefix: str = "CIRCUIT_BREAKER_") -> "BreakerConfig":
        """
        Build a config from environment variables.
        
        e.g. CIRCUIT_BREAKER_SAMPLE_PERIOD=30, CIRCUIT_BREAKER_ENABLED=false
        """
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw: Optional[str] = os.getenv(prefix + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _parse_env_value(f.name, raw)
        return cls(**values)


def _parse_env_value(name: str, raw: str) -> Any:
    raw = raw.strip()
    if name in ("enabled", "probabilistic_dynamics"):
        lowered = raw.lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise InvalidArgumentError(f"{name} must be a boolean, got {raw!r}")
    try:
        if name in ("sample_period", "minimum_requests_before_trigger"):
            return int(raw)
        return float(raw)
    except ValueError as e:
        raise InvalidArgumentError(f"{name} must be numeric, got {raw!r}") from e

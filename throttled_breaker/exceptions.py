"""
Breaker Exceptions
==================
Exception classes raised by the monitor, the breaker and the counter stores.
"""

from typing import Optional


class BreakerError(Exception):
    """Base class for all throttled_breaker errors."""
    pass


class InvalidArgumentError(BreakerError, ValueError):
    """Raised when a configuration value, event kind or query parameter is invalid."""
    pass


class CounterStoreError(BreakerError):
    """Raised when the counter backend fails to increment or read."""
    
    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class CircuitOpenError(BreakerError):
    """Raised by protected calls when the circuit rejects the request."""
    
    def __init__(self, service_name: str):
        self.service_name = service_name
        super().__init__(f"Circuit breaker for '{service_name}' is open")

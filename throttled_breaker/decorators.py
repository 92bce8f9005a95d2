"""
Circuit Breaker Decorator
=========================
Decorator for wrapping sync or async functions with circuit breaker protection.
"""

import inspect
from functools import wraps
from typing import Callable, Optional

from .breaker import CircuitBreaker


def protected(breaker: CircuitBreaker, fallback: Optional[Callable] = None):
    """
    Decorator to route every call of a function through a breaker.
    
    Rejected calls are registered and either answered by fallback or
    raise CircuitOpenError. Exceptions from the function count as failures.
    
    Example:
        @protected(breaker)
        def fetch_rates(currency: str):
            return rates_client.get(currency)
        
        @protected(breaker, fallback=lambda: {"status": "queued"})
        async def send_sms(to: str, body: str):
            return await sms_client.send(to=to, body=body)
    """
    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                return await breaker.call_async(func, *args, fallback=fallback, **kwargs)
            
            return async_wrapper
        
        @wraps(func)
        def wrapper(*args, **kwargs):
            return breaker.call(func, *args, fallback=fallback, **kwargs)
        
        return wrapper
    
    return decorator

"""
Redis Counter Store
===================
Redis-backed counters shared by every process pointing at the same server.
Uses a Lua script so init-then-add and the expiry are applied atomically.
"""

from typing import Dict, Iterable, List, Optional

import redis
import structlog

from ..exceptions import CounterStoreError
from .base import CounterStore, CounterValue

logger = structlog.get_logger(__name__)

# 100 default sample periods
DEFAULT_TTL_SECONDS = 6000

# Lua script for atomic increment with an initial value
INCREMENT_SCRIPT = """
local key = KEYS[1]
local amount = tonumber(ARGV[1])
local initial = tonumber(ARGV[2])
local ttl = tonumber(ARGV[3])

local value
if redis.call('EXISTS', key) == 1 then
    value = redis.call('INCRBY', key, amount)
else
    redis.call('SET', key, initial)
    value = initial
end

if ttl > 0 then
    redis.call('EXPIRE', key, ttl)
end

return value
"""


class RedisCounterStore(CounterStore):
    """
    Counter store on a synchronous Redis client.
    
    Example:
        store = RedisCounterStore.from_url("redis://localhost:6379/0")
        store.increment("payments.23456.failures")
    """
    
    def __init__(
        self,
        redis_client,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        key_prefix: str = "",
    ):
        """
        Args:
            redis_client: Synchronous redis.Redis client
            ttl_seconds: Expiry refreshed on every increment (0 disables)
            key_prefix: Prepended to every counter key
        """
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self._increment = self.redis.register_script(INCREMENT_SCRIPT)
    
    @classmethod
    def from_url(cls, redis_url: str, **kwargs) -> "RedisCounterStore":
        """
        Connect and ping, so an unreachable server fails at construction.
        
        Raises:
            CounterStoreError: If the server cannot be reached
        """
        try:
            client = redis.from_url(redis_url, decode_responses=True)
            client.ping()
        except redis.RedisError as e:
            raise CounterStoreError(f"Cannot connect to Redis: {e}") from e
        logger.info("counter_store_redis_connected")
        return cls(client, **kwargs)
    
    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"
    
    def increment(self, key: str, amount: int = 1, initial_value: int = 1) -> int:
        try:
            result = self._increment(
                keys=[self._key(key)],
                args=[amount, initial_value, self.ttl_seconds],
            )
        except redis.RedisError as e:
            logger.error("counter_increment_failed", key=key, error=str(e))
            raise CounterStoreError(f"Failed to increment {key}: {e}", key=key) from e
        return int(result)
    
    def multi_get(self, keys: Iterable[str]) -> Dict[str, Optional[CounterValue]]:
        key_list: List[str] = list(keys)
        if not key_list:
            return {}
        try:
            values = self.redis.mget([self._key(key) for key in key_list])
        except redis.RedisError as e:
            logger.error("counter_multi_get_failed", keys=len(key_list), error=str(e))
            raise CounterStoreError(f"Failed to read counters: {e}") from e
        return dict(zip(key_list, values))

"""
Cache Backends
==============
Expiring key-value storage shared by the OTP store and rate limiter.
"""

from .base import KeyValueCache, with_deadline, DEFAULT_OPERATION_TIMEOUT
from .in_memory import InMemoryCache
from .redis_cache import RedisCache, INCREMENT_FIELD_SCRIPT, INCREMENT_COUNTER_SCRIPT

__all__ = [
    "KeyValueCache",
    "with_deadline",
    "DEFAULT_OPERATION_TIMEOUT",
    "InMemoryCache",
    "RedisCache",
    "INCREMENT_FIELD_SCRIPT",
    "INCREMENT_COUNTER_SCRIPT",
]

"""
Redis Cache
===========
Redis-backed KeyValueCache using Lua scripts for atomic compound operations.
"""

from typing import Any, Awaitable, Dict, Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import NoScriptError, RedisError

from ..config import RedisConfig
from ..errors import StoreUnavailableError
from .base import KeyValueCache

logger = structlog.get_logger(__name__)

# Increment a hash field only if the hash exists. HINCRBY alone would
# create a key with no expiry.
INCREMENT_FIELD_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return false
end
return redis.call('HINCRBY', KEYS[1], ARGV[1], ARGV[2])
"""

# Increment a counter and re-arm its window in one step
INCREMENT_COUNTER_SCRIPT = """
local count = redis.call('INCR', KEYS[1])
redis.call('PEXPIRE', KEYS[1], ARGV[1])
return count
"""


def _decode(value: Any) -> Any:
    return value.decode('utf-8') if isinstance(value, bytes) else value


class RedisCache(KeyValueCache):
    """
    KeyValueCache over an async Redis client.

    Backend errors are raised as StoreUnavailableError.
    """

    def __init__(self, redis_client: Redis):
        """
        Args:
            redis_client: Async Redis client
        """
        self.redis = redis_client
        self._script_shas: Dict[str, str] = {}

    @classmethod
    def from_config(cls, config: Optional[RedisConfig] = None) -> "RedisCache":
        config = config or RedisConfig()
        return cls(Redis.from_url(config.url, decode_responses=True))

    async def _call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except RedisError as e:
            logger.error("Redis operation failed", operation=operation, error=str(e))
            raise StoreUnavailableError(
                f"Redis operation '{operation}' failed: {e}",
                operation=operation,
            ) from e

    async def _ensure_script(self, script: str) -> str:
        """Load a Lua script into Redis if needed."""
        sha = self._script_shas.get(script)
        if sha is None:
            sha = await self._call("script_load", self.redis.script_load(script))
            self._script_shas[script] = sha
        return sha

    async def _run_script(self, operation: str, script: str, key: str, *args: Any) -> Any:
        sha = await self._ensure_script(script)
        try:
            return await self._call(operation, self.redis.evalsha(sha, 1, key, *args))
        except StoreUnavailableError as e:
            if not isinstance(e.__cause__, NoScriptError):
                raise
            # Script cache was flushed (e.g. Redis restart)
            self._script_shas.pop(script, None)
            sha = await self._ensure_script(script)
            return await self._call(operation, self.redis.evalsha(sha, 1, key, *args))

    async def get_hash(self, key: str) -> Optional[Dict[str, str]]:
        raw = await self._call("get_hash", self.redis.hgetall(key))
        if not raw:
            return None
        return {_decode(k): _decode(v) for k, v in raw.items()}

    async def set_hash(self, key: str, mapping: Dict[str, str], ttl_seconds: float) -> None:
        pipe = self.redis.pipeline(transaction=True)
        pipe.delete(key)
        pipe.hset(key, mapping={k: str(v) for k, v in mapping.items()})
        pipe.pexpire(key, int(ttl_seconds * 1000))
        await self._call("set_hash", pipe.execute())

    async def increment_hash_field(self, key: str, field: str, amount: int = 1) -> Optional[int]:
        result = await self._run_script(
            "increment_hash_field", INCREMENT_FIELD_SCRIPT, key, field, amount
        )
        return None if result is None else int(result)

    async def get_counter(self, key: str) -> int:
        value = await self._call("get_counter", self.redis.get(key))
        return int(_decode(value)) if value is not None else 0

    async def increment_counter(self, key: str, ttl_seconds: float) -> int:
        result = await self._run_script(
            "increment_counter", INCREMENT_COUNTER_SCRIPT, key, int(ttl_seconds * 1000)
        )
        return int(result)

    async def delete(self, key: str) -> None:
        await self._call("delete", self.redis.delete(key))

    async def ttl(self, key: str) -> Optional[float]:
        remaining_ms = await self._call("ttl", self.redis.pttl(key))
        # -2: missing key, -1: no expiry
        if remaining_ms is None or remaining_ms < 0:
            return None
        return remaining_ms / 1000

    async def close(self) -> None:
        await self.redis.aclose()

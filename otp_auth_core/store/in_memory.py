"""
In-Memory Cache
===============
Process-local KeyValueCache with lazy expiry and a background janitor.

For development, tests and single-process deployments.
Use RedisCache when several processes share OTP state.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

import structlog

from .base import KeyValueCache

logger = structlog.get_logger(__name__)


@dataclass
class _Entry:
    value: Union[Dict[str, str], int]
    expires_at: Optional[float]

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class InMemoryCache(KeyValueCache):
    """
    Dictionary-backed cache.

    Every method completes without yielding to the event loop, so each
    operation is atomic with respect to other coroutines.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 30.0,
    ):
        """
        Args:
            clock: Time source in seconds
            sweep_interval: Seconds between janitor sweeps
        """
        self.clock = clock
        self.sweep_interval = sweep_interval
        self._entries: Dict[str, _Entry] = {}
        self._janitor: Optional[asyncio.Task] = None

    def _live(self, key: str) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            del self._entries[key]
            return None
        return entry

    async def get_hash(self, key: str) -> Optional[Dict[str, str]]:
        entry = self._live(key)
        if entry is None or not isinstance(entry.value, dict):
            return None
        return dict(entry.value)

    async def set_hash(self, key: str, mapping: Dict[str, str], ttl_seconds: float) -> None:
        self._entries[key] = _Entry(
            value={k: str(v) for k, v in mapping.items()},
            expires_at=self.clock() + ttl_seconds,
        )

    async def increment_hash_field(self, key: str, field: str, amount: int = 1) -> Optional[int]:
        entry = self._live(key)
        if entry is None or not isinstance(entry.value, dict):
            return None
        new_value = int(entry.value.get(field, "0")) + amount
        entry.value[field] = str(new_value)
        return new_value

    async def get_counter(self, key: str) -> int:
        entry = self._live(key)
        if entry is None or not isinstance(entry.value, int):
            return 0
        return entry.value

    async def increment_counter(self, key: str, ttl_seconds: float) -> int:
        entry = self._live(key)
        count = entry.value + 1 if entry is not None and isinstance(entry.value, int) else 1
        self._entries[key] = _Entry(value=count, expires_at=self.clock() + ttl_seconds)
        return count

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def ttl(self, key: str) -> Optional[float]:
        entry = self._live(key)
        if entry is None or entry.expires_at is None:
            return None
        return entry.expires_at - self.clock()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Purged expired cache entries", count=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    async def _run_janitor(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.purge_expired()

    def start(self) -> None:
        """Start the janitor task on the running event loop."""
        if self._janitor is None or self._janitor.done():
            self._janitor = asyncio.get_running_loop().create_task(self._run_janitor())

    async def close(self) -> None:
        if self._janitor is not None:
            self._janitor.cancel()
            try:
                await self._janitor
            except asyncio.CancelledError:
                pass
            self._janitor = None

    async def __aenter__(self) -> "InMemoryCache":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

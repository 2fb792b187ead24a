"""
Key-Value Cache Interface
=========================
The shared, expiring key-value storage the OTP core keeps its state in.

Implementations must make every method atomic per key. Challenges are
stored as string hashes so single fields can be incremented in place;
rate-limit windows are plain integer counters.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Dict, Optional, TypeVar

import structlog

from ..errors import StoreUnavailableError

logger = structlog.get_logger(__name__)

T = TypeVar('T')

DEFAULT_OPERATION_TIMEOUT = 3.0


class KeyValueCache(ABC):
    """Expiring key-value cache with atomic increments."""

    @abstractmethod
    async def get_hash(self, key: str) -> Optional[Dict[str, str]]:
        """Return all fields of a live hash, or None."""

    @abstractmethod
    async def set_hash(self, key: str, mapping: Dict[str, str], ttl_seconds: float) -> None:
        """Replace the whole hash at ``key`` and expire it after ``ttl_seconds``."""

    @abstractmethod
    async def increment_hash_field(self, key: str, field: str, amount: int = 1) -> Optional[int]:
        """
        Add ``amount`` to an integer field of an existing hash.

        The key's remaining time-to-live is preserved. Returns the new value,
        or None when the key does not exist (it is never created).
        """

    @abstractmethod
    async def get_counter(self, key: str) -> int:
        """Return a live counter's value, 0 if absent."""

    @abstractmethod
    async def increment_counter(self, key: str, ttl_seconds: float) -> int:
        """Increment a counter and re-arm its expiry to ``ttl_seconds`` from now."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are not an error."""

    @abstractmethod
    async def ttl(self, key: str) -> Optional[float]:
        """Seconds until ``key`` expires, or None if it is absent or has no expiry."""

    async def close(self) -> None:
        """Release backend resources."""


async def with_deadline(
    awaitable: Awaitable[T],
    timeout: float,
    operation: str,
) -> T:
    """
    Await a cache operation with a fixed deadline.

    Raises:
        StoreUnavailableError: If the deadline passes first
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error("Cache operation timed out", operation=operation, timeout=timeout)
        raise StoreUnavailableError(
            f"Cache operation '{operation}' timed out after {timeout}s",
            operation=operation,
        ) from e

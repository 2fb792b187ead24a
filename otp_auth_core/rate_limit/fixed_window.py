"""
Fixed Window Rate Limiter
=========================
Counts OTP issuances per phone number in a re-arming window.

Every increment resets the window's expiry to its full length, so a
phone that keeps requesting stays blocked until it has been quiet for a
whole window.
"""

import math
from typing import Optional

import structlog

from ..logging_config import mask_phone
from ..store.base import DEFAULT_OPERATION_TIMEOUT, KeyValueCache, with_deadline
from .models import RateLimitInfo

logger = structlog.get_logger(__name__)


class FixedWindowRateLimiter:
    """Per-phone issuance counter with automatic expiry."""

    def __init__(
        self,
        cache: KeyValueCache,
        max_requests: int = 3,
        window_seconds: float = 600,
        timeout: float = DEFAULT_OPERATION_TIMEOUT,
    ):
        """
        Args:
            cache: Shared key-value cache
            max_requests: Issuances allowed per window
            window_seconds: Window length in seconds
            timeout: Deadline for each cache operation
        """
        self.cache = cache
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.timeout = timeout

    def get_key(self, phone: str) -> str:
        """Generate the rate limit key for a phone number."""
        return f"rate_limit:{phone}"

    async def check_and_get(self, phone: str) -> int:
        """Return the number of issuances in the live window, 0 if none."""
        return await with_deadline(
            self.cache.get_counter(self.get_key(phone)), self.timeout, "rate_limit.get"
        )

    async def check(self, phone: str, max_requests: Optional[int] = None) -> RateLimitInfo:
        """
        Return the quota for ``phone`` including time until reset.

        Args:
            phone: Validated phone number
            max_requests: Override for the configured quota
        """
        limit = max_requests if max_requests is not None else self.max_requests
        count = await self.check_and_get(phone)
        retry_after = None
        if count >= limit:
            remaining = await with_deadline(
                self.cache.ttl(self.get_key(phone)), self.timeout, "rate_limit.ttl"
            )
            if remaining is not None:
                retry_after = math.ceil(remaining)
        return RateLimitInfo(count=count, limit=limit, retry_after=retry_after)

    async def increment(self, phone: str, window_seconds: Optional[float] = None) -> int:
        """
        Count one issuance and re-arm the window.

        Args:
            phone: Validated phone number
            window_seconds: Override for the configured window length

        Returns:
            The new count
        """
        window = window_seconds if window_seconds is not None else self.window_seconds
        count = await with_deadline(
            self.cache.increment_counter(self.get_key(phone), window),
            self.timeout,
            "rate_limit.increment",
        )
        logger.info(
            "Rate limit incremented",
            phone=mask_phone(phone),
            count=count,
            limit=self.max_requests,
            window_seconds=window,
        )
        return count

    async def reset(self, phone: str) -> None:
        """Clear the window for ``phone``."""
        await with_deadline(
            self.cache.delete(self.get_key(phone)), self.timeout, "rate_limit.reset"
        )
        logger.info("Rate limit cleared", phone=mask_phone(phone))

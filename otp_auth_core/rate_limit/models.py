"""
Rate Limit Models
=================
Quota snapshot returned by the issuance limiter.
"""

from typing import Optional
from dataclasses import dataclass
from enum import Enum


class RateLimitResult(str, Enum):
    """Outcome of a quota check."""
    ALLOWED = "allowed"
    BLOCKED = "blocked"


@dataclass
class RateLimitInfo:
    """Issuance quota for one phone number in the current window."""
    count: int
    limit: int
    retry_after: Optional[int] = None  # Seconds until the window lapses

    @property
    def allowed(self) -> bool:
        return self.count < self.limit

    @property
    def remaining(self) -> int:
        return max(self.limit - self.count, 0)

    @property
    def result(self) -> RateLimitResult:
        return RateLimitResult.ALLOWED if self.allowed else RateLimitResult.BLOCKED

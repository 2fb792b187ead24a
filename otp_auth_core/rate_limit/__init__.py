"""
Rate Limiting
=============
Windowed limits on OTP issuance per phone number.
"""

from .models import RateLimitResult, RateLimitInfo
from .fixed_window import FixedWindowRateLimiter

__all__ = [
    "RateLimitResult",
    "RateLimitInfo",
    "FixedWindowRateLimiter",
]

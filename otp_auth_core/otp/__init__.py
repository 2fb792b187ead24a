"""
OTP Generation and Storage
==========================
Secure codes and the per-phone challenge store.
"""

from .models import OTPChallenge, OTPIssued
from .codes import generate_otp, codes_match
from .store import OTPStore

__all__ = [
    # Models
    "OTPChallenge",
    "OTPIssued",
    # Codes
    "generate_otp",
    "codes_match",
    # Store
    "OTPStore",
]

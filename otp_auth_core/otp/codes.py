"""
OTP Codes
=========
Secure code generation and constant-time comparison.
"""

import hmac
import secrets

from ..errors import RandomnessUnavailableError

DIGITS = "0123456789"


def generate_otp(length: int = 6) -> str:
    """
    Generate a numeric OTP.

    Each digit is drawn independently from the OS CSPRNG via ``secrets``.

    Args:
        length: Number of digits, zero or more

    Returns:
        Digit string of the requested length

    Raises:
        ValueError: If length is negative
        RandomnessUnavailableError: If the OS random source fails
    """
    if length < 0:
        raise ValueError("OTP length cannot be negative")

    try:
        return ''.join(DIGITS[secrets.randbelow(len(DIGITS))] for _ in range(length))
    except (OSError, NotImplementedError) as e:
        raise RandomnessUnavailableError(f"Secure random source failed: {e}") from e


def codes_match(expected: str, submitted: str) -> bool:
    """
    Compare two codes in constant time.

    Running time does not depend on the position of the first differing
    character.
    """
    return hmac.compare_digest(expected.encode(), submitted.encode())

"""
OTP Auth Errors
===============
Closed set of error codes and the exceptions that carry them.

Callers may catch a specific exception class or match on ``err.code``.
"""

from enum import Enum
from typing import Optional


class OTPErrorCode(str, Enum):
    """Every failure the OTP core can report."""
    INVALID_PHONE_NUMBER = "invalid_phone_number"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    RANDOMNESS_UNAVAILABLE = "randomness_unavailable"
    INVALID_OTP = "invalid_otp"
    OTP_EXPIRED = "otp_expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    CHALLENGE_NOT_FOUND = "challenge_not_found"
    TOKEN_ISSUANCE_FAILED = "token_issuance_failed"
    STORE_UNAVAILABLE = "store_unavailable"
    CONFIGURATION_ERROR = "configuration_error"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"


class OTPAuthError(Exception):
    """Base exception for the OTP auth core."""

    code: OTPErrorCode
    default_message = "OTP authentication failed"
    transient = False

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code.value, "message": self.message}


class InvalidPhoneNumberError(OTPAuthError):
    code = OTPErrorCode.INVALID_PHONE_NUMBER
    default_message = "Invalid phone number format"


class RateLimitExceededError(OTPAuthError):
    """Raised before a code is generated when the window quota is used up."""
    code = OTPErrorCode.RATE_LIMIT_EXCEEDED
    default_message = "Too many OTP requests. Wait and try again."

    def __init__(self, message: Optional[str] = None, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class RandomnessUnavailableError(OTPAuthError):
    code = OTPErrorCode.RANDOMNESS_UNAVAILABLE
    default_message = "Secure random source unavailable"


class InvalidOTPError(OTPAuthError):
    code = OTPErrorCode.INVALID_OTP
    default_message = "Invalid OTP"


class OTPExpiredError(OTPAuthError):
    code = OTPErrorCode.OTP_EXPIRED
    default_message = "OTP has expired. Request a new code."


class TooManyAttemptsError(OTPAuthError):
    code = OTPErrorCode.TOO_MANY_ATTEMPTS
    default_message = "Too many OTP attempts. Request a new code."


class ChallengeNotFoundError(OTPAuthError):
    """No live challenge for the phone. Reported to callers as OTPExpiredError."""
    code = OTPErrorCode.CHALLENGE_NOT_FOUND
    default_message = "OTP challenge not found"


class TokenIssuanceFailedError(OTPAuthError):
    code = OTPErrorCode.TOKEN_ISSUANCE_FAILED
    default_message = "Failed to issue session token"


class StoreUnavailableError(OTPAuthError):
    """Cache backend timed out or failed. Callers decide whether to retry."""
    code = OTPErrorCode.STORE_UNAVAILABLE
    default_message = "OTP store temporarily unavailable"
    transient = True

    def __init__(self, message: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class ConfigurationError(OTPAuthError):
    code = OTPErrorCode.CONFIGURATION_ERROR
    default_message = "Invalid OTP configuration"


class InvalidTokenError(OTPAuthError):
    code = OTPErrorCode.INVALID_TOKEN
    default_message = "Invalid token"


class TokenExpiredError(InvalidTokenError):
    code = OTPErrorCode.TOKEN_EXPIRED
    default_message = "Token expired"

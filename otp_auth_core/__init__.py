"""
OTP Auth Core
=============
Phone-number authentication by one-time passcode: code generation,
expiring challenge storage, attempt-limited verification and windowed
issuance rate limiting.
"""

__version__ = "0.1.0"

# Config
from otp_auth_core.config import OTPAuthConfig, SessionConfig, RedisConfig

# Errors
from otp_auth_core.errors import (
    OTPErrorCode,
    OTPAuthError,
    InvalidPhoneNumberError,
    RateLimitExceededError,
    RandomnessUnavailableError,
    InvalidOTPError,
    OTPExpiredError,
    TooManyAttemptsError,
    ChallengeNotFoundError,
    TokenIssuanceFailedError,
    StoreUnavailableError,
    ConfigurationError,
    InvalidTokenError,
    TokenExpiredError,
)

# Validation
from otp_auth_core.validation import validate_phone, is_valid_phone, validate_otp_code

# Cache backends
from otp_auth_core.store import KeyValueCache, InMemoryCache, RedisCache

# Rate Limiting
from otp_auth_core.rate_limit import FixedWindowRateLimiter, RateLimitInfo, RateLimitResult

# OTP
from otp_auth_core.otp import OTPChallenge, OTPIssued, OTPStore, generate_otp, codes_match

# Identity
from otp_auth_core.identity import Identity, IdentityPage, IdentityStore, InMemoryIdentityStore

# Sessions
from otp_auth_core.session import (
    TokenIssuer,
    JWTTokenIssuer,
    SessionClaims,
    SessionIssuer,
    AuthenticatedSession,
)

# Notifications
from otp_auth_core.notifications import (
    NotificationSink,
    LogNotificationSink,
    RecordingNotificationSink,
)

# Service
from otp_auth_core.service import OTPAuthService

# Logging
from otp_auth_core.logging_config import configure_logging, mask_phone

__all__ = [
    # Config
    "OTPAuthConfig",
    "SessionConfig",
    "RedisConfig",
    # Errors
    "OTPErrorCode",
    "OTPAuthError",
    "InvalidPhoneNumberError",
    "RateLimitExceededError",
    "RandomnessUnavailableError",
    "InvalidOTPError",
    "OTPExpiredError",
    "TooManyAttemptsError",
    "ChallengeNotFoundError",
    "TokenIssuanceFailedError",
    "StoreUnavailableError",
    "ConfigurationError",
    "InvalidTokenError",
    "TokenExpiredError",
    # Validation
    "validate_phone",
    "is_valid_phone",
    "validate_otp_code",
    # Cache backends
    "KeyValueCache",
    "InMemoryCache",
    "RedisCache",
    # Rate Limiting
    "FixedWindowRateLimiter",
    "RateLimitInfo",
    "RateLimitResult",
    # OTP
    "OTPChallenge",
    "OTPIssued",
    "OTPStore",
    "generate_otp",
    "codes_match",
    # Identity
    "Identity",
    "IdentityPage",
    "IdentityStore",
    "InMemoryIdentityStore",
    # Sessions
    "TokenIssuer",
    "JWTTokenIssuer",
    "SessionClaims",
    "SessionIssuer",
    "AuthenticatedSession",
    # Notifications
    "NotificationSink",
    "LogNotificationSink",
    "RecordingNotificationSink",
    # Service
    "OTPAuthService",
    # Logging
    "configure_logging",
    "mask_phone",
]

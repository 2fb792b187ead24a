"""
Configuration
=============
Settings for the OTP engine, session tokens and the Redis backend.

Defaults are read from the environment each time a config is created.
Durations in the environment are given in minutes; the dataclasses hold
seconds.
"""

import os
from dataclasses import dataclass, field

from .errors import ConfigurationError


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, ""))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, ""))
    except ValueError:
        return default


@dataclass
class OTPAuthConfig:
    """Configuration for OTP issuance and verification."""
    otp_length: int = field(default_factory=lambda: _env_int("OTP_LENGTH", 6))
    otp_expiry_seconds: int = field(
        default_factory=lambda: _env_int("OTP_EXPIRY_MINUTES", 2) * 60
    )
    max_attempts: int = field(default_factory=lambda: _env_int("OTP_MAX_ATTEMPTS", 3))
    rate_limit_window_seconds: int = field(
        default_factory=lambda: _env_int("OTP_RATE_LIMIT_MINUTES", 10) * 60
    )
    max_requests_per_window: int = field(
        default_factory=lambda: _env_int("OTP_MAX_REQUESTS", 3)
    )
    store_timeout_seconds: float = field(
        default_factory=lambda: _env_float("OTP_STORE_TIMEOUT_SECONDS", 3.0)
    )

    @classmethod
    def from_env(cls) -> "OTPAuthConfig":
        return cls()

    def validate(self) -> "OTPAuthConfig":
        """Raise ConfigurationError if any setting is unusable."""
        checks = {
            "otp_length": self.otp_length,
            "otp_expiry_seconds": self.otp_expiry_seconds,
            "max_attempts": self.max_attempts,
            "rate_limit_window_seconds": self.rate_limit_window_seconds,
            "max_requests_per_window": self.max_requests_per_window,
            "store_timeout_seconds": self.store_timeout_seconds,
        }
        for name, value in checks.items():
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")
        return self


@dataclass
class SessionConfig:
    """Configuration for session token signing."""
    jwt_secret: str = field(
        default_factory=lambda: os.environ.get("JWT_SECRET", "")
    )
    jwt_expiry_hours: int = field(default_factory=lambda: _env_int("JWT_EXPIRY_HOURS", 24))


@dataclass
class RedisConfig:
    """Connection settings for the Redis cache backend."""
    host: str = field(default_factory=lambda: os.environ.get("REDIS_HOST", "localhost"))
    port: int = field(default_factory=lambda: _env_int("REDIS_PORT", 6379))
    password: str = field(default_factory=lambda: os.environ.get("REDIS_PASSWORD", ""))
    db: int = field(default_factory=lambda: _env_int("REDIS_DB", 0))

    @property
    def url(self) -> str:
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"

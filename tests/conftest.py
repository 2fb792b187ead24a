"""
Shared fixtures for otp-auth-core tests.
"""

import pytest


class FakeClock:
    """Manually advanced time source in epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


PHONE = "+14155550100"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    from otp_auth_core.store import InMemoryCache

    return InMemoryCache(clock=clock)


@pytest.fixture
def config():
    from otp_auth_core.config import OTPAuthConfig

    return OTPAuthConfig(
        otp_length=6,
        otp_expiry_seconds=120,
        max_attempts=3,
        rate_limit_window_seconds=600,
        max_requests_per_window=3,
        store_timeout_seconds=1.0,
    )


@pytest.fixture
def identity_store():
    from otp_auth_core.identity import InMemoryIdentityStore

    return InMemoryIdentityStore()


@pytest.fixture
def token_issuer():
    from otp_auth_core.session import JWTTokenIssuer

    return JWTTokenIssuer(secret="test-secret", expiry_hours=24)


@pytest.fixture
def sink():
    from otp_auth_core.notifications import RecordingNotificationSink

    return RecordingNotificationSink()


@pytest.fixture
def service(cache, identity_store, token_issuer, sink, config, clock):
    from otp_auth_core.service import OTPAuthService
    from otp_auth_core.session import SessionIssuer

    return OTPAuthService.from_cache(
        cache,
        identity_store=identity_store,
        session_issuer=SessionIssuer(token_issuer),
        notification_sink=sink,
        config=config,
        clock=clock,
    )

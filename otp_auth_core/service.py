"""
OTP Auth Service
================
Issues OTP challenges and verifies them into authenticated sessions.

Per-phone state lives in the cache behind OTPStore and
FixedWindowRateLimiter. The service itself only holds a lock registry
that serializes requests for the same phone within this process.

Challenge states (derived, not stored):

    NoChallenge -> Pending -> Verified | Expired | AttemptsExhausted

A wrong code that brings the attempt count to ``max_attempts`` ends the
challenge with TooManyAttemptsError.
"""

import time
from typing import Callable, Optional

import structlog

from .config import OTPAuthConfig
from .errors import (
    ChallengeNotFoundError,
    InvalidOTPError,
    OTPAuthError,
    OTPExpiredError,
    RateLimitExceededError,
    TooManyAttemptsError,
)
from .identity import IdentityStore
from .locks import KeyedLock
from .logging_config import mask_phone
from .notifications import LogNotificationSink, NotificationSink
from .otp.codes import codes_match, generate_otp
from .otp.models import OTPIssued
from .otp.store import OTPStore
from .rate_limit.fixed_window import FixedWindowRateLimiter
from .session.issuer import AuthenticatedSession, SessionIssuer
from .store.base import KeyValueCache
from .validation import validate_otp_code, validate_phone

logger = structlog.get_logger(__name__)


class OTPAuthService:
    """Phone-number authentication by one-time passcode."""

    def __init__(
        self,
        otp_store: OTPStore,
        rate_limiter: FixedWindowRateLimiter,
        identity_store: IdentityStore,
        session_issuer: SessionIssuer,
        notification_sink: Optional[NotificationSink] = None,
        config: Optional[OTPAuthConfig] = None,
    ):
        """
        Code length, expiry, attempt limit, quota and window are taken from
        ``config`` on every request. Cache deadlines belong to ``otp_store``
        and ``rate_limiter``; ``from_cache`` sets both from
        ``config.store_timeout_seconds``.
        """
        self.config = (config or OTPAuthConfig()).validate()
        self.otp_store = otp_store
        self.rate_limiter = rate_limiter
        self.identity_store = identity_store
        self.session_issuer = session_issuer
        self.notification_sink = notification_sink or LogNotificationSink()
        self._locks = KeyedLock()

    @classmethod
    def from_cache(
        cls,
        cache: KeyValueCache,
        identity_store: IdentityStore,
        session_issuer: SessionIssuer,
        notification_sink: Optional[NotificationSink] = None,
        config: Optional[OTPAuthConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> "OTPAuthService":
        """Build the store and rate limiter over one shared cache."""
        config = (config or OTPAuthConfig()).validate()
        return cls(
            otp_store=OTPStore(cache, clock=clock, timeout=config.store_timeout_seconds),
            rate_limiter=FixedWindowRateLimiter(
                cache,
                max_requests=config.max_requests_per_window,
                window_seconds=config.rate_limit_window_seconds,
                timeout=config.store_timeout_seconds,
            ),
            identity_store=identity_store,
            session_issuer=session_issuer,
            notification_sink=notification_sink,
            config=config,
        )

    async def send_otp(self, raw_phone: str) -> OTPIssued:
        """
        Issue a new challenge for a phone number.

        Any outstanding challenge for the phone is replaced.

        Raises:
            InvalidPhoneNumberError: If the phone number is malformed
            RateLimitExceededError: If the window quota is used up
            RandomnessUnavailableError: If no secure code can be generated
            StoreUnavailableError: If the cache fails or times out
        """
        phone = validate_phone(raw_phone)

        async with self._locks.hold(phone):
            quota = await self.rate_limiter.check(phone, self.config.max_requests_per_window)
            if not quota.allowed:
                logger.warning(
                    "OTP rate limit exceeded",
                    phone=mask_phone(phone),
                    result=quota.result.value,
                    count=quota.count,
                    limit=quota.limit,
                )
                raise RateLimitExceededError(retry_after=quota.retry_after)

            code = generate_otp(self.config.otp_length)
            challenge = await self.otp_store.put(phone, code, self.config.otp_expiry_seconds)
            count = await self.rate_limiter.increment(phone, self.config.rate_limit_window_seconds)

        await self._notify(phone, code)
        logger.info("OTP sent", phone=mask_phone(phone), requests_in_window=count)

        return OTPIssued(phone=phone, expires_at=challenge.expires_at, requests_in_window=count)

    async def verify_otp(self, raw_phone: str, raw_code: str) -> AuthenticatedSession:
        """
        Verify a submitted code and open a session.

        Raises:
            InvalidPhoneNumberError: If the phone number is malformed
            InvalidOTPError: If the code is malformed or wrong
            OTPExpiredError: If there is no live challenge
            TooManyAttemptsError: If the challenge ran out of attempts
            TokenIssuanceFailedError: If no session token could be issued
            StoreUnavailableError: If the cache fails or times out
        """
        phone = validate_phone(raw_phone)
        code = validate_otp_code(raw_code, self.config.otp_length)

        async with self._locks.hold(phone):
            challenge = await self.otp_store.get(phone)
            if challenge is None:
                logger.info("OTP verification without live challenge", phone=mask_phone(phone))
                raise OTPExpiredError()

            if challenge.attempts >= self.config.max_attempts:
                await self.otp_store.delete(phone)
                logger.warning("OTP attempts exhausted", phone=mask_phone(phone))
                raise TooManyAttemptsError()

            if not codes_match(challenge.code, code):
                raise await self._count_failed_attempt(phone)

            await self.otp_store.delete(phone)
            identity = await self.identity_store.get_or_create(phone)

        session = self.session_issuer.open_session(identity)
        logger.info("OTP verified", phone=mask_phone(phone), identity_id=identity.id)
        return session

    async def _count_failed_attempt(self, phone: str) -> OTPAuthError:
        """Record a wrong code and return the error to raise for it."""
        try:
            attempts = await self.otp_store.increment_attempts(phone)
        except ChallengeNotFoundError as e:
            # Lapsed between read and increment
            raise OTPExpiredError() from e

        if attempts >= self.config.max_attempts:
            await self.otp_store.delete(phone)
            logger.warning(
                "OTP attempts exhausted",
                phone=mask_phone(phone),
                attempts=attempts,
            )
            return TooManyAttemptsError()

        logger.info(
            "Invalid OTP attempt",
            phone=mask_phone(phone),
            remaining=self.config.max_attempts - attempts,
        )
        return InvalidOTPError()

    async def _notify(self, phone: str, code: str) -> None:
        try:
            await self.notification_sink.emit(phone, code)
        except Exception as e:
            logger.error("OTP notification failed", phone=mask_phone(phone), error=str(e))

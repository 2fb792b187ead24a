"""
OTP Store
=========
Holds at most one outstanding challenge per phone number.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog
from pydantic import ValidationError

from ..errors import ChallengeNotFoundError
from ..logging_config import mask_phone
from ..store.base import DEFAULT_OPERATION_TIMEOUT, KeyValueCache, with_deadline
from .models import OTPChallenge

logger = structlog.get_logger(__name__)


class OTPStore:
    """
    Challenge storage over a KeyValueCache.

    Expiry is enforced twice: the cache drops the key after its TTL, and
    ``get`` also compares the stored ``expires_at`` with the clock in case
    the backend has not evicted it yet.
    """

    def __init__(
        self,
        cache: KeyValueCache,
        clock: Callable[[], float] = time.time,
        timeout: float = DEFAULT_OPERATION_TIMEOUT,
    ):
        """
        Args:
            cache: Shared key-value cache
            clock: Wall-clock source in epoch seconds
            timeout: Deadline for each cache operation
        """
        self.cache = cache
        self.clock = clock
        self.timeout = timeout

    def get_key(self, phone: str) -> str:
        return f"otp:{phone}"

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    async def put(self, phone: str, code: str, ttl_seconds: float) -> OTPChallenge:
        """
        Store a new challenge, replacing any existing one.

        Attempts of the replaced challenge are discarded.
        """
        issued_at = self.now()
        challenge = OTPChallenge(
            phone=phone,
            code=code,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=ttl_seconds),
            attempts=0,
        )
        await with_deadline(
            self.cache.set_hash(self.get_key(phone), challenge.to_mapping(), ttl_seconds),
            self.timeout,
            "otp.put",
        )
        logger.info("OTP challenge stored", phone=mask_phone(phone), expires_in=ttl_seconds)
        return challenge

    async def get(self, phone: str) -> Optional[OTPChallenge]:
        """Return the live challenge for ``phone``, or None if absent or lapsed."""
        mapping = await with_deadline(
            self.cache.get_hash(self.get_key(phone)), self.timeout, "otp.get"
        )
        if mapping is None:
            return None

        try:
            challenge = OTPChallenge.from_mapping(mapping)
        except ValidationError as e:
            logger.error("Corrupt OTP challenge discarded", phone=mask_phone(phone), error=str(e))
            await self.delete(phone)
            return None

        if challenge.is_expired(self.now()):
            logger.info("OTP challenge lapsed", phone=mask_phone(phone))
            await self.delete(phone)
            return None

        return challenge

    async def delete(self, phone: str) -> None:
        """Remove the challenge for ``phone``. Idempotent."""
        await with_deadline(self.cache.delete(self.get_key(phone)), self.timeout, "otp.delete")

    async def increment_attempts(self, phone: str) -> int:
        """
        Atomically count one failed attempt, keeping the remaining TTL.

        Returns:
            The new attempt count

        Raises:
            ChallengeNotFoundError: If no challenge is stored for ``phone``
        """
        attempts = await with_deadline(
            self.cache.increment_hash_field(self.get_key(phone), "attempts"),
            self.timeout,
            "otp.increment_attempts",
        )
        if attempts is None:
            raise ChallengeNotFoundError()
        return attempts

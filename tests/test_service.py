"""
Tests for OTPAuthService issuance and verification.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

PHONE = "+14155550100"


def wrong_code(code: str) -> str:
    return "".join(str((int(ch) + 1) % 10) for ch in code)


class TestSendOTP:
    """Tests for the issuance path."""

    @pytest.mark.asyncio
    async def test_send_otp_emits_code(self, service, sink):
        """Issuance hands a numeric code of the configured length to the sink."""
        issued = await service.send_otp(PHONE)

        code = sink.last_code(PHONE)
        assert len(code) == 6
        assert code.isdigit()
        assert issued.phone == PHONE
        assert issued.requests_in_window == 1

    @pytest.mark.asyncio
    async def test_send_otp_normalizes_phone(self, service, sink):
        """Whitespace around the phone number is ignored."""
        issued = await service.send_otp(f"  {PHONE}  ")

        assert issued.phone == PHONE
        assert sink.sent[0][0] == PHONE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["14155550100", "+04155550100", "+123", "+1415..55501", "+1415--55501"])
    async def test_invalid_phone_has_no_side_effects(self, service, sink, cache, raw):
        """Rejected phones create no challenge and no rate-limit entry."""
        from otp_auth_core.errors import InvalidPhoneNumberError

        with pytest.raises(InvalidPhoneNumberError):
            await service.send_otp(raw)

        assert sink.sent == []
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_rate_limit_exceeded(self, service, sink):
        """The request after the window quota is refused without a code."""
        from otp_auth_core.errors import RateLimitExceededError

        for _ in range(3):
            await service.send_otp(PHONE)

        with pytest.raises(RateLimitExceededError) as exc_info:
            await service.send_otp(PHONE)

        assert exc_info.value.retry_after == 600
        assert len(sink.sent) == 3

    @pytest.mark.asyncio
    async def test_rate_limit_resets_after_window(self, service, clock):
        """A request after a quiet window succeeds and restarts the count."""
        for _ in range(3):
            await service.send_otp(PHONE)

        clock.advance(601)
        issued = await service.send_otp(PHONE)

        assert issued.requests_in_window == 1

    @pytest.mark.asyncio
    async def test_rate_limit_is_per_phone(self, service):
        """One phone's quota does not affect another."""
        for _ in range(3):
            await service.send_otp(PHONE)

        issued = await service.send_otp("+447911123456")

        assert issued.requests_in_window == 1

    @pytest.mark.asyncio
    async def test_direct_constructor_uses_configured_quota(self, cache, identity_store, token_issuer, sink, clock):
        """The quota comes from the service config, not the limiter's default."""
        from otp_auth_core.config import OTPAuthConfig
        from otp_auth_core.errors import RateLimitExceededError
        from otp_auth_core.otp import OTPStore
        from otp_auth_core.rate_limit import FixedWindowRateLimiter
        from otp_auth_core.service import OTPAuthService
        from otp_auth_core.session import SessionIssuer

        service = OTPAuthService(
            OTPStore(cache, clock=clock),
            FixedWindowRateLimiter(cache),
            identity_store,
            SessionIssuer(token_issuer),
            sink,
            OTPAuthConfig(max_requests_per_window=5, rate_limit_window_seconds=60),
        )

        for _ in range(5):
            await service.send_otp(PHONE)

        with pytest.raises(RateLimitExceededError) as exc_info:
            await service.send_otp(PHONE)

        assert exc_info.value.retry_after == 60
        assert len(sink.sent) == 5

    @pytest.mark.asyncio
    async def test_new_issuance_replaces_challenge(self, service, sink):
        """Only the newest code verifies."""
        from otp_auth_core.errors import InvalidOTPError

        await service.send_otp(PHONE)
        first = sink.last_code(PHONE)
        await service.send_otp(PHONE)
        second = sink.last_code(PHONE)

        if first != second:
            with pytest.raises(InvalidOTPError):
                await service.verify_otp(PHONE, first)

        session = await service.verify_otp(PHONE, second)
        assert session.token

    @pytest.mark.asyncio
    async def test_randomness_failure_propagates(self, service, cache, monkeypatch):
        """A failing random source stops issuance before anything is stored."""
        from otp_auth_core.errors import RandomnessUnavailableError

        def broken(_):
            raise OSError("entropy pool gone")

        monkeypatch.setattr("otp_auth_core.otp.codes.secrets.randbelow", broken)

        with pytest.raises(RandomnessUnavailableError):
            await service.send_otp(PHONE)

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_sink_failure_not_propagated(self, cache, identity_store, token_issuer, config, clock):
        """Delivery errors are logged, not raised."""
        from otp_auth_core.notifications import NotificationSink
        from otp_auth_core.service import OTPAuthService
        from otp_auth_core.session import SessionIssuer

        sink = AsyncMock(spec=NotificationSink)
        sink.emit.side_effect = RuntimeError("gateway down")
        service = OTPAuthService.from_cache(
            cache, identity_store, SessionIssuer(token_issuer), sink, config, clock=clock
        )

        issued = await service.send_otp(PHONE)

        assert issued.phone == PHONE
        sink.emit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_issuance_respects_limit(self, service, sink):
        """Concurrent requests for one phone never exceed the quota."""
        from otp_auth_core.errors import RateLimitExceededError

        results = await asyncio.gather(
            *(service.send_otp(PHONE) for _ in range(10)),
            return_exceptions=True,
        )

        issued = [r for r in results if not isinstance(r, Exception)]
        refused = [r for r in results if isinstance(r, RateLimitExceededError)]
        assert len(issued) == 3
        assert len(refused) == 7
        assert len(sink.sent) == 3


class TestVerifyOTP:
    """Tests for the verification path."""

    @pytest.mark.asyncio
    async def test_full_flow(self, service, sink, token_issuer):
        """Wrong code is rejected, right code yields a session."""
        from otp_auth_core.errors import InvalidOTPError

        await service.send_otp(PHONE)
        code = sink.last_code(PHONE)

        with pytest.raises(InvalidOTPError):
            await service.verify_otp(PHONE, wrong_code(code))

        session = await service.verify_otp(PHONE, code)

        assert session.token
        assert session.identity.phone == PHONE
        assert token_issuer.decode(session.token).phone_number == PHONE

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, service, sink):
        """A second verification with the same code finds no challenge."""
        from otp_auth_core.errors import OTPExpiredError

        await service.send_otp(PHONE)
        code = sink.last_code(PHONE)
        await service.verify_otp(PHONE, code)

        with pytest.raises(OTPExpiredError):
            await service.verify_otp(PHONE, code)

    @pytest.mark.asyncio
    async def test_existing_identity_reused(self, service, sink, identity_store):
        """Returning users keep their identity."""
        existing = await identity_store.create(PHONE)

        await service.send_otp(PHONE)
        session = await service.verify_otp(PHONE, sink.last_code(PHONE))

        assert session.identity.id == existing.id

    @pytest.mark.asyncio
    async def test_new_identity_created(self, service, sink, identity_store):
        """First-time users get a new identity."""
        await service.send_otp(PHONE)
        session = await service.verify_otp(PHONE, sink.last_code(PHONE))

        assert await identity_store.find_by_phone(PHONE) == session.identity

    @pytest.mark.asyncio
    async def test_no_challenge(self, service):
        """Verifying without issuance reports expiry."""
        from otp_auth_core.errors import OTPExpiredError

        with pytest.raises(OTPExpiredError):
            await service.verify_otp(PHONE, "123456")

    @pytest.mark.asyncio
    async def test_expired_challenge_rejects_correct_code(self, service, sink, clock):
        """A lapsed challenge fails even with the right code."""
        from otp_auth_core.errors import OTPExpiredError

        await service.send_otp(PHONE)
        clock.advance(121)

        with pytest.raises(OTPExpiredError):
            await service.verify_otp(PHONE, sink.last_code(PHONE))

    @pytest.mark.asyncio
    async def test_attempt_exhaustion_boundary(self, service, sink):
        """Wrong codes: InvalidOTP, InvalidOTP, then TooManyAttempts and the challenge is gone."""
        from otp_auth_core.errors import InvalidOTPError, OTPExpiredError, TooManyAttemptsError

        await service.send_otp(PHONE)
        code = sink.last_code(PHONE)
        bad = wrong_code(code)

        with pytest.raises(InvalidOTPError):
            await service.verify_otp(PHONE, bad)
        with pytest.raises(InvalidOTPError):
            await service.verify_otp(PHONE, bad)
        with pytest.raises(TooManyAttemptsError):
            await service.verify_otp(PHONE, bad)

        assert await service.otp_store.get(PHONE) is None
        with pytest.raises(OTPExpiredError):
            await service.verify_otp(PHONE, code)

    @pytest.mark.asyncio
    async def test_stored_attempts_at_limit(self, service, sink):
        """A challenge already at the limit is deleted on the next submission."""
        from otp_auth_core.errors import TooManyAttemptsError

        await service.send_otp(PHONE)
        for _ in range(3):
            await service.otp_store.increment_attempts(PHONE)

        with pytest.raises(TooManyAttemptsError):
            await service.verify_otp(PHONE, sink.last_code(PHONE))

        assert await service.otp_store.get(PHONE) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["12345", "1234567", "12a456", ""])
    async def test_malformed_code_consumes_no_attempt(self, service, raw):
        """Malformed codes are rejected before the store is touched."""
        from otp_auth_core.errors import InvalidOTPError

        await service.send_otp(PHONE)

        with pytest.raises(InvalidOTPError):
            await service.verify_otp(PHONE, raw)

        assert (await service.otp_store.get(PHONE)).attempts == 0

    @pytest.mark.asyncio
    async def test_invalid_phone(self, service):
        """Malformed phones are rejected on verification too."""
        from otp_auth_core.errors import InvalidPhoneNumberError

        with pytest.raises(InvalidPhoneNumberError):
            await service.verify_otp("+0123", "123456")

    @pytest.mark.asyncio
    async def test_challenge_vanishing_mid_verification(self, service, sink, monkeypatch):
        """A challenge lapsing between read and increment reports expiry."""
        from otp_auth_core.errors import ChallengeNotFoundError, OTPExpiredError

        await service.send_otp(PHONE)
        code = sink.last_code(PHONE)

        async def vanished(phone):
            raise ChallengeNotFoundError()

        monkeypatch.setattr(service.otp_store, "increment_attempts", vanished)

        with pytest.raises(OTPExpiredError):
            await service.verify_otp(PHONE, wrong_code(code))

    @pytest.mark.asyncio
    async def test_token_failure(self, cache, identity_store, sink, config, clock):
        """Token issuer errors surface as TokenIssuanceFailedError."""
        from otp_auth_core.errors import TokenIssuanceFailedError
        from otp_auth_core.service import OTPAuthService
        from otp_auth_core.session import SessionIssuer, TokenIssuer

        class BrokenIssuer(TokenIssuer):
            def issue(self, identity_id, phone):
                raise RuntimeError("no key")

        service = OTPAuthService.from_cache(
            cache, identity_store, SessionIssuer(BrokenIssuer()), sink, config, clock=clock
        )
        await service.send_otp(PHONE)

        with pytest.raises(TokenIssuanceFailedError):
            await service.verify_otp(PHONE, sink.last_code(PHONE))

    @pytest.mark.asyncio
    async def test_concurrent_wrong_codes_all_counted(self, service, sink):
        """Parallel wrong guesses cannot exceed the attempt limit."""
        from otp_auth_core.errors import InvalidOTPError, OTPExpiredError, TooManyAttemptsError

        await service.send_otp(PHONE)
        bad = wrong_code(sink.last_code(PHONE))

        results = await asyncio.gather(
            *(service.verify_otp(PHONE, bad) for _ in range(6)),
            return_exceptions=True,
        )

        kinds = [type(r) for r in results]
        assert kinds.count(InvalidOTPError) == 2
        assert kinds.count(TooManyAttemptsError) == 1
        assert kinds.count(OTPExpiredError) == 3

    @pytest.mark.asyncio
    async def test_store_timeout_surfaces(self, identity_store, token_issuer, sink, config, clock):
        """A stalled cache raises StoreUnavailableError instead of hanging."""
        from otp_auth_core.errors import StoreUnavailableError
        from otp_auth_core.service import OTPAuthService
        from otp_auth_core.session import SessionIssuer
        from otp_auth_core.store import InMemoryCache

        class StalledCache(InMemoryCache):
            async def get_counter(self, key):
                await asyncio.sleep(10)
                return 0

        config.store_timeout_seconds = 0.05
        service = OTPAuthService.from_cache(
            StalledCache(clock=clock), identity_store, SessionIssuer(token_issuer), sink, config,
            clock=clock,
        )

        with pytest.raises(StoreUnavailableError):
            await service.send_otp(PHONE)

        assert sink.sent == []


class TestOTPCodeLength:
    """Issuance and verification honour a non-default code length."""

    @pytest.mark.asyncio
    async def test_eight_digit_codes(self, cache, identity_store, token_issuer, sink, clock):
        from otp_auth_core.config import OTPAuthConfig
        from otp_auth_core.errors import InvalidOTPError
        from otp_auth_core.service import OTPAuthService
        from otp_auth_core.session import SessionIssuer

        config = OTPAuthConfig(otp_length=8, store_timeout_seconds=1.0)
        service = OTPAuthService.from_cache(
            cache, identity_store, SessionIssuer(token_issuer), sink, config, clock=clock
        )

        await service.send_otp(PHONE)
        code = sink.last_code(PHONE)

        assert len(code) == 8
        with pytest.raises(InvalidOTPError):
            await service.verify_otp(PHONE, code[:6])
        assert (await service.verify_otp(PHONE, code)).identity.phone == PHONE

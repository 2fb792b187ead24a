"""
Session Tokens
==============
HS256-signed session tokens carrying the identity and phone number.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

import jwt

from ..config import SessionConfig
from ..errors import InvalidTokenError, TokenExpiredError

ALGORITHM = "HS256"


@dataclass
class SessionClaims:
    """Decoded claims of a valid session token."""
    user_id: Union[int, str]
    phone_number: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer(ABC):
    """Produces an opaque signed token for an identity."""

    @abstractmethod
    def issue(self, identity_id: Union[int, str], phone: str) -> str:
        """Return a signed token."""


class JWTTokenIssuer(TokenIssuer):
    """Issues and validates HS256 JWTs with a shared secret."""

    def __init__(
        self,
        secret: str,
        expiry_hours: int = 24,
        now: Optional[Callable[[], datetime]] = None,
    ):
        if not secret:
            raise ValueError("Token secret cannot be empty")
        self.secret = secret
        self.expiry = timedelta(hours=expiry_hours)
        self._now = now or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_config(cls, config: Optional[SessionConfig] = None) -> "JWTTokenIssuer":
        config = config or SessionConfig()
        return cls(config.jwt_secret, config.jwt_expiry_hours)

    def issue(self, identity_id: Union[int, str], phone: str) -> str:
        now = self._now()
        payload = {
            "user_id": identity_id,
            "phone_number": phone,
            "iat": now,
            "nbf": now,
            "exp": now + self.expiry,
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> SessionClaims:
        """
        Validate a token and return its claims.

        Raises:
            TokenExpiredError: If the token is past its expiry
            InvalidTokenError: For any other signature or format problem
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat", "user_id", "phone_number"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

        return SessionClaims(
            user_id=payload["user_id"],
            phone_number=payload["phone_number"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

"""
Session Issuer
==============
Turns a verified identity into an authenticated session.
"""

from dataclasses import dataclass
from typing import Union

import structlog

from ..errors import TokenIssuanceFailedError
from ..identity import Identity
from .tokens import TokenIssuer

logger = structlog.get_logger(__name__)


@dataclass
class AuthenticatedSession:
    """Outcome of a successful verification."""
    token: str
    identity: Identity

    def to_dict(self) -> dict:
        return {"token": self.token, "user": self.identity.to_dict()}


class SessionIssuer:
    """Adapter over a TokenIssuer. Failures are wrapped, never retried."""

    def __init__(self, token_issuer: TokenIssuer):
        self.token_issuer = token_issuer

    def issue(self, identity_id: Union[int, str], phone: str) -> str:
        try:
            token = self.token_issuer.issue(identity_id, phone)
        except Exception as e:
            logger.error("Token issuance failed", identity_id=identity_id, error=str(e))
            raise TokenIssuanceFailedError() from e

        if not token:
            logger.error("Token issuer returned an empty token", identity_id=identity_id)
            raise TokenIssuanceFailedError()

        return token

    def open_session(self, identity: Identity) -> AuthenticatedSession:
        return AuthenticatedSession(
            token=self.issue(identity.id, identity.phone),
            identity=identity,
        )

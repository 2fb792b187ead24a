"""
Sessions
========
Token issuance after a successful OTP verification.
"""

from .tokens import TokenIssuer, JWTTokenIssuer, SessionClaims
from .issuer import SessionIssuer, AuthenticatedSession

__all__ = [
    "TokenIssuer",
    "JWTTokenIssuer",
    "SessionClaims",
    "SessionIssuer",
    "AuthenticatedSession",
]

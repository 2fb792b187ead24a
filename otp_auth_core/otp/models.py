"""
OTP Models
==========
Data models for outstanding OTP challenges and issuance results.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict

from pydantic import BaseModel, Field


class OTPChallenge(BaseModel):
    """The single outstanding code for a phone number."""
    phone: str
    code: str
    issued_at: datetime
    expires_at: datetime
    attempts: int = Field(default=0, ge=0)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_mapping(self) -> Dict[str, str]:
        """Flatten to string fields for hash storage."""
        return {
            "phone": self.phone,
            "code": self.code,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "attempts": str(self.attempts),
        }

    @classmethod
    def from_mapping(cls, mapping: Dict[str, str]) -> "OTPChallenge":
        return cls.model_validate(mapping)


@dataclass
class OTPIssued:
    """Result of a successful issuance. Never carries the code."""
    phone: str
    expires_at: datetime
    requests_in_window: int

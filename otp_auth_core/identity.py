"""
Identity Store
==============
Lookup and creation of the user record behind a phone number.

The OTP core only needs ``find_by_phone`` and ``create``; durable
implementations live with the embedding service. InMemoryIdentityStore
serves tests and single-process use.
"""

import asyncio
import itertools
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

import structlog

from .logging_config import mask_phone

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class Identity:
    """A user record keyed by phone number."""
    id: Union[int, str]
    phone: str
    registered_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "phone_number": self.phone,
            "registered_at": self.registered_at.isoformat(),
        }


@dataclass
class IdentityPage:
    """One page of a filtered identity listing."""
    items: List[Identity] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


class IdentityStore(ABC):
    """Durable identity lookup/creation."""

    @abstractmethod
    async def find_by_phone(self, phone: str) -> Optional[Identity]:
        """Return the identity for ``phone``, or None."""

    @abstractmethod
    async def create(self, phone: str) -> Identity:
        """Create and return a new identity for ``phone``."""

    async def get_or_create(self, phone: str) -> Identity:
        identity = await self.find_by_phone(phone)
        if identity is None:
            identity = await self.create(phone)
        return identity


class InMemoryIdentityStore(IdentityStore):
    """Dictionary-backed identities with sequential integer IDs."""

    def __init__(self):
        self._by_phone: Dict[str, Identity] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def find_by_phone(self, phone: str) -> Optional[Identity]:
        return self._by_phone.get(phone)

    async def create(self, phone: str) -> Identity:
        async with self._lock:
            existing = self._by_phone.get(phone)
            if existing is not None:
                return existing
            identity = Identity(
                id=next(self._ids),
                phone=phone,
                registered_at=datetime.now(timezone.utc),
            )
            self._by_phone[phone] = identity
        logger.info("Identity created", identity_id=identity.id, phone=mask_phone(phone))
        return identity

    async def get_by_id(self, identity_id: Union[int, str]) -> Optional[Identity]:
        return next((i for i in self._by_phone.values() if i.id == identity_id), None)

    async def list_identities(
        self,
        page: int = 1,
        page_size: int = 10,
        phone_filter: str = "",
    ) -> IdentityPage:
        """
        List identities newest first.

        Args:
            page: 1-based page number
            page_size: Items per page, 1 to 100
            phone_filter: Substring the phone number must contain

        Raises:
            ValueError: If page or page_size is out of range
        """
        if page < 1:
            raise ValueError("page must be at least 1")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

        # Newest insertion first on registered_at ties
        matches = [i for i in reversed(self._by_phone.values()) if phone_filter in i.phone]
        matches.sort(key=lambda i: i.registered_at, reverse=True)

        offset = (page - 1) * page_size
        return IdentityPage(
            items=matches[offset:offset + page_size],
            total=len(matches),
            page=page,
            page_size=page_size,
        )

"""
Notification Sinks
==================
Out-of-band delivery of issued codes.

There is no SMS provider; LogNotificationSink writes the code to the
operational log instead.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

import structlog

logger = structlog.get_logger(__name__)


class NotificationSink(ABC):
    """Receives each issued code. Errors are logged by the caller, not raised."""

    @abstractmethod
    async def emit(self, phone: str, code: str) -> None:
        """Deliver ``code`` to ``phone``."""


class LogNotificationSink(NotificationSink):
    """Emits codes to the log."""

    async def emit(self, phone: str, code: str) -> None:
        logger.info("OTP issued", phone=phone, otp_code=code)


class RecordingNotificationSink(NotificationSink):
    """Keeps every emitted code in memory."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    async def emit(self, phone: str, code: str) -> None:
        self.sent.append((phone, code))

    def last_code(self, phone: str) -> str:
        for sent_phone, code in reversed(self.sent):
            if sent_phone == phone:
                return code
        raise LookupError(f"No code sent to {phone}")

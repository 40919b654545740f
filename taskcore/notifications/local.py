"""Notifiers that stay inside the process."""

import logging
from dataclasses import dataclass
from typing import Optional

from ..domain.models import EntityRef

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Writes notifications to the log. Default when no channel is configured."""

    @property
    def channel_name(self) -> str:
        return "log"

    async def notify(
        self,
        recipient_id: int,
        title: str,
        body: str,
        related: Optional[EntityRef] = None,
    ) -> None:
        suffix = f" [{related}]" if related else ""
        logger.info(f"Notify user {recipient_id}: {title} - {body}{suffix}")


@dataclass(frozen=True)
class SentNotification:
    recipient_id: int
    title: str
    body: str
    related: Optional[EntityRef] = None


class InMemoryNotifier:
    """Records notifications instead of sending them (for testing)."""

    def __init__(self) -> None:
        self.sent: list[SentNotification] = []

    @property
    def channel_name(self) -> str:
        return "memory"

    async def notify(
        self,
        recipient_id: int,
        title: str,
        body: str,
        related: Optional[EntityRef] = None,
    ) -> None:
        self.sent.append(SentNotification(recipient_id, title, body, related))

    def recipients(self) -> list[int]:
        return [n.recipient_id for n in self.sent]

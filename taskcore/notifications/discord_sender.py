"""Discord notifier implementation."""

import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from ..domain.models import EntityRef

logger = logging.getLogger(__name__)


class DiscordNotifier:
    """Posts notifications to a Discord channel via webhook."""

    def __init__(
        self,
        webhook_url: str,
        *,
        username: str = "Task Manager",
        avatar_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Discord notifier.

        Args:
            webhook_url: Discord webhook URL
            username: Bot username to display
            avatar_url: Optional avatar URL for the bot
            http_client: Optional HTTP client for testing
        """
        self._webhook_url = webhook_url
        self._username = username
        self._avatar_url = avatar_url
        self._http_client = http_client

    @property
    def channel_name(self) -> str:
        """Return channel name for this notifier."""
        return "discord"

    async def notify(
        self,
        recipient_id: int,
        title: str,
        body: str,
        related: Optional[EntityRef] = None,
    ) -> None:
        """Send notification to Discord.

        Delivery problems are logged and swallowed; a notification is never
        worth failing the caller over.
        """
        payload = self._build_payload(recipient_id, title, body, related)

        client = self._http_client or httpx.AsyncClient()
        try:
            response = await client.post(
                self._webhook_url,
                json=payload,
                timeout=10.0,
            )
            if response.status_code not in (200, 204):
                logger.warning(
                    f"Discord webhook rejected notification for user {recipient_id}: "
                    f"HTTP {response.status_code}"
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Discord notification for user {recipient_id} failed: {e}")
        finally:
            if self._http_client is None:
                await client.aclose()

    def _build_payload(
        self,
        recipient_id: int,
        title: str,
        body: str,
        related: Optional[EntityRef],
    ) -> dict:
        """Single-embed webhook payload; ``related`` picks the embed color."""
        fields = [{"name": "Recipient", "value": f"user {recipient_id}", "inline": True}]
        if related:
            fields.append({
                "name": related.entity_type.capitalize(),
                "value": f"#{related.entity_id}",
                "inline": True,
            })

        entity_type = related.entity_type if related else None
        payload = {
            "username": self._username,
            "embeds": [
                {
                    "title": title,
                    "description": body,
                    "color": _ENTITY_COLORS.get(entity_type, 0x808080),
                    "fields": fields,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            ],
        }
        if self._avatar_url:
            payload["avatar_url"] = self._avatar_url
        return payload


_ENTITY_COLORS = {
    "task": 0x3498DB,     # Blue
    "comment": 0x2ECC71,  # Green
    "client": 0xF39C12,   # Orange
    "deal": 0xE74C3C,     # Red
}

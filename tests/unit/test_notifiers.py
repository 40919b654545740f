"""Tests for notifiers."""

import logging
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
import httpx

from taskcore.domain.models import EntityRef
from taskcore.domain.protocols import Notifier
from taskcore.notifications import (
    DiscordNotifier,
    InMemoryNotifier,
    LoggingNotifier,
    SentNotification,
)


class TestDiscordNotifier:
    """Tests for DiscordNotifier."""

    @pytest.fixture
    def mock_client(self):
        """Create mock HTTP client."""
        client = AsyncMock(spec=httpx.AsyncClient)
        return client

    @pytest.fixture
    def notifier(self, mock_client) -> DiscordNotifier:
        """Create notifier with mock client."""
        return DiscordNotifier(
            webhook_url="https://discord.com/api/webhooks/123/abc",
            username="TaskBot",
            http_client=mock_client,
        )

    def test_channel_name(self, notifier):
        """Should return 'discord' as channel name."""
        assert notifier.channel_name == "discord"

    def test_satisfies_protocol(self, notifier):
        assert isinstance(notifier, Notifier)

    @pytest.mark.asyncio
    async def test_notify_posts_embed(self, notifier, mock_client):
        """Should post a webhook payload with one embed."""
        mock_response = MagicMock()
        mock_response.status_code = 204
        mock_client.post.return_value = mock_response

        await notifier.notify(2, "Task completed", "Done", EntityRef("task", 7))

        mock_client.post.assert_called_once()
        args, kwargs = mock_client.post.call_args
        assert args[0] == "https://discord.com/api/webhooks/123/abc"
        payload = kwargs["json"]
        assert payload["username"] == "TaskBot"
        [embed] = payload["embeds"]
        assert embed["title"] == "Task completed"
        assert embed["description"] == "Done"
        assert {"name": "Task", "value": "#7", "inline": True} in embed["fields"]
        assert embed["color"] == 0x3498DB

    @pytest.mark.asyncio
    async def test_avatar_included_when_set(self, mock_client):
        mock_client.post.return_value = MagicMock(status_code=200)
        notifier = DiscordNotifier(
            "https://discord.com/api/webhooks/1/x",
            avatar_url="https://example.com/bot.png",
            http_client=mock_client,
        )

        await notifier.notify(1, "t", "b")

        payload = mock_client.post.call_args.kwargs["json"]
        assert payload["avatar_url"] == "https://example.com/bot.png"

    @pytest.mark.asyncio
    async def test_http_error_is_logged_not_raised(self, notifier, mock_client, caplog):
        """Delivery failures never reach the caller."""
        mock_client.post.side_effect = httpx.HTTPError("Connection failed")

        with caplog.at_level(logging.WARNING):
            await notifier.notify(2, "Test", "Test")

        assert "Connection failed" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_url_is_logged_not_raised(self, notifier, mock_client, caplog):
        mock_client.post.side_effect = httpx.InvalidURL("Invalid port: 'abc'")

        with caplog.at_level(logging.WARNING):
            await notifier.notify(2, "Test", "Test")

        assert "Invalid port" in caplog.text

    @pytest.mark.asyncio
    async def test_rejected_status_is_logged(self, notifier, mock_client, caplog):
        mock_client.post.return_value = MagicMock(status_code=400)

        with caplog.at_level(logging.WARNING):
            await notifier.notify(2, "Test", "Test")

        assert "HTTP 400" in caplog.text

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self, notifier, mock_client):
        mock_client.post.return_value = MagicMock(status_code=204)

        await notifier.notify(2, "Test", "Test")

        mock_client.aclose.assert_not_called()

    @pytest.mark.asyncio
    async def test_own_client_is_closed(self):
        client = AsyncMock(spec=httpx.AsyncClient)
        client.post.return_value = MagicMock(status_code=204)

        with patch("taskcore.notifications.discord_sender.httpx.AsyncClient", return_value=client):
            notifier = DiscordNotifier("https://discord.com/api/webhooks/1/x")
            await notifier.notify(2, "Test", "Test")

        client.aclose.assert_awaited_once()


class TestLocalNotifiers:
    @pytest.mark.asyncio
    async def test_logging_notifier(self, caplog):
        notifier = LoggingNotifier()

        with caplog.at_level(logging.INFO, logger="taskcore.notifications.local"):
            await notifier.notify(3, "Task completed", "Done", EntityRef("task", 1))

        assert notifier.channel_name == "log"
        assert "Notify user 3: Task completed - Done [task:1]" in caplog.text

    @pytest.mark.asyncio
    async def test_in_memory_notifier_records(self):
        notifier = InMemoryNotifier()

        await notifier.notify(1, "a", "b")
        await notifier.notify(2, "c", "d", EntityRef("task", 4))

        assert notifier.recipients() == [1, 2]
        assert notifier.sent[1] == SentNotification(2, "c", "d", EntityRef("task", 4))
        assert isinstance(notifier, Notifier)

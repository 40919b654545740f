"""Notifier implementations."""

from .discord_sender import DiscordNotifier
from .local import InMemoryNotifier, LoggingNotifier, SentNotification

__all__ = [
    "DiscordNotifier",
    "InMemoryNotifier",
    "LoggingNotifier",
    "SentNotification",
]

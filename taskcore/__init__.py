"""Command and domain-event core for task management."""

__version__ = "1.0.0"

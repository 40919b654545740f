"""Event bus, handler registry and event reactions."""

from .bus import DeadLetter, EventBus, EventHandler, HandlerRegistry
from .handlers import (
    AuditTrailHandler,
    EventLoggingHandler,
    NotifyAssigneeOnTaskAssigned,
    NotifyAssigneeOnTaskCreated,
    NotifyCreatorOnTaskCompleted,
    NotifyParticipantsOnCommentAdded,
    NotifyParticipantsOnStatusChanged,
)

__all__ = [
    "DeadLetter",
    "EventBus",
    "EventHandler",
    "HandlerRegistry",
    "AuditTrailHandler",
    "EventLoggingHandler",
    "NotifyAssigneeOnTaskAssigned",
    "NotifyAssigneeOnTaskCreated",
    "NotifyCreatorOnTaskCompleted",
    "NotifyParticipantsOnCommentAdded",
    "NotifyParticipantsOnStatusChanged",
]

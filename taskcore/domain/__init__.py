"""Domain models, events, errors and protocols."""

from .errors import (
    TaskCoreError,
    ValidationError,
    NotFoundError,
    InvalidTransitionError,
    PersistenceError,
    ConflictError,
    HandlerError,
)
from .events import (
    DomainEvent,
    TaskCreated,
    TaskStatusChanged,
    TaskCompleted,
    TaskAssigned,
    CommentAdded,
    CommentUpdated,
    CommentRemoved,
    ClientCreated,
    ClientUpdated,
    DealCreated,
    DealStageChanged,
    DealWon,
    DealLost,
    ALL_DOMAIN_EVENTS,
    EVENT_TYPES,
    event_from_dict,
)
from .models import (
    Task,
    TaskId,
    UserId,
    TaskTitle,
    TaskStatus,
    TaskPriority,
    User,
    Comment,
    EntityRef,
    AuditEntry,
)
from .protocols import (
    EventRecord,
    TaskRepository,
    UserRepository,
    CommentRepository,
    EventStore,
    UnitOfWork,
    EventPublisher,
    Notifier,
    AuditLog,
)

__all__ = [
    "TaskCoreError",
    "ValidationError",
    "NotFoundError",
    "InvalidTransitionError",
    "PersistenceError",
    "ConflictError",
    "HandlerError",
    "DomainEvent",
    "TaskCreated",
    "TaskStatusChanged",
    "TaskCompleted",
    "TaskAssigned",
    "CommentAdded",
    "CommentUpdated",
    "CommentRemoved",
    "ClientCreated",
    "ClientUpdated",
    "DealCreated",
    "DealStageChanged",
    "DealWon",
    "DealLost",
    "ALL_DOMAIN_EVENTS",
    "EVENT_TYPES",
    "event_from_dict",
    "Task",
    "TaskId",
    "UserId",
    "TaskTitle",
    "TaskStatus",
    "TaskPriority",
    "User",
    "Comment",
    "EntityRef",
    "AuditEntry",
    "EventRecord",
    "TaskRepository",
    "UserRepository",
    "CommentRepository",
    "EventStore",
    "UnitOfWork",
    "EventPublisher",
    "Notifier",
    "AuditLog",
]

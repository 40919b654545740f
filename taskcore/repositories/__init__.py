"""Repository implementations."""

from .memory import (
    InMemoryTaskRepository,
    InMemoryUserRepository,
    InMemoryCommentRepository,
    InMemoryEventStore,
    InMemoryAuditLog,
    InMemoryUnitOfWork,
)
from .sqlite import (
    SqliteDatabase,
    SqliteTaskRepository,
    SqliteUserRepository,
    SqliteCommentRepository,
    SqliteEventStore,
    SqliteAuditLog,
    SqliteUnitOfWork,
)

__all__ = [
    "InMemoryTaskRepository",
    "InMemoryUserRepository",
    "InMemoryCommentRepository",
    "InMemoryEventStore",
    "InMemoryAuditLog",
    "InMemoryUnitOfWork",
    "SqliteDatabase",
    "SqliteTaskRepository",
    "SqliteUserRepository",
    "SqliteCommentRepository",
    "SqliteEventStore",
    "SqliteAuditLog",
    "SqliteUnitOfWork",
]

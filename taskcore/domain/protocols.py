"""Protocol definitions for dependency injection."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from .events import DomainEvent, event_from_dict
from .models import AuditEntry, Comment, EntityRef, Task, TaskId, User


@dataclass(frozen=True)
class EventRecord:
    """Stored form of a domain event."""

    event_name: str
    event_data: dict[str, Any]
    occurred_at: datetime
    sequence: int = 0

    def to_event(self) -> DomainEvent:
        """Rehydrate the stored payload into its event class."""
        return event_from_dict(self.event_name, self.event_data)


@runtime_checkable
class TaskRepository(Protocol):
    """Protocol for task aggregate persistence."""

    async def find(self, task_id: TaskId) -> Optional[Task]:
        """Load a task, or None if it does not exist."""
        ...

    async def save(self, task: Task) -> Task:
        """Insert or update a task.

        Assigns ``task.id`` on first save and bumps ``task.version``; raises
        ConflictError when the stored version differs from ``task.version``.
        """
        ...


@runtime_checkable
class UserRepository(Protocol):
    """Protocol for resolving actors."""

    async def find(self, user_id: int) -> Optional[User]:
        ...

    async def save(self, user: User) -> User:
        ...


@runtime_checkable
class CommentRepository(Protocol):
    """Protocol for comment persistence."""

    async def find(self, comment_id: int) -> Optional[Comment]:
        ...

    async def save(self, comment: Comment) -> Comment:
        ...

    async def remove(self, comment_id: int) -> None:
        """Delete a comment; raises NotFoundError when it does not exist."""
        ...


@runtime_checkable
class EventStore(Protocol):
    """Append-only log of domain events."""

    async def append(self, event: DomainEvent) -> None:
        """Persist an event; raises PersistenceError on failure."""
        ...

    async def query(
        self,
        event_name: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> Sequence[EventRecord]:
        """Return stored records, newest first."""
        ...


@runtime_checkable
class UnitOfWork(Protocol):
    """Transaction boundary spanning aggregate writes and event appends.

    Used as ``async with uow:``; commits on normal exit, rolls back when the
    block raises.
    """

    tasks: TaskRepository
    users: UserRepository
    comments: CommentRepository
    events: EventStore

    async def __aenter__(self) -> "UnitOfWork":
        ...

    async def __aexit__(self, exc_type, exc, tb) -> None:
        ...


@runtime_checkable
class EventPublisher(Protocol):
    """Hands committed events to their reactions."""

    async def dispatch(self, event: DomainEvent) -> None:
        """Deliver an event. Never raises for handler failures."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """Protocol for delivering a message to a user."""

    async def notify(
        self,
        recipient_id: int,
        title: str,
        body: str,
        related: Optional[EntityRef] = None,
    ) -> None:
        """Deliver a notification. Delivery failures are logged, not raised."""
        ...


@runtime_checkable
class AuditLog(Protocol):
    """Protocol for the audit trail written by event reactions."""

    async def record(self, entry: AuditEntry) -> None:
        ...

    async def entries(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        limit: int = 50,
    ) -> Sequence[AuditEntry]:
        """Return entries newest first."""
        ...

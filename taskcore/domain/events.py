"""Domain events: immutable records of something that already happened.

Every event is a frozen, keyword-only dataclass with a stable
``event_name`` and an ``occurred_at`` stamp. New events are built through
``Event.create(clock, **payload)`` so the timestamp always comes from the
injected clock; direct construction is used only to rehydrate stored events.

``to_dict()`` flattens an event into JSON-safe primitives (value objects
become ints/strings, enums their value, datetimes ISO-8601 strings), and
``event_from_dict()`` reverses it using the ``EVENT_TYPES`` registry.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional, Union, get_args, get_origin

from ..clock import Clock, ensure_utc
from .models import TaskId, TaskPriority, TaskStatus, TaskTitle


def format_timestamp(moment: datetime) -> str:
    """Render a timestamp as sortable ISO-8601 with microseconds, in UTC.

    Stored text is compared lexically, so every value shares one offset.
    """
    return ensure_utc(moment).isoformat(timespec="microseconds")


def parse_timestamp(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for all domain events."""

    event_name: ClassVar[str] = ""
    entity_type: ClassVar[str] = ""
    entity_field: ClassVar[str] = ""
    actor_field: ClassVar[str] = ""

    occurred_at: datetime

    @classmethod
    def create(cls, clock: Clock, **payload: Any) -> "DomainEvent":
        """Build a new event stamped with ``clock.now()``."""
        if "occurred_at" in payload:
            raise TypeError("occurred_at is set by the clock, not the caller")
        return cls(occurred_at=clock.now(), **payload)

    @property
    def entity_id(self) -> int:
        return _dump(getattr(self, self.entity_field))

    @property
    def actor_id(self) -> Optional[int]:
        if not self.actor_field:
            return None
        return getattr(self, self.actor_field)

    def to_dict(self) -> dict[str, Any]:
        """Flat, JSON-safe payload."""
        return {
            f.name: _dump(getattr(self, f.name)) for f in dataclasses.fields(self)
        }


# ---------------------------------------------------------------------------
# Task events
# ---------------------------------------------------------------------------

@dataclass(frozen=True, kw_only=True)
class TaskCreated(DomainEvent):
    event_name: ClassVar[str] = "task.created"
    entity_type: ClassVar[str] = "task"
    entity_field: ClassVar[str] = "task_id"
    actor_field: ClassVar[str] = "user_id"

    task_id: TaskId
    title: TaskTitle
    priority: TaskPriority
    user_id: int
    assigned_user_id: int


@dataclass(frozen=True, kw_only=True)
class TaskStatusChanged(DomainEvent):
    event_name: ClassVar[str] = "task.status_changed"
    entity_type: ClassVar[str] = "task"
    entity_field: ClassVar[str] = "task_id"
    actor_field: ClassVar[str] = "changed_by_user_id"

    task_id: TaskId
    old_status: TaskStatus
    new_status: TaskStatus
    changed_by_user_id: int


@dataclass(frozen=True, kw_only=True)
class TaskCompleted(DomainEvent):
    """Task reached ``completed``.

    ``completed_at`` is the task's own completion stamp and is kept apart
    from ``occurred_at``, the moment the event was recorded.
    """

    event_name: ClassVar[str] = "task.completed"
    entity_type: ClassVar[str] = "task"
    entity_field: ClassVar[str] = "task_id"
    actor_field: ClassVar[str] = "completed_by_user_id"

    task_id: TaskId
    completed_by_user_id: int
    completed_at: datetime


@dataclass(frozen=True, kw_only=True)
class TaskAssigned(DomainEvent):
    event_name: ClassVar[str] = "task.assigned"
    entity_type: ClassVar[str] = "task"
    entity_field: ClassVar[str] = "task_id"
    actor_field: ClassVar[str] = "assigned_by_user_id"

    task_id: TaskId
    old_assigned_user_id: Optional[int]
    new_assigned_user_id: int
    assigned_by_user_id: int


# ---------------------------------------------------------------------------
# Comment events
# ---------------------------------------------------------------------------

@dataclass(frozen=True, kw_only=True)
class CommentAdded(DomainEvent):
    event_name: ClassVar[str] = "comment.added"
    entity_type: ClassVar[str] = "comment"
    entity_field: ClassVar[str] = "comment_id"
    actor_field: ClassVar[str] = "author_id"

    comment_id: int
    task_id: TaskId
    content: str
    author_id: int


@dataclass(frozen=True, kw_only=True)
class CommentUpdated(DomainEvent):
    event_name: ClassVar[str] = "comment.updated"
    entity_type: ClassVar[str] = "comment"
    entity_field: ClassVar[str] = "comment_id"
    actor_field: ClassVar[str] = "updated_by_user_id"

    comment_id: int
    task_id: TaskId
    content: str
    updated_by_user_id: int


@dataclass(frozen=True, kw_only=True)
class CommentRemoved(DomainEvent):
    event_name: ClassVar[str] = "comment.removed"
    entity_type: ClassVar[str] = "comment"
    entity_field: ClassVar[str] = "comment_id"
    actor_field: ClassVar[str] = "removed_by_user_id"

    comment_id: int
    task_id: TaskId
    author_id: int
    removed_by_user_id: int


# ---------------------------------------------------------------------------
# Client events
# ---------------------------------------------------------------------------

@dataclass(frozen=True, kw_only=True)
class ClientCreated(DomainEvent):
    event_name: ClassVar[str] = "client.created"
    entity_type: ClassVar[str] = "client"
    entity_field: ClassVar[str] = "client_id"
    actor_field: ClassVar[str] = "manager_id"

    client_id: int
    company_name: str
    email: str
    phone: Optional[str]
    manager_id: int


@dataclass(frozen=True, kw_only=True)
class ClientUpdated(DomainEvent):
    """``changed_fields`` maps a field name to ``{"old": ..., "new": ...}``."""

    event_name: ClassVar[str] = "client.updated"
    entity_type: ClassVar[str] = "client"
    entity_field: ClassVar[str] = "client_id"
    actor_field: ClassVar[str] = "updated_by_user_id"

    client_id: int
    changed_fields: dict
    updated_by_user_id: int


# ---------------------------------------------------------------------------
# Deal events
# ---------------------------------------------------------------------------

@dataclass(frozen=True, kw_only=True)
class DealCreated(DomainEvent):
    event_name: ClassVar[str] = "deal.created"
    entity_type: ClassVar[str] = "deal"
    entity_field: ClassVar[str] = "deal_id"
    actor_field: ClassVar[str] = "manager_id"

    deal_id: int
    title: str
    amount: Decimal
    manager_id: int
    client_id: int
    stage: str


@dataclass(frozen=True, kw_only=True)
class DealStageChanged(DomainEvent):
    event_name: ClassVar[str] = "deal.stage_changed"
    entity_type: ClassVar[str] = "deal"
    entity_field: ClassVar[str] = "deal_id"
    actor_field: ClassVar[str] = "changed_by_user_id"

    deal_id: int
    title: str
    old_stage: str
    new_stage: str
    changed_by_user_id: int


@dataclass(frozen=True, kw_only=True)
class DealWon(DomainEvent):
    event_name: ClassVar[str] = "deal.won"
    entity_type: ClassVar[str] = "deal"
    entity_field: ClassVar[str] = "deal_id"
    actor_field: ClassVar[str] = "won_by_user_id"

    deal_id: int
    title: str
    amount: Decimal
    won_by_user_id: int
    closed_at: datetime


@dataclass(frozen=True, kw_only=True)
class DealLost(DomainEvent):
    event_name: ClassVar[str] = "deal.lost"
    entity_type: ClassVar[str] = "deal"
    entity_field: ClassVar[str] = "deal_id"
    actor_field: ClassVar[str] = "lost_by_user_id"

    deal_id: int
    title: str
    reason: str
    lost_by_user_id: int
    closed_at: datetime


ALL_DOMAIN_EVENTS: tuple[type[DomainEvent], ...] = (
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
)

EVENT_TYPES: dict[str, type[DomainEvent]] = {
    cls.event_name: cls for cls in ALL_DOMAIN_EVENTS
}


def event_from_dict(event_name: str, data: dict[str, Any]) -> DomainEvent:
    """Rebuild an event from its name and flat payload."""
    cls = EVENT_TYPES.get(event_name)
    if cls is None:
        raise ValueError(f"Unknown event name: {event_name}")

    restored: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if f.name in data:
            restored[f.name] = _load(f.type, data[f.name])
    return cls(**restored)


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _dump(value: Any) -> Any:
    if isinstance(value, TaskId):
        return value.to_int()
    if isinstance(value, TaskTitle):
        return value.to_string()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_dump(v) for v in value]
    return value


_LOADERS: dict[Any, Any] = {
    TaskId: TaskId.from_int,
    TaskTitle: TaskTitle.from_string,
    TaskPriority: TaskPriority.from_string,
    TaskStatus: TaskStatus.from_string,
    datetime: parse_timestamp,
    Decimal: lambda raw: Decimal(str(raw)),
}


def _load(field_type: Any, raw: Any) -> Any:
    if raw is None:
        return None
    if get_origin(field_type) is Union:
        field_type = next(a for a in get_args(field_type) if a is not type(None))
    loader = _LOADERS.get(field_type)
    if loader is None:
        return raw
    return loader(raw)

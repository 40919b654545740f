"""Domain models: value objects and the task aggregate."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .errors import InvalidTransitionError, ValidationError


TITLE_MAX_LENGTH = 255


@dataclass(frozen=True)
class TaskId:
    """Value object for task identification."""

    value: int

    def __post_init__(self) -> None:
        _require_positive_int("task id", self.value)

    @classmethod
    def from_int(cls, value: int) -> "TaskId":
        """Create a TaskId, rejecting non-positive values."""
        return cls(value)

    def to_int(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class UserId:
    """Value object for actor identification (creator, assignee, author)."""

    value: int

    def __post_init__(self) -> None:
        _require_positive_int("user id", self.value)

    @classmethod
    def from_int(cls, value: int) -> "UserId":
        return cls(value)

    def to_int(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TaskTitle:
    """Non-empty, trimmed task title of at most 255 characters."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValidationError("title", "must be a string")
        trimmed = self.value.strip()
        if not trimmed:
            raise ValidationError("title", "must not be empty")
        if len(trimmed) > TITLE_MAX_LENGTH:
            raise ValidationError(
                "title", f"must be at most {TITLE_MAX_LENGTH} characters"
            )
        object.__setattr__(self, "value", trimmed)

    @classmethod
    def from_string(cls, value: str) -> "TaskTitle":
        """Create a title from raw input; surrounding whitespace is dropped."""
        return cls(value)

    def to_string(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class TaskPriority(Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def from_string(cls, value: str) -> "TaskPriority":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                "priority",
                f"unknown value '{value}', expected one of "
                f"{', '.join(p.value for p in cls)}",
            ) from None

    @property
    def weight(self) -> int:
        return _PRIORITY_WEIGHTS[self]

    @property
    def label(self) -> str:
        return _PRIORITY_LABELS[self]

    def is_higher_than(self, other: "TaskPriority") -> bool:
        return self.weight > other.weight


_PRIORITY_WEIGHTS = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
    TaskPriority.URGENT: 4,
}

_PRIORITY_LABELS = {
    TaskPriority.LOW: "Low",
    TaskPriority.MEDIUM: "Medium",
    TaskPriority.HIGH: "High",
    TaskPriority.URGENT: "Urgent",
}


class TaskStatus(Enum):
    """Task status values."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_string(cls, value: str) -> "TaskStatus":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                "status",
                f"unknown value '{value}', expected one of "
                f"{', '.join(s.value for s in cls)}",
            ) from None

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    def allowed_transitions(self) -> frozenset["TaskStatus"]:
        return _STATUS_TRANSITIONS[self]

    def can_transition_to(self, other: "TaskStatus") -> bool:
        return other in _STATUS_TRANSITIONS[self]


_STATUS_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.PENDING, TaskStatus.COMPLETED}),
    TaskStatus.COMPLETED: frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS}),
}

_STATUS_LABELS = {
    TaskStatus.PENDING: "Pending",
    TaskStatus.IN_PROGRESS: "In progress",
    TaskStatus.COMPLETED: "Completed",
}

# Every status must have a transition entry.
if set(_STATUS_TRANSITIONS) != set(TaskStatus):
    raise RuntimeError("transition table is not total")
if set(_PRIORITY_WEIGHTS) != set(TaskPriority):
    raise RuntimeError("priority weights are not total")


@dataclass(frozen=True)
class EntityRef:
    """Reference to the entity a notification is about."""

    entity_type: str
    entity_id: int

    def __str__(self) -> str:
        return f"{self.entity_type}:{self.entity_id}"


@dataclass(frozen=True)
class User:
    """Actor that can create, own, and act on tasks."""

    id: int
    name: str
    email: Optional[str] = None


@dataclass
class Task:
    """Task aggregate. Identity is assigned by the repository on first save."""

    title: TaskTitle
    priority: TaskPriority
    user_id: int
    assigned_user_id: int
    created_at: datetime
    updated_at: datetime
    status: TaskStatus = TaskStatus.PENDING
    id: Optional[TaskId] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    due_date: Optional[datetime] = None
    tag_ids: list[int] = field(default_factory=list)
    completed_at: Optional[datetime] = None
    version: int = 0

    def change_status(self, new_status: TaskStatus, now: datetime) -> TaskStatus:
        """Move to ``new_status``, returning the previous status."""
        if not self.status.can_transition_to(new_status):
            raise InvalidTransitionError(self.status, new_status)

        old_status = self.status
        self.status = new_status
        self.updated_at = now
        if new_status == TaskStatus.COMPLETED:
            self.completed_at = now
        else:
            self.completed_at = None
        return old_status

    def complete(self, now: datetime) -> TaskStatus:
        return self.change_status(TaskStatus.COMPLETED, now)

    def assign_to(self, user_id: int, now: datetime) -> int:
        """Reassign the task, returning the previous assignee."""
        old_assignee = self.assigned_user_id
        self.assigned_user_id = user_id
        self.updated_at = now
        return old_assignee

    def participants(self) -> set[int]:
        return {self.user_id, self.assigned_user_id}


@dataclass
class Comment:
    """Comment left on a task."""

    task_id: TaskId
    author_id: int
    content: str
    created_at: datetime
    id: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class AuditEntry:
    """One line of the audit trail written by event reactions."""

    action: str
    entity_type: str
    entity_id: int
    user_id: Optional[int]
    details: dict
    created_at: datetime


def _require_positive_int(name: str, value: object) -> None:
    # bool is an int subclass; reject it explicitly
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(name, "must be an integer")
    if value <= 0:
        raise ValidationError(name, f"must be positive, got {value}")

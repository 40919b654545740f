"""Commands: immutable descriptions of an intended change.

Fields hold raw caller input; validation happens in the handlers through
the value-object factories.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class CreateTask:
    title: str
    priority: str
    creator_id: int
    assignee_id: int
    description: Optional[str] = None
    category_id: Optional[int] = None
    due_date: Optional[datetime] = None
    tag_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class CompleteTask:
    task_id: int
    actor_id: int


@dataclass(frozen=True)
class ChangeTaskStatus:
    task_id: int
    new_status: str
    actor_id: int


@dataclass(frozen=True)
class AssignTask:
    task_id: int
    assignee_id: int
    actor_id: int


@dataclass(frozen=True)
class AddComment:
    task_id: int
    author_id: int
    content: str


@dataclass(frozen=True)
class UpdateComment:
    comment_id: int
    actor_id: int
    content: str


@dataclass(frozen=True)
class RemoveComment:
    comment_id: int
    actor_id: int

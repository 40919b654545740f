"""In-memory implementations of repositories for testing and local runs."""

import copy
from datetime import datetime
from typing import Optional, Sequence

from taskcore.clock import ensure_utc
from taskcore.domain.errors import ConflictError, NotFoundError
from taskcore.domain.events import DomainEvent
from taskcore.domain.models import AuditEntry, Comment, Task, TaskId, User
from taskcore.domain.protocols import EventRecord


class InMemoryTaskRepository:
    """In-memory implementation of TaskRepository.

    Stores copies so that callers mutating a loaded task do not touch the
    stored state until they ``save`` it.
    """

    def __init__(self) -> None:
        self._tasks: dict[int, Task] = {}
        self._next_id = 1

    async def find(self, task_id: TaskId) -> Optional[Task]:
        stored = self._tasks.get(task_id.value)
        return copy.deepcopy(stored) if stored else None

    async def save(self, task: Task) -> Task:
        if task.id is None:
            task.id = TaskId(self._next_id)
            self._next_id += 1
        else:
            stored = self._tasks.get(task.id.value)
            if stored is None:
                raise NotFoundError("Task", task.id)
            if stored.version != task.version:
                raise ConflictError("Task", task.id, task.version)

        task.version += 1
        self._tasks[task.id.value] = copy.deepcopy(task)
        return task

    def __len__(self) -> int:
        return len(self._tasks)

    def snapshot(self) -> tuple:
        return copy.deepcopy(self._tasks), self._next_id

    def restore(self, state: tuple) -> None:
        self._tasks, self._next_id = state


class InMemoryUserRepository:
    """In-memory implementation of UserRepository."""

    def __init__(self, users: Sequence[User] = ()) -> None:
        self._users: dict[int, User] = {u.id: u for u in users}

    async def find(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def save(self, user: User) -> User:
        self._users[user.id] = user
        return user

    def snapshot(self) -> dict:
        return dict(self._users)

    def restore(self, state: dict) -> None:
        self._users = state


class InMemoryCommentRepository:
    """In-memory implementation of CommentRepository."""

    def __init__(self) -> None:
        self._comments: dict[int, Comment] = {}
        self._next_id = 1

    async def find(self, comment_id: int) -> Optional[Comment]:
        stored = self._comments.get(comment_id)
        return copy.deepcopy(stored) if stored else None

    async def save(self, comment: Comment) -> Comment:
        if comment.id is None:
            comment.id = self._next_id
            self._next_id += 1
        self._comments[comment.id] = copy.deepcopy(comment)
        return comment

    async def remove(self, comment_id: int) -> None:
        if self._comments.pop(comment_id, None) is None:
            raise NotFoundError("Comment", comment_id)

    async def for_task(self, task_id: TaskId) -> Sequence[Comment]:
        return [c for c in self._comments.values() if c.task_id == task_id]

    def snapshot(self) -> tuple:
        return copy.deepcopy(self._comments), self._next_id

    def restore(self, state: tuple) -> None:
        self._comments, self._next_id = state


class InMemoryEventStore:
    """List-backed append-only event store. No persistence across restarts."""

    def __init__(self) -> None:
        self._records: list[EventRecord] = []

    async def append(self, event: DomainEvent) -> None:
        self._records.append(
            EventRecord(
                event_name=event.event_name,
                event_data=event.to_dict(),
                occurred_at=event.occurred_at,
                sequence=len(self._records) + 1,
            )
        )

    async def query(
        self,
        event_name: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> Sequence[EventRecord]:
        records = self._records
        if event_name:
            records = [r for r in records if r.event_name == event_name]
        if since:
            since = ensure_utc(since)
            records = [r for r in records if r.occurred_at >= since]

        ordered = sorted(
            records, key=lambda r: (r.occurred_at, r.sequence), reverse=True
        )
        return ordered[:limit]

    def __len__(self) -> int:
        return len(self._records)

    def snapshot(self) -> int:
        return len(self._records)

    def restore(self, state: int) -> None:
        del self._records[state:]


class InMemoryAuditLog:
    """In-memory audit trail."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    async def record(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    async def entries(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        limit: int = 50,
    ) -> Sequence[AuditEntry]:
        result = self._entries
        if entity_type:
            result = [e for e in result if e.entity_type == entity_type]
        if entity_id is not None:
            result = [e for e in result if e.entity_id == entity_id]
        return list(reversed(result))[:limit]

    def __len__(self) -> int:
        return len(self._entries)


class InMemoryUnitOfWork:
    """Unit of work over the in-memory repositories.

    Entering takes a snapshot of every repository; leaving with an exception
    restores it, so aggregate writes and event appends land together or not
    at all.
    """

    def __init__(
        self,
        tasks: Optional[InMemoryTaskRepository] = None,
        users: Optional[InMemoryUserRepository] = None,
        comments: Optional[InMemoryCommentRepository] = None,
        events: Optional[InMemoryEventStore] = None,
    ) -> None:
        self.tasks = tasks if tasks is not None else InMemoryTaskRepository()
        self.users = users if users is not None else InMemoryUserRepository()
        self.comments = comments if comments is not None else InMemoryCommentRepository()
        self.events = events if events is not None else InMemoryEventStore()
        self.committed = 0
        self.rolled_back = 0
        self._snapshot: Optional[tuple] = None

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        if self._snapshot is not None:
            raise RuntimeError("Unit of work is already active")
        self._snapshot = (
            self.tasks.snapshot(),
            self.users.snapshot(),
            self.comments.snapshot(),
            self.events.snapshot(),
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self.committed += 1
            else:
                self._rollback()
        finally:
            self._snapshot = None

    def _rollback(self) -> None:
        tasks, users, comments, events = self._snapshot
        self.tasks.restore(tasks)
        self.users.restore(users)
        self.comments.restore(comments)
        self.events.restore(events)
        self.rolled_back += 1

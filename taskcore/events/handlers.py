"""Reactions to domain events: notifications, audit trail, logging.

Handlers run after the originating command committed. They read what they
need through a short unit of work, then talk to the notifier outside of it.
Actors that cannot be resolved are skipped, and nobody is notified about
their own action.
"""

import logging
from typing import Iterable, Optional

from taskcore.clock import Clock
from taskcore.domain.events import (
    CommentAdded,
    DomainEvent,
    TaskAssigned,
    TaskCompleted,
    TaskCreated,
    TaskStatusChanged,
)
from taskcore.domain.models import AuditEntry, EntityRef, Task, TaskId, User
from taskcore.domain.protocols import AuditLog, Notifier, UnitOfWork

logger = logging.getLogger(__name__)

COMMENT_PREVIEW_LENGTH = 100


class NotificationHandler:
    """Base for handlers that notify users about a task."""

    def __init__(self, uow: UnitOfWork, notifier: Notifier) -> None:
        self._uow = uow
        self._notifier = notifier

    async def _resolve(
        self, task_id: Optional[TaskId], user_ids: Iterable[int]
    ) -> tuple[Optional[Task], dict[int, User]]:
        """Load the task and every resolvable user in one read."""
        users: dict[int, User] = {}
        async with self._uow as uow:
            task = await uow.tasks.find(task_id) if task_id else None
            for user_id in set(user_ids):
                user = await uow.users.find(user_id)
                if user is None:
                    logger.debug(f"User {user_id} not found, skipping")
                    continue
                users[user_id] = user
        return task, users

    async def _send(
        self,
        recipients: Iterable[User],
        title: str,
        body: str,
        related: EntityRef,
    ) -> int:
        sent = 0
        for user in recipients:
            try:
                await self._notifier.notify(user.id, title, body, related)
                sent += 1
            except Exception as e:
                logger.error(f"Error notifying user {user.id} about {related}: {e}")
        return sent

    @staticmethod
    def _display_name(users: dict[int, User], user_id: int) -> str:
        user = users.get(user_id)
        return user.name if user else f"user {user_id}"


class NotifyAssigneeOnTaskCreated(NotificationHandler):
    async def __call__(self, event: TaskCreated) -> None:
        if event.assigned_user_id == event.user_id:
            return

        _, users = await self._resolve(None, [event.user_id, event.assigned_user_id])
        assignee = users.get(event.assigned_user_id)
        if assignee is None:
            return

        creator = self._display_name(users, event.user_id)
        await self._send(
            [assignee],
            "New task assigned",
            f'{creator} assigned you the task "{event.title}" '
            f"(priority: {event.priority.label})",
            EntityRef("task", event.task_id.value),
        )


class NotifyAssigneeOnTaskAssigned(NotificationHandler):
    async def __call__(self, event: TaskAssigned) -> None:
        if event.new_assigned_user_id == event.assigned_by_user_id:
            return

        task, users = await self._resolve(
            event.task_id, [event.new_assigned_user_id, event.assigned_by_user_id]
        )
        assignee = users.get(event.new_assigned_user_id)
        if task is None or assignee is None:
            return

        assigner = self._display_name(users, event.assigned_by_user_id)
        await self._send(
            [assignee],
            "Task assigned to you",
            f'{assigner} assigned you the task "{task.title}"',
            EntityRef("task", event.task_id.value),
        )


class NotifyCreatorOnTaskCompleted(NotificationHandler):
    async def __call__(self, event: TaskCompleted) -> None:
        task, users = await self._resolve(event.task_id, [event.completed_by_user_id])
        if task is None or task.user_id == event.completed_by_user_id:
            return

        _, creators = await self._resolve(None, [task.user_id])
        creator = creators.get(task.user_id)
        if creator is None:
            return

        completer = self._display_name(users, event.completed_by_user_id)
        await self._send(
            [creator],
            "Task completed",
            f'Task "{task.title}" was completed by {completer}',
            EntityRef("task", event.task_id.value),
        )


class NotifyParticipantsOnStatusChanged(NotificationHandler):
    async def __call__(self, event: TaskStatusChanged) -> None:
        task, _ = await self._resolve(event.task_id, [])
        if task is None:
            return

        recipient_ids = task.participants() - {event.changed_by_user_id}
        if not recipient_ids:
            return

        _, users = await self._resolve(
            None, recipient_ids | {event.changed_by_user_id}
        )
        actor = self._display_name(users, event.changed_by_user_id)
        await self._send(
            [users[r] for r in sorted(recipient_ids) if r in users],
            "Task status changed",
            f'{actor} moved "{task.title}" from {event.old_status.label} '
            f"to {event.new_status.label}",
            EntityRef("task", event.task_id.value),
        )


class NotifyParticipantsOnCommentAdded(NotificationHandler):
    async def __call__(self, event: CommentAdded) -> None:
        task, _ = await self._resolve(event.task_id, [])
        if task is None:
            return

        recipient_ids = task.participants() - {event.author_id}
        if not recipient_ids:
            return

        _, users = await self._resolve(None, recipient_ids | {event.author_id})
        author = self._display_name(users, event.author_id)
        preview = event.content
        if len(preview) > COMMENT_PREVIEW_LENGTH:
            preview = preview[:COMMENT_PREVIEW_LENGTH].rstrip() + "..."

        await self._send(
            [users[r] for r in sorted(recipient_ids) if r in users],
            f'New comment on "{task.title}"',
            f"{author}: {preview}",
            EntityRef("task", event.task_id.value),
        )


class AuditTrailHandler:
    """Writes one audit entry per event."""

    def __init__(self, audit_log: AuditLog, clock: Clock) -> None:
        self._audit_log = audit_log
        self._clock = clock

    async def __call__(self, event: DomainEvent) -> None:
        await self._audit_log.record(
            AuditEntry(
                action=event.event_name,
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                user_id=event.actor_id,
                details=event.to_dict(),
                created_at=self._clock.now(),
            )
        )


class EventLoggingHandler:
    """Logs one line per event."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    async def __call__(self, event: DomainEvent) -> None:
        logger.log(
            self._level,
            f"{event.event_name} {event.entity_type}:{event.entity_id} "
            f"by user {event.actor_id} at {event.occurred_at.isoformat()}",
        )

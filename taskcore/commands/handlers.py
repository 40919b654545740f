"""Command handlers for the task aggregate.

Each handler runs validate -> load -> mutate -> persist -> append inside one
unit of work, and dispatches the resulting event only after that unit of
work has committed. Any error raised before the commit leaves the store
untouched and reaches the caller; handler failures after dispatch never do.
"""

import logging

from taskcore.clock import Clock
from taskcore.domain.errors import NotFoundError, ValidationError
from taskcore.domain.events import (
    CommentAdded,
    CommentRemoved,
    CommentUpdated,
    DomainEvent,
    TaskAssigned,
    TaskCompleted,
    TaskCreated,
    TaskStatusChanged,
)
from taskcore.domain.models import (
    Comment,
    Task,
    TaskId,
    TaskPriority,
    TaskStatus,
    TaskTitle,
    User,
    UserId,
)
from taskcore.domain.protocols import EventPublisher, UnitOfWork

from .commands import (
    AddComment,
    AssignTask,
    ChangeTaskStatus,
    CompleteTask,
    CreateTask,
    RemoveComment,
    UpdateComment,
)

logger = logging.getLogger(__name__)

COMMENT_MAX_LENGTH = 5000


def _comment_content(raw: str) -> str:
    content = (raw or "").strip()
    if not content:
        raise ValidationError("content", "must not be empty")
    if len(content) > COMMENT_MAX_LENGTH:
        raise ValidationError(
            "content", f"must be at most {COMMENT_MAX_LENGTH} characters"
        )
    return content


class CommandHandler:
    """Shared plumbing for command handlers."""

    def __init__(self, uow: UnitOfWork, bus: EventPublisher, clock: Clock) -> None:
        self._uow = uow
        self._bus = bus
        self._clock = clock

    async def _load_task(self, uow: UnitOfWork, task_id: TaskId) -> Task:
        task = await uow.tasks.find(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def _require_user(self, uow: UnitOfWork, user_id: UserId, role: str) -> User:
        user = await uow.users.find(user_id.value)
        if user is None:
            raise NotFoundError(role.capitalize(), user_id)
        return user

    async def _load_comment(self, uow: UnitOfWork, comment_id: int) -> Comment:
        comment = await uow.comments.find(comment_id)
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        return comment

    async def _publish(self, event: DomainEvent) -> None:
        await self._bus.dispatch(event)


class CreateTaskHandler(CommandHandler):
    """Creates a task in ``pending`` and emits ``task.created``."""

    async def handle(self, command: CreateTask) -> TaskId:
        title = TaskTitle.from_string(command.title)
        priority = TaskPriority.from_string(command.priority)
        creator_id = UserId.from_int(command.creator_id)
        assignee_id = UserId.from_int(command.assignee_id)

        async with self._uow as uow:
            await self._require_user(uow, creator_id, "creator")
            await self._require_user(uow, assignee_id, "assignee")

            now = self._clock.now()
            task = Task(
                title=title,
                priority=priority,
                status=TaskStatus.PENDING,
                user_id=creator_id.value,
                assigned_user_id=assignee_id.value,
                description=command.description,
                category_id=command.category_id,
                due_date=command.due_date,
                tag_ids=list(command.tag_ids),
                created_at=now,
                updated_at=now,
            )
            await uow.tasks.save(task)

            event = TaskCreated.create(
                self._clock,
                task_id=task.id,
                title=title,
                priority=priority,
                user_id=creator_id.value,
                assigned_user_id=assignee_id.value,
            )
            await uow.events.append(event)

        logger.info(f"Task {task.id} created by user {creator_id}")
        await self._publish(event)
        return task.id


class CompleteTaskHandler(CommandHandler):
    """Moves a task to ``completed`` and emits ``task.completed``."""

    async def handle(self, command: CompleteTask) -> TaskId:
        task_id = TaskId.from_int(command.task_id)
        actor_id = UserId.from_int(command.actor_id)

        async with self._uow as uow:
            task = await self._load_task(uow, task_id)
            task.complete(self._clock.now())
            await uow.tasks.save(task)

            event = TaskCompleted.create(
                self._clock,
                task_id=task_id,
                completed_by_user_id=actor_id.value,
                completed_at=task.completed_at,
            )
            await uow.events.append(event)

        logger.info(f"Task {task_id} completed by user {actor_id}")
        await self._publish(event)
        return task_id


class ChangeTaskStatusHandler(CommandHandler):
    """Applies a status transition and emits ``task.status_changed``."""

    async def handle(self, command: ChangeTaskStatus) -> TaskId:
        task_id = TaskId.from_int(command.task_id)
        new_status = TaskStatus.from_string(command.new_status)
        actor_id = UserId.from_int(command.actor_id)

        async with self._uow as uow:
            task = await self._load_task(uow, task_id)
            old_status = task.change_status(new_status, self._clock.now())
            await uow.tasks.save(task)

            event = TaskStatusChanged.create(
                self._clock,
                task_id=task_id,
                old_status=old_status,
                new_status=new_status,
                changed_by_user_id=actor_id.value,
            )
            await uow.events.append(event)

        logger.info(
            f"Task {task_id} moved {old_status.value} -> {new_status.value} "
            f"by user {actor_id}"
        )
        await self._publish(event)
        return task_id


class AssignTaskHandler(CommandHandler):
    """Reassigns a task and emits ``task.assigned``."""

    async def handle(self, command: AssignTask) -> TaskId:
        task_id = TaskId.from_int(command.task_id)
        assignee_id = UserId.from_int(command.assignee_id)
        actor_id = UserId.from_int(command.actor_id)

        async with self._uow as uow:
            task = await self._load_task(uow, task_id)
            if task.assigned_user_id == assignee_id.value:
                raise ValidationError(
                    "assignee", f"task is already assigned to user {assignee_id}"
                )
            await self._require_user(uow, assignee_id, "assignee")

            old_assignee = task.assign_to(assignee_id.value, self._clock.now())
            await uow.tasks.save(task)

            event = TaskAssigned.create(
                self._clock,
                task_id=task_id,
                old_assigned_user_id=old_assignee,
                new_assigned_user_id=assignee_id.value,
                assigned_by_user_id=actor_id.value,
            )
            await uow.events.append(event)

        logger.info(f"Task {task_id} assigned to user {assignee_id} by user {actor_id}")
        await self._publish(event)
        return task_id


class AddCommentHandler(CommandHandler):
    """Adds a comment to an existing task and emits ``comment.added``."""

    async def handle(self, command: AddComment) -> int:
        task_id = TaskId.from_int(command.task_id)
        author_id = UserId.from_int(command.author_id)
        content = _comment_content(command.content)

        async with self._uow as uow:
            await self._load_task(uow, task_id)
            await self._require_user(uow, author_id, "author")

            comment = Comment(
                task_id=task_id,
                author_id=author_id.value,
                content=content,
                created_at=self._clock.now(),
            )
            await uow.comments.save(comment)

            event = CommentAdded.create(
                self._clock,
                comment_id=comment.id,
                task_id=task_id,
                content=content,
                author_id=author_id.value,
            )
            await uow.events.append(event)

        logger.info(f"Comment {comment.id} added to task {task_id} by user {author_id}")
        await self._publish(event)
        return comment.id


class UpdateCommentHandler(CommandHandler):
    """Replaces the text of a comment and emits ``comment.updated``."""

    async def handle(self, command: UpdateComment) -> int:
        actor_id = UserId.from_int(command.actor_id)
        content = _comment_content(command.content)

        async with self._uow as uow:
            comment = await self._load_comment(uow, command.comment_id)
            await self._require_user(uow, actor_id, "actor")

            comment.content = content
            comment.updated_at = self._clock.now()
            await uow.comments.save(comment)

            event = CommentUpdated.create(
                self._clock,
                comment_id=comment.id,
                task_id=comment.task_id,
                content=content,
                updated_by_user_id=actor_id.value,
            )
            await uow.events.append(event)

        logger.info(f"Comment {comment.id} updated by user {actor_id}")
        await self._publish(event)
        return comment.id


class RemoveCommentHandler(CommandHandler):
    """Deletes a comment and emits ``comment.removed``."""

    async def handle(self, command: RemoveComment) -> None:
        actor_id = UserId.from_int(command.actor_id)

        async with self._uow as uow:
            comment = await self._load_comment(uow, command.comment_id)
            await self._require_user(uow, actor_id, "actor")

            await uow.comments.remove(comment.id)

            event = CommentRemoved.create(
                self._clock,
                comment_id=comment.id,
                task_id=comment.task_id,
                author_id=comment.author_id,
                removed_by_user_id=actor_id.value,
            )
            await uow.events.append(event)

        logger.info(
            f"Comment {comment.id} removed from task {comment.task_id} "
            f"by user {actor_id}"
        )
        await self._publish(event)

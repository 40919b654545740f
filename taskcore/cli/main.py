"""CLI commands for the task command pipeline."""

import asyncio
import json
import logging
from datetime import datetime
from typing import Optional

import click

from ..clock import ensure_utc
from ..container import get_container
from ..domain.errors import TaskCoreError


def setup_container():
    """Set up container with default configuration."""
    from ..config.settings import get_settings
    from ..notifications import DiscordNotifier, LoggingNotifier
    from ..repositories.memory import InMemoryAuditLog, InMemoryUnitOfWork
    from ..repositories.sqlite import SqliteAuditLog, SqliteDatabase, SqliteUnitOfWork

    container = get_container()

    # Check if already configured
    try:
        _ = container.unit_of_work
        return  # Already configured
    except RuntimeError:
        pass

    settings = get_settings()
    store = settings.store

    if store.backend == "sqlite":
        database = SqliteDatabase(store.path)
        database.initialize()
        container.configure_unit_of_work(lambda: SqliteUnitOfWork(database))
        container.configure_audit_log(lambda: SqliteAuditLog(database))
    else:
        container.configure_unit_of_work(InMemoryUnitOfWork)
        container.configure_audit_log(InMemoryAuditLog)

    discord = settings.discord
    if discord.webhook_url:
        container.configure_notifier(
            lambda: DiscordNotifier(
                discord.webhook_url.get_secret_value(),
                username=discord.username,
            )
        )
    else:
        container.configure_notifier(LoggingNotifier)


def setup_logging():
    """Configure root logging from settings."""
    from ..config.settings import get_settings

    settings = get_settings()
    level = "DEBUG" if settings.debug else settings.log_level
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_async(coro):
    """Run async coroutine in sync context, turning domain errors into CLI errors."""
    try:
        return asyncio.run(coro)
    except TaskCoreError as e:
        raise click.ClickException(str(e)) from e


def _as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(moment) if moment else None


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """Task command pipeline: run commands, inspect the event log."""
    setup_logging()
    setup_container()


@cli.command("user-add")
@click.argument("user_id", type=int)
@click.argument("name")
@click.option("--email", "-e", help="Contact email")
def add_user(user_id: int, name: str, email: Optional[str]):
    """Register a user that tasks can be created for and assigned to."""
    from ..domain.models import User, UserId

    container = get_container()

    async def _save():
        UserId.from_int(user_id)
        async with container.unit_of_work as uow:
            await uow.users.save(User(id=user_id, name=name, email=email))

    run_async(_save())
    click.echo(f"User {user_id} saved: {name}")


@cli.command("create")
@click.argument("title")
@click.option("--priority", "-p", default="medium", help="low, medium, high or urgent")
@click.option("--creator", "-c", "creator_id", type=int, required=True, help="Creator user ID")
@click.option("--assignee", "-a", "assignee_id", type=int, help="Assignee user ID (defaults to creator)")
@click.option("--description", "-d", help="Task description")
@click.option("--due", type=click.DateTime(), help="Due date")
@click.option("--category", "category_id", type=int, help="Category ID")
@click.option("--tag", "tag_ids", type=int, multiple=True, help="Tag ID (repeatable)")
def create_task(
    title: str,
    priority: str,
    creator_id: int,
    assignee_id: Optional[int],
    description: Optional[str],
    due: Optional[datetime],
    category_id: Optional[int],
    tag_ids: tuple[int, ...],
):
    """Create a new task."""
    from ..commands import CreateTask

    container = get_container()
    command = CreateTask(
        title=title,
        priority=priority,
        creator_id=creator_id,
        assignee_id=assignee_id if assignee_id is not None else creator_id,
        description=description,
        category_id=category_id,
        due_date=_as_utc(due),
        tag_ids=tag_ids,
    )
    task_id = run_async(container.create_task_handler.handle(command))
    click.echo(f"✅ Created task {task_id}")


@cli.command("status")
@click.argument("task_id", type=int)
@click.argument("new_status")
@click.option("--actor", "actor_id", type=int, required=True, help="Acting user ID")
def change_status(task_id: int, new_status: str, actor_id: int):
    """Change a task's status (pending, in_progress, completed)."""
    from ..commands import ChangeTaskStatus

    container = get_container()
    command = ChangeTaskStatus(task_id=task_id, new_status=new_status, actor_id=actor_id)
    run_async(container.change_task_status_handler.handle(command))
    click.echo(f"🔄 Task {task_id} is now {new_status}")


@cli.command("complete")
@click.argument("task_id", type=int)
@click.option("--actor", "actor_id", type=int, required=True, help="Acting user ID")
def complete_task(task_id: int, actor_id: int):
    """Mark a task as complete."""
    from ..commands import CompleteTask

    container = get_container()
    run_async(
        container.complete_task_handler.handle(
            CompleteTask(task_id=task_id, actor_id=actor_id)
        )
    )
    click.echo(f"✅ Task {task_id} completed")


@cli.command("assign")
@click.argument("task_id", type=int)
@click.argument("assignee_id", type=int)
@click.option("--actor", "actor_id", type=int, required=True, help="Acting user ID")
def assign_task(task_id: int, assignee_id: int, actor_id: int):
    """Assign a task to another user."""
    from ..commands import AssignTask

    container = get_container()
    command = AssignTask(task_id=task_id, assignee_id=assignee_id, actor_id=actor_id)
    run_async(container.assign_task_handler.handle(command))
    click.echo(f"👤 Task {task_id} assigned to user {assignee_id}")


@cli.command("comment")
@click.argument("task_id", type=int)
@click.argument("content")
@click.option("--author", "author_id", type=int, required=True, help="Author user ID")
def add_comment(task_id: int, content: str, author_id: int):
    """Comment on a task."""
    from ..commands import AddComment

    container = get_container()
    command = AddComment(task_id=task_id, author_id=author_id, content=content)
    comment_id = run_async(container.add_comment_handler.handle(command))
    click.echo(f"💬 Comment {comment_id} added to task {task_id}")


@cli.command("comment-edit")
@click.argument("comment_id", type=int)
@click.argument("content")
@click.option("--actor", "actor_id", type=int, required=True, help="Acting user ID")
def edit_comment(comment_id: int, content: str, actor_id: int):
    """Replace the text of a comment."""
    from ..commands import UpdateComment

    container = get_container()
    command = UpdateComment(comment_id=comment_id, actor_id=actor_id, content=content)
    run_async(container.update_comment_handler.handle(command))
    click.echo(f"✏️ Comment {comment_id} updated")


@cli.command("comment-remove")
@click.argument("comment_id", type=int)
@click.option("--actor", "actor_id", type=int, required=True, help="Acting user ID")
def remove_comment(comment_id: int, actor_id: int):
    """Delete a comment."""
    from ..commands import RemoveComment

    container = get_container()
    command = RemoveComment(comment_id=comment_id, actor_id=actor_id)
    run_async(container.remove_comment_handler.handle(command))
    click.echo(f"🗑️ Comment {comment_id} removed")


@cli.command("show")
@click.argument("task_id", type=int)
def show_task(task_id: int):
    """Show task details."""
    from ..domain.errors import NotFoundError
    from ..domain.models import TaskId

    container = get_container()

    async def _load():
        tid = TaskId.from_int(task_id)
        async with container.unit_of_work as uow:
            task = await uow.tasks.find(tid)
        if task is None:
            raise NotFoundError("Task", tid)
        return task

    task = run_async(_load())

    click.echo(f"ID: {task.id}")
    click.echo(f"Title: {task.title}")
    click.echo(f"Status: {task.status.value}")
    click.echo(f"Priority: {task.priority.value}")
    click.echo(f"Creator: {task.user_id}")
    click.echo(f"Assignee: {task.assigned_user_id}")

    if task.description:
        click.echo(f"Description: {task.description}")

    if task.due_date:
        click.echo(f"Due Date: {task.due_date.strftime('%Y-%m-%d %H:%M')}")

    if task.completed_at:
        click.echo(f"Completed: {task.completed_at.strftime('%Y-%m-%d %H:%M')}")

    click.echo(f"Created: {task.created_at.strftime('%Y-%m-%d %H:%M')}")
    click.echo(f"Updated: {task.updated_at.strftime('%Y-%m-%d %H:%M')}")


@cli.command("events")
@click.option("--name", "-n", "event_name", help="Filter by event name, e.g. task.created")
@click.option("--since", type=click.DateTime(), help="Only events at or after this time (UTC)")
@click.option("--limit", "-l", default=20, help="Maximum number of events to show")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def list_events(
    event_name: Optional[str],
    since: Optional[datetime],
    limit: int,
    output_json: bool,
):
    """List stored domain events, newest first."""
    container = get_container()

    async def _query():
        async with container.unit_of_work as uow:
            return await uow.events.query(
                event_name=event_name, since=_as_utc(since), limit=limit
            )

    records = run_async(_query())

    if output_json:
        output = {
            "events": [
                {
                    "event_name": r.event_name,
                    "event_data": r.event_data,
                    "occurred_at": r.occurred_at.isoformat(),
                }
                for r in records
            ],
            "total": len(records),
        }
        click.echo(json.dumps(output, indent=2, ensure_ascii=False))
        return

    if not records:
        click.echo("No events found.")
        return

    click.echo(f"Found {len(records)} event(s):\n")
    for record in records:
        data = record.event_data
        click.echo(
            f"{record.occurred_at.strftime('%Y-%m-%d %H:%M:%S')} "
            f"{record.event_name} {json.dumps(data, ensure_ascii=False)}"
        )


@cli.command("audit")
@click.option("--entity-type", "-t", help="task, comment, client or deal")
@click.option("--entity-id", "-i", type=int, help="Entity ID")
@click.option("--limit", "-l", default=20, help="Maximum number of entries to show")
def list_audit(entity_type: Optional[str], entity_id: Optional[int], limit: int):
    """Show the audit trail, newest first."""
    container = get_container()
    entries = run_async(
        container.audit_log.entries(
            entity_type=entity_type, entity_id=entity_id, limit=limit
        )
    )

    if not entries:
        click.echo("No audit entries found.")
        return

    for entry in entries:
        actor = f"user {entry.user_id}" if entry.user_id is not None else "system"
        click.echo(
            f"{entry.created_at.strftime('%Y-%m-%d %H:%M:%S')} {entry.action} "
            f"{entry.entity_type}:{entry.entity_id} by {actor}"
        )


if __name__ == "__main__":
    cli()

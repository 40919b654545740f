"""Shared pytest fixtures."""

import pytest
from datetime import datetime, timezone

from taskcore.clock import FixedClock
from taskcore.domain.events import DomainEvent
from taskcore.domain.models import Task, TaskPriority, TaskStatus, TaskTitle, User
from taskcore.events.bus import EventBus, HandlerRegistry
from taskcore.notifications.local import InMemoryNotifier
from taskcore.repositories.memory import (
    InMemoryAuditLog,
    InMemoryUnitOfWork,
    InMemoryUserRepository,
)


ALICE = User(id=1, name="Alice", email="alice@example.com")
BOB = User(id=2, name="Bob", email="bob@example.com")
CAROL = User(id=3, name="Carol")


class RecordingHandler:
    """Event handler that remembers every event it receives."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at a known instant."""
    return FixedClock(datetime(2026, 2, 21, 15, 30, tzinfo=timezone.utc))


@pytest.fixture
def uow() -> InMemoryUnitOfWork:
    """In-memory unit of work with three known users."""
    return InMemoryUnitOfWork(users=InMemoryUserRepository([ALICE, BOB, CAROL]))


@pytest.fixture
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def recorder() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def bus(recorder) -> EventBus:
    """Bus that only records what it dispatches."""
    return EventBus(HandlerRegistry().register_for_all(recorder))


@pytest.fixture
def sample_task(clock) -> Task:
    """Unsaved pending task created by Alice for Bob."""
    return Task(
        title=TaskTitle.from_string("Test task"),
        priority=TaskPriority.MEDIUM,
        status=TaskStatus.PENDING,
        user_id=ALICE.id,
        assigned_user_id=BOB.id,
        created_at=clock.now(),
        updated_at=clock.now(),
    )

"""Tests for in-memory repositories."""

import pytest
from datetime import datetime, timedelta, timezone

from taskcore.domain.errors import ConflictError, NotFoundError
from taskcore.domain.events import CommentAdded, TaskCompleted, TaskStatusChanged
from taskcore.domain.models import AuditEntry, Comment, TaskId, TaskStatus, User
from taskcore.repositories.memory import (
    InMemoryAuditLog,
    InMemoryCommentRepository,
    InMemoryEventStore,
    InMemoryTaskRepository,
    InMemoryUnitOfWork,
    InMemoryUserRepository,
)


class TestInMemoryTaskRepository:
    """Tests for InMemoryTaskRepository."""

    @pytest.fixture
    def repository(self) -> InMemoryTaskRepository:
        """Create a fresh repository for each test."""
        return InMemoryTaskRepository()

    @pytest.mark.asyncio
    async def test_save_assigns_sequential_ids(self, repository, sample_task, clock):
        """New tasks get ids starting from 1."""
        first = await repository.save(sample_task)
        assert first.id == TaskId.from_int(1)
        assert first.version == 1

        other = await repository.find(first.id)
        other.id = None
        second = await repository.save(other)
        assert second.id == TaskId.from_int(2)

    @pytest.mark.asyncio
    async def test_find_returns_copy(self, repository, sample_task, clock):
        """Mutating a loaded task does not touch the stored one."""
        await repository.save(sample_task)

        loaded = await repository.find(sample_task.id)
        loaded.change_status(TaskStatus.IN_PROGRESS, clock.now())

        stored = await repository.find(sample_task.id)
        assert stored.status == TaskStatus.PENDING

    @pytest.mark.asyncio
    async def test_find_nonexistent_returns_none(self, repository):
        assert await repository.find(TaskId.from_int(99)) is None

    @pytest.mark.asyncio
    async def test_save_bumps_version(self, repository, sample_task, clock):
        await repository.save(sample_task)
        loaded = await repository.find(sample_task.id)
        loaded.change_status(TaskStatus.IN_PROGRESS, clock.now())

        saved = await repository.save(loaded)

        assert saved.version == 2

    @pytest.mark.asyncio
    async def test_stale_save_raises_conflict(self, repository, sample_task, clock):
        """Two writers loading the same version: the second one loses."""
        await repository.save(sample_task)
        first = await repository.find(sample_task.id)
        second = await repository.find(sample_task.id)

        first.change_status(TaskStatus.IN_PROGRESS, clock.now())
        await repository.save(first)

        second.change_status(TaskStatus.COMPLETED, clock.now())
        with pytest.raises(ConflictError) as exc_info:
            await repository.save(second)

        assert exc_info.value.expected_version == 1
        stored = await repository.find(sample_task.id)
        assert stored.status == TaskStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_save_unknown_id_raises_not_found(self, repository, sample_task):
        sample_task.id = TaskId.from_int(42)
        with pytest.raises(NotFoundError):
            await repository.save(sample_task)


class TestInMemoryUserRepository:
    @pytest.mark.asyncio
    async def test_seeded_users(self):
        repository = InMemoryUserRepository([User(id=5, name="Eve")])

        assert (await repository.find(5)).name == "Eve"
        assert await repository.find(6) is None

    @pytest.mark.asyncio
    async def test_save_replaces(self):
        repository = InMemoryUserRepository([User(id=5, name="Eve")])
        await repository.save(User(id=5, name="Eve Adams"))

        assert (await repository.find(5)).name == "Eve Adams"


class TestInMemoryCommentRepository:
    @pytest.mark.asyncio
    async def test_save_and_list_for_task(self, clock):
        repository = InMemoryCommentRepository()
        for task_id, text in [(1, "first"), (2, "other"), (1, "second")]:
            await repository.save(
                Comment(
                    task_id=TaskId.from_int(task_id),
                    author_id=1,
                    content=text,
                    created_at=clock.now(),
                )
            )

        comments = await repository.for_task(TaskId.from_int(1))

        assert [c.content for c in comments] == ["first", "second"]
        assert [c.id for c in comments] == [1, 3]

    @pytest.mark.asyncio
    async def test_remove(self, clock):
        repository = InMemoryCommentRepository()
        comment = await repository.save(
            Comment(
                task_id=TaskId.from_int(1),
                author_id=1,
                content="temporary",
                created_at=clock.now(),
            )
        )

        await repository.remove(comment.id)

        assert await repository.find(comment.id) is None
        with pytest.raises(NotFoundError, match="Comment 1 not found"):
            await repository.remove(comment.id)


class TestInMemoryEventStore:
    """Tests for InMemoryEventStore."""

    @pytest.fixture
    def store(self) -> InMemoryEventStore:
        return InMemoryEventStore()

    def _completed(self, clock, task_id: int) -> TaskCompleted:
        return TaskCompleted.create(
            clock,
            task_id=TaskId.from_int(task_id),
            completed_by_user_id=1,
            completed_at=clock.now(),
        )

    @pytest.mark.asyncio
    async def test_append_stores_flat_payload(self, store, clock):
        await store.append(self._completed(clock, 7))

        [record] = await store.query()

        assert record.event_name == "task.completed"
        assert record.event_data["task_id"] == 7
        assert record.occurred_at == clock.now()
        assert record.sequence == 1

    @pytest.mark.asyncio
    async def test_query_newest_first(self, store, clock):
        for task_id in (1, 2, 3):
            await store.append(self._completed(clock, task_id))
            clock.advance(seconds=1)

        records = await store.query()

        assert [r.event_data["task_id"] for r in records] == [3, 2, 1]

    @pytest.mark.asyncio
    async def test_same_timestamp_ordered_by_append(self, store, clock):
        """Events stamped at the same instant keep append order (reversed)."""
        await store.append(self._completed(clock, 1))
        await store.append(self._completed(clock, 2))

        records = await store.query()

        assert [r.event_data["task_id"] for r in records] == [2, 1]

    @pytest.mark.asyncio
    async def test_query_filters_by_name(self, store, clock):
        await store.append(self._completed(clock, 1))
        await store.append(
            CommentAdded.create(
                clock,
                comment_id=1,
                task_id=TaskId.from_int(1),
                content="hi",
                author_id=2,
            )
        )

        records = await store.query(event_name="comment.added")

        assert [r.event_name for r in records] == ["comment.added"]

    @pytest.mark.asyncio
    async def test_query_since_is_inclusive(self, store, clock):
        await store.append(self._completed(clock, 1))
        boundary = clock.advance(minutes=1)
        await store.append(self._completed(clock, 2))
        clock.advance(minutes=1)
        await store.append(self._completed(clock, 3))

        records = await store.query(since=boundary)

        assert [r.event_data["task_id"] for r in records] == [3, 2]

    @pytest.mark.asyncio
    async def test_query_limit(self, store, clock):
        for task_id in range(1, 6):
            await store.append(self._completed(clock, task_id))
            clock.advance(seconds=1)

        records = await store.query(limit=2)

        assert [r.event_data["task_id"] for r in records] == [5, 4]

    @pytest.mark.asyncio
    async def test_record_rebuilds_event(self, store, clock):
        event = TaskStatusChanged.create(
            clock,
            task_id=TaskId.from_int(3),
            old_status=TaskStatus.PENDING,
            new_status=TaskStatus.IN_PROGRESS,
            changed_by_user_id=1,
        )
        await store.append(event)

        [record] = await store.query()

        assert record.to_event() == event

    @pytest.mark.asyncio
    async def test_naive_since_is_read_as_utc(self, store, clock):
        await store.append(self._completed(clock, 1))

        before = await store.query(since=datetime(2026, 2, 21, 15, 0))
        after = await store.query(since=datetime(2026, 2, 21, 16, 0))

        assert len(before) == 1
        assert after == []

    @pytest.mark.asyncio
    async def test_mixed_offsets_order_by_instant(self, store, clock):
        tokyo = timezone(timedelta(hours=9))
        clock.set(datetime(2026, 2, 21, 10, 0, tzinfo=tokyo))
        await store.append(self._completed(clock, 1))
        clock.set(datetime(2026, 2, 21, 2, 0, tzinfo=timezone.utc))
        await store.append(self._completed(clock, 2))

        newest = await store.query()
        since = await store.query(since=datetime(2026, 2, 21, 1, 30, tzinfo=timezone.utc))

        assert [r.event_data["task_id"] for r in newest] == [2, 1]
        assert [r.event_data["task_id"] for r in since] == [2]


class TestInMemoryAuditLog:
    def _entry(self, clock, entity_id: int, action: str = "task.created") -> AuditEntry:
        return AuditEntry(
            action=action,
            entity_type="task",
            entity_id=entity_id,
            user_id=1,
            details={},
            created_at=clock.now(),
        )

    @pytest.mark.asyncio
    async def test_entries_newest_first_and_filtered(self, audit_log, clock):
        await audit_log.record(self._entry(clock, 1))
        await audit_log.record(self._entry(clock, 2))
        await audit_log.record(self._entry(clock, 1, "task.completed"))

        entries = await audit_log.entries("task", 1)

        assert [e.action for e in entries] == ["task.completed", "task.created"]
        assert len(audit_log) == 3

    @pytest.mark.asyncio
    async def test_entries_limit(self, clock):
        audit_log = InMemoryAuditLog()
        for entity_id in range(1, 4):
            await audit_log.record(self._entry(clock, entity_id))

        entries = await audit_log.entries(limit=2)

        assert [e.entity_id for e in entries] == [3, 2]


class TestInMemoryUnitOfWork:
    """Tests for InMemoryUnitOfWork."""

    @pytest.mark.asyncio
    async def test_commit_keeps_changes(self, uow, sample_task, clock):
        async with uow:
            await uow.tasks.save(sample_task)
            await uow.events.append(
                TaskCompleted.create(
                    clock,
                    task_id=sample_task.id,
                    completed_by_user_id=1,
                    completed_at=clock.now(),
                )
            )

        assert len(uow.tasks) == 1
        assert len(uow.events) == 1
        assert uow.committed == 1
        assert uow.rolled_back == 0

    @pytest.mark.asyncio
    async def test_exception_rolls_back_everything(self, uow, sample_task, clock):
        """A failure after the task save discards the save too."""
        with pytest.raises(RuntimeError, match="boom"):
            async with uow:
                await uow.tasks.save(sample_task)
                await uow.users.save(User(id=9, name="Temp"))
                raise RuntimeError("boom")

        assert len(uow.tasks) == 0
        assert len(uow.events) == 0
        assert await uow.users.find(9) is None
        assert uow.committed == 0
        assert uow.rolled_back == 1

    @pytest.mark.asyncio
    async def test_rollback_restores_previous_task_state(self, uow, sample_task, clock):
        async with uow:
            await uow.tasks.save(sample_task)

        with pytest.raises(RuntimeError):
            async with uow:
                task = await uow.tasks.find(sample_task.id)
                task.change_status(TaskStatus.IN_PROGRESS, clock.now())
                await uow.tasks.save(task)
                raise RuntimeError("append failed")

        stored = await uow.tasks.find(sample_task.id)
        assert stored.status == TaskStatus.PENDING
        assert stored.version == 1

    @pytest.mark.asyncio
    async def test_nested_use_rejected(self, uow):
        async with uow:
            with pytest.raises(RuntimeError, match="already active"):
                async with uow:
                    pass

    @pytest.mark.asyncio
    async def test_reusable_after_exit(self, uow, sample_task):
        async with uow:
            pass
        async with uow:
            await uow.tasks.save(sample_task)

        assert uow.committed == 2

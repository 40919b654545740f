"""SQLite implementations of the repositories, event store and audit log.

A ``SqliteUnitOfWork`` opens one connection per ``async with`` block; every
repository it exposes writes through that connection, so the task row and
the event-store row are committed in the same transaction.
"""

import json
import logging
import sqlite3
import uuid
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from taskcore.domain.errors import ConflictError, NotFoundError, PersistenceError
from taskcore.domain.events import DomainEvent, format_timestamp, parse_timestamp
from taskcore.domain.models import (
    AuditEntry,
    Comment,
    Task,
    TaskId,
    TaskPriority,
    TaskStatus,
    TaskTitle,
    User,
)
from taskcore.domain.protocols import EventRecord

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT
);

CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    priority TEXT NOT NULL,
    status TEXT NOT NULL,
    user_id INTEGER NOT NULL,
    assigned_user_id INTEGER NOT NULL,
    category_id INTEGER,
    due_date TEXT,
    tag_ids TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    completed_at TEXT,
    version INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS comments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id INTEGER NOT NULL,
    author_id INTEGER NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS event_store (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_name TEXT NOT NULL,
    event_data TEXT NOT NULL,
    occurred_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_event_store_name ON event_store(event_name);
CREATE INDEX IF NOT EXISTS idx_event_store_occurred_at ON event_store(occurred_at);

CREATE TABLE IF NOT EXISTS audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    action TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id INTEGER NOT NULL,
    user_id INTEGER,
    details TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_audit_log_entity ON audit_log(entity_type, entity_id);
"""


class SqliteDatabase:
    """Connection factory for a SQLite database file.

    ``":memory:"`` maps to a named shared-cache database. It stays alive
    while ``initialize`` holds its anchor connection open, so every unit of
    work sees the same tables. ``close`` releases it.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = str(path)
        self._uri: Optional[str] = None
        self._anchor: Optional[sqlite3.Connection] = None
        if self._path == ":memory:":
            self._uri = f"file:taskcore-{uuid.uuid4().hex}?mode=memory&cache=shared"

    @property
    def path(self) -> str:
        return self._path

    @property
    def in_memory(self) -> bool:
        return self._uri is not None

    def connect(self) -> sqlite3.Connection:
        try:
            if self._uri:
                conn = sqlite3.connect(self._uri, uri=True)
            else:
                conn = sqlite3.connect(self._path)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open database {self._path}: {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create tables if they do not exist."""
        if self.in_memory:
            if self._anchor is None:
                self._anchor = self.connect()
        else:
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        with closing(self.connect()) as conn:
            conn.executescript(SCHEMA)
            conn.commit()
        logger.debug(f"Initialized database at {self._path}")

    def close(self) -> None:
        """Drop the in-memory database, if any."""
        if self._anchor is not None:
            self._anchor.close()
            self._anchor = None


def _ts(moment: Optional[datetime]) -> Optional[str]:
    return format_timestamp(moment) if moment else None


def _parse(raw: Optional[str]) -> Optional[datetime]:
    return parse_timestamp(raw) if raw else None


class SqliteTaskRepository:
    """Task persistence with an optimistic version check."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def find(self, task_id: TaskId) -> Optional[Task]:
        try:
            row = self._conn.execute(
                "SELECT * FROM tasks WHERE id = ?", (task_id.value,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot load task {task_id}: {e}") from e
        return self._row_to_task(row) if row else None

    async def save(self, task: Task) -> Task:
        values = {
            "title": task.title.to_string(),
            "description": task.description,
            "priority": task.priority.value,
            "status": task.status.value,
            "user_id": task.user_id,
            "assigned_user_id": task.assigned_user_id,
            "category_id": task.category_id,
            "due_date": _ts(task.due_date),
            "tag_ids": json.dumps(task.tag_ids),
            "created_at": _ts(task.created_at),
            "updated_at": _ts(task.updated_at),
            "completed_at": _ts(task.completed_at),
        }
        try:
            if task.id is None:
                self._insert(task, values)
            else:
                self._update(task, values)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot save task: {e}") from e

        task.version += 1
        return task

    def _insert(self, task: Task, values: dict[str, Any]) -> None:
        columns = ", ".join(values) + ", version"
        placeholders = ", ".join("?" for _ in values) + ", ?"
        cursor = self._conn.execute(
            f"INSERT INTO tasks ({columns}) VALUES ({placeholders})",
            (*values.values(), task.version + 1),
        )
        task.id = TaskId(cursor.lastrowid)

    def _update(self, task: Task, values: dict[str, Any]) -> None:
        assignments = ", ".join(f"{column} = ?" for column in values)
        cursor = self._conn.execute(
            f"UPDATE tasks SET {assignments}, version = version + 1 "
            "WHERE id = ? AND version = ?",
            (*values.values(), task.id.value, task.version),
        )
        if cursor.rowcount == 0:
            exists = self._conn.execute(
                "SELECT 1 FROM tasks WHERE id = ?", (task.id.value,)
            ).fetchone()
            if not exists:
                raise NotFoundError("Task", task.id)
            raise ConflictError("Task", task.id, task.version)

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=TaskId(row["id"]),
            title=TaskTitle(row["title"]),
            description=row["description"],
            priority=TaskPriority(row["priority"]),
            status=TaskStatus(row["status"]),
            user_id=row["user_id"],
            assigned_user_id=row["assigned_user_id"],
            category_id=row["category_id"],
            due_date=_parse(row["due_date"]),
            tag_ids=json.loads(row["tag_ids"]),
            created_at=_parse(row["created_at"]),
            updated_at=_parse(row["updated_at"]),
            completed_at=_parse(row["completed_at"]),
            version=row["version"],
        )


class SqliteUserRepository:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def find(self, user_id: int) -> Optional[User]:
        try:
            row = self._conn.execute(
                "SELECT id, name, email FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot load user {user_id}: {e}") from e
        if not row:
            return None
        return User(id=row["id"], name=row["name"], email=row["email"])

    async def save(self, user: User) -> User:
        try:
            self._conn.execute(
                "INSERT OR REPLACE INTO users (id, name, email) VALUES (?, ?, ?)",
                (user.id, user.name, user.email),
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot save user {user.id}: {e}") from e
        return user


class SqliteCommentRepository:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def find(self, comment_id: int) -> Optional[Comment]:
        try:
            row = self._conn.execute(
                "SELECT * FROM comments WHERE id = ?", (comment_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot load comment {comment_id}: {e}") from e
        if not row:
            return None
        return Comment(
            id=row["id"],
            task_id=TaskId(row["task_id"]),
            author_id=row["author_id"],
            content=row["content"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=_parse(row["updated_at"]),
        )

    async def save(self, comment: Comment) -> Comment:
        try:
            if comment.id is None:
                cursor = self._conn.execute(
                    "INSERT INTO comments (task_id, author_id, content, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    (
                        comment.task_id.value,
                        comment.author_id,
                        comment.content,
                        format_timestamp(comment.created_at),
                    ),
                )
                comment.id = cursor.lastrowid
            else:
                cursor = self._conn.execute(
                    "UPDATE comments SET content = ?, updated_at = ? WHERE id = ?",
                    (comment.content, _ts(comment.updated_at), comment.id),
                )
                if cursor.rowcount == 0:
                    raise NotFoundError("Comment", comment.id)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot save comment: {e}") from e
        return comment

    async def remove(self, comment_id: int) -> None:
        try:
            cursor = self._conn.execute(
                "DELETE FROM comments WHERE id = ?", (comment_id,)
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot remove comment {comment_id}: {e}") from e
        if cursor.rowcount == 0:
            raise NotFoundError("Comment", comment_id)


class SqliteEventStore:
    """Append-only ``event_store`` table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def append(self, event: DomainEvent) -> None:
        try:
            self._conn.execute(
                "INSERT INTO event_store (event_name, event_data, occurred_at) "
                "VALUES (?, ?, ?)",
                (
                    event.event_name,
                    json.dumps(event.to_dict(), ensure_ascii=False),
                    format_timestamp(event.occurred_at),
                ),
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot append {event.event_name}: {e}") from e

    async def query(
        self,
        event_name: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> Sequence[EventRecord]:
        clauses = []
        params: list[Any] = []
        if event_name:
            clauses.append("event_name = ?")
            params.append(event_name)
        if since:
            clauses.append("occurred_at >= ?")
            params.append(format_timestamp(since))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        try:
            rows = self._conn.execute(
                f"SELECT id, event_name, event_data, occurred_at FROM event_store "
                f"{where} ORDER BY occurred_at DESC, id DESC LIMIT ?",
                (*params, limit),
            ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot query event store: {e}") from e

        return [
            EventRecord(
                event_name=row["event_name"],
                event_data=json.loads(row["event_data"]),
                occurred_at=parse_timestamp(row["occurred_at"]),
                sequence=row["id"],
            )
            for row in rows
        ]


class SqliteAuditLog:
    """Audit trail table. Each record is its own short transaction."""

    def __init__(self, database: SqliteDatabase) -> None:
        self._database = database

    async def record(self, entry: AuditEntry) -> None:
        try:
            with closing(self._database.connect()) as conn:
                conn.execute(
                    "INSERT INTO audit_log "
                    "(action, entity_type, entity_id, user_id, details, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        entry.action,
                        entry.entity_type,
                        entry.entity_id,
                        entry.user_id,
                        json.dumps(entry.details, ensure_ascii=False),
                        format_timestamp(entry.created_at),
                    ),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot write audit entry: {e}") from e

    async def entries(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        limit: int = 50,
    ) -> Sequence[AuditEntry]:
        clauses = []
        params: list[Any] = []
        if entity_type:
            clauses.append("entity_type = ?")
            params.append(entity_type)
        if entity_id is not None:
            clauses.append("entity_id = ?")
            params.append(entity_id)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        try:
            with closing(self._database.connect()) as conn:
                rows = conn.execute(
                    f"SELECT * FROM audit_log {where} ORDER BY id DESC LIMIT ?",
                    (*params, limit),
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot read audit log: {e}") from e

        return [
            AuditEntry(
                action=row["action"],
                entity_type=row["entity_type"],
                entity_id=row["entity_id"],
                user_id=row["user_id"],
                details=json.loads(row["details"]),
                created_at=parse_timestamp(row["created_at"]),
            )
            for row in rows
        ]


class SqliteUnitOfWork:
    """One SQLite transaction per ``async with`` block."""

    tasks: SqliteTaskRepository
    users: SqliteUserRepository
    comments: SqliteCommentRepository
    events: SqliteEventStore

    def __init__(self, database: SqliteDatabase) -> None:
        self._database = database
        self._conn: Optional[sqlite3.Connection] = None

    async def __aenter__(self) -> "SqliteUnitOfWork":
        if self._conn is not None:
            raise RuntimeError("Unit of work is already active")
        self._conn = self._database.connect()
        self.tasks = SqliteTaskRepository(self._conn)
        self.users = SqliteUserRepository(self._conn)
        self.comments = SqliteCommentRepository(self._conn)
        self.events = SqliteEventStore(self._conn)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        conn = self._conn
        try:
            if exc_type is None:
                try:
                    conn.commit()
                except sqlite3.Error as e:
                    conn.rollback()
                    raise PersistenceError(f"Commit failed: {e}") from e
            else:
                conn.rollback()
        finally:
            conn.close()
            self._conn = None

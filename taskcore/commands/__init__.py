"""Commands and their handlers."""

from .commands import (
    CreateTask,
    CompleteTask,
    ChangeTaskStatus,
    AssignTask,
    AddComment,
    UpdateComment,
    RemoveComment,
)
from .handlers import (
    CommandHandler,
    CreateTaskHandler,
    CompleteTaskHandler,
    ChangeTaskStatusHandler,
    AssignTaskHandler,
    AddCommentHandler,
    UpdateCommentHandler,
    RemoveCommentHandler,
)

__all__ = [
    "CreateTask",
    "CompleteTask",
    "ChangeTaskStatus",
    "AssignTask",
    "AddComment",
    "UpdateComment",
    "RemoveComment",
    "CommandHandler",
    "CreateTaskHandler",
    "CompleteTaskHandler",
    "ChangeTaskStatusHandler",
    "AssignTaskHandler",
    "AddCommentHandler",
    "UpdateCommentHandler",
    "RemoveCommentHandler",
]

"""Domain models exposed for the task board service."""

from __future__ import annotations

from .board import (
    DEFAULT_BACKGROUND,
    Board,
    BoardBase,
    Comment,
    DetachedBoard,
    Task,
    TaskList,
    TaskPriority,
    TaskStatus,
    generate_task_key,
)
from .common import timestamp_field, utcnow
from .user import User, normalise_email

__all__ = [
    "Board",
    "BoardBase",
    "Comment",
    "DEFAULT_BACKGROUND",
    "DetachedBoard",
    "Task",
    "TaskList",
    "TaskPriority",
    "TaskStatus",
    "User",
    "generate_task_key",
    "normalise_email",
    "timestamp_field",
    "utcnow",
]

"""Board aggregate: a board document embedding its lists, tasks and comments.

The board is the unit of mutation and persistence. Lists, tasks and comments
carry identifiers that are unique only inside the owning board, and every
mutation below operates on a request-local working copy that the service
layer persists with a single save.
"""

from __future__ import annotations

import secrets
import string
from collections.abc import Iterator, Mapping
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel

from ..errors import ConflictError, InvalidInputError, NotFoundError
from .common import utcnow

DEFAULT_BACKGROUND = "#f0f0f0"
TASK_KEY_PREFIX = "TASK-"
TASK_KEY_LENGTH = 9
_TASK_KEY_ALPHABET = string.digits + string.ascii_lowercase
_MAX_TASK_KEY_ATTEMPTS = 32


class TaskPriority(str, Enum):
    """Priority levels a task can carry."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class TaskStatus(str, Enum):
    """Workflow states of a task."""

    PENDING = "Pending"
    IN_PROGRESS = "In-Progress"
    COMPLETED = "Completed"


def _new_id() -> str:
    return uuid4().hex


def generate_task_key() -> str:
    """Return a fresh ``TASK-xxxxxxxxx`` token (9 random base36 characters)."""

    suffix = "".join(secrets.choice(_TASK_KEY_ALPHABET) for _ in range(TASK_KEY_LENGTH))
    return f"{TASK_KEY_PREFIX}{suffix}"


def _clean_title(value: object, *, entity: str) -> str:
    title = value.strip() if isinstance(value, str) else ""
    if not title:
        raise InvalidInputError(f"{entity} title is required.")
    return title


class Comment(BaseModel):
    """A comment left on a task."""

    id: str = Field(default_factory=_new_id)
    author_id: int
    text: str
    created_at: datetime = Field(default_factory=utcnow)


class Task(BaseModel):
    """A card inside a list.

    ``id`` addresses the task inside its board; ``task_id`` is the
    human-readable token matched against commit messages.
    """

    id: str = Field(default_factory=_new_id)
    title: str
    description: str | None = None
    due_date: datetime | None = None
    priority: TaskPriority = TaskPriority.LOW
    status: TaskStatus = TaskStatus.PENDING
    task_id: str = Field(default_factory=generate_task_key)
    assignee_ids: list[int] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)

    def referenced_user_ids(self) -> set[int]:
        return {*self.assignee_ids, *(comment.author_id for comment in self.comments)}


class TaskList(BaseModel):
    """An ordered column of tasks."""

    id: str = Field(default_factory=_new_id)
    title: str
    tasks: list[Task] = Field(default_factory=list)

    def find_task(self, task_id: str) -> Task | None:
        return next((task for task in self.tasks if task.id == task_id), None)


# Optional task fields that an explicit ``null`` clears.
_CLEARABLE_TASK_FIELDS = frozenset({"description", "due_date"})
# Fields an explicit ``null`` may not touch.
_REQUIRED_TASK_FIELDS = frozenset({"title", "priority", "status", "assignee_ids"})
_CLEARABLE_BOARD_FIELDS = frozenset({"github_repo"})
_REQUIRED_BOARD_FIELDS = frozenset({"title", "background"})


class BoardBase(BaseModel):
    """State and rules of the board aggregate, independent of storage."""

    title: str
    github_repo: str | None = None
    owner_id: int
    member_ids: list[int] = Field(default_factory=list)
    background: str = DEFAULT_BACKGROUND
    lists: list[TaskList] = Field(default_factory=list)
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # -- queries -----------------------------------------------------------

    def is_owner(self, user_id: int) -> bool:
        return self.owner_id == user_id

    def is_member(self, user_id: int) -> bool:
        return user_id in self.member_ids

    def find_list(self, list_id: str) -> TaskList | None:
        return next((board_list for board_list in self.lists if board_list.id == list_id), None)

    def get_list(self, list_id: str) -> TaskList:
        board_list = self.find_list(list_id)
        if board_list is None:
            raise NotFoundError("List not found.", details={"list_id": list_id})
        return board_list

    def get_task(self, list_id: str, task_id: str) -> Task:
        task = self.get_list(list_id).find_task(task_id)
        if task is None:
            raise NotFoundError("Task not found.", details={"task_id": task_id})
        return task

    def locate_task(self, task_id: str) -> tuple[TaskList, Task] | None:
        """Return the list holding ``task_id`` and the task itself."""
        for board_list in self.lists:
            task = board_list.find_task(task_id)
            if task is not None:
                return board_list, task
        return None

    def iter_tasks(self) -> Iterator[Task]:
        for board_list in self.lists:
            yield from board_list.tasks

    def task_count(self) -> int:
        return sum(len(board_list.tasks) for board_list in self.lists)

    def referenced_user_ids(self) -> set[int]:
        """All user ids the board points at: owner, members, assignees, comment authors."""
        user_ids = {self.owner_id, *self.member_ids}
        for task in self.iter_tasks():
            user_ids.update(task.referenced_user_ids())
        return user_ids

    # -- invariants --------------------------------------------------------

    def ensure_owner_membership(self) -> bool:
        """Restore ``owner_id in member_ids``; return ``True`` when a repair happened."""
        if self.owner_id in self.member_ids:
            return False
        self.member_ids.insert(0, self.owner_id)
        return True

    def _require_members(self, user_ids: list[int]) -> None:
        outsiders = [user_id for user_id in user_ids if not self.is_member(user_id)]
        if outsiders:
            raise InvalidInputError(
                "Assignees must be board members.",
                details={"user_ids": outsiders},
            )

    def _unique_task_key(self) -> str:
        taken = {task.task_id for task in self.iter_tasks()}
        for _ in range(_MAX_TASK_KEY_ATTEMPTS):
            candidate = generate_task_key()
            if candidate not in taken:
                return candidate
        raise ConflictError("Could not allocate a unique task identifier.")  # pragma: no cover

    def touch(self) -> None:
        self.updated_at = utcnow()

    # -- board-level mutations ---------------------------------------------

    def apply_changes(self, changes: Mapping[str, Any]) -> list[str]:
        """Apply a partial update and return the names of the fields that changed.

        Omitted keys are left alone. ``None`` clears ``github_repo`` and is
        rejected for ``title`` and ``background``.
        """
        changed: list[str] = []
        for field_name, value in changes.items():
            if field_name in _REQUIRED_BOARD_FIELDS and value is None:
                raise InvalidInputError(f"Board {field_name} cannot be cleared.")
            if field_name == "title":
                value = _clean_title(value, entity="Board")
            elif field_name == "background":
                value = value.strip()
                if not value:
                    raise InvalidInputError("Board background cannot be blank.")
            elif field_name in _CLEARABLE_BOARD_FIELDS:
                value = (value or "").strip() or None
            else:
                raise InvalidInputError(f"Unknown board field {field_name!r}.")
            if getattr(self, field_name) != value:
                setattr(self, field_name, value)
                changed.append(field_name)
        return changed

    def add_member(self, user_id: int) -> None:
        if self.is_member(user_id):
            raise ConflictError("User is already a member of this board.", details={"user_id": user_id})
        self.member_ids.append(user_id)

    def add_list(self, title: str) -> TaskList:
        board_list = TaskList(title=_clean_title(title, entity="List"))
        self.lists.append(board_list)
        return board_list

    def remove_list(self, list_id: str) -> bool:
        """Drop a list and its tasks; a list that is already gone is a no-op."""
        remaining = [board_list for board_list in self.lists if board_list.id != list_id]
        removed = len(remaining) != len(self.lists)
        self.lists = remaining
        return removed

    # -- task-level mutations ----------------------------------------------

    def add_task(
        self,
        list_id: str,
        *,
        title: str,
        description: str | None = None,
        due_date: datetime | None = None,
        priority: TaskPriority | None = None,
        assignee_ids: list[int] | None = None,
    ) -> Task:
        board_list = self.get_list(list_id)
        assignees = list(dict.fromkeys(assignee_ids or []))
        self._require_members(assignees)
        task = Task(
            title=_clean_title(title, entity="Task"),
            description=description,
            due_date=due_date,
            priority=priority or TaskPriority.LOW,
            status=TaskStatus.PENDING,
            task_id=self._unique_task_key(),
            assignee_ids=assignees,
        )
        board_list.tasks.append(task)
        return task

    def update_task(self, list_id: str, task_id: str, changes: Mapping[str, Any]) -> list[str]:
        """Apply a partial task update and return the names of the changed fields.

        ``title`` must always be supplied. ``None`` clears ``description`` and
        ``due_date`` and is rejected for every other field. Any status is
        accepted, including moving a completed task back.
        """
        if "title" not in changes:
            raise InvalidInputError("Task title is required.")
        task = self.get_task(list_id, task_id)
        updates: dict[str, Any] = {}
        for field_name, value in changes.items():
            if field_name in _REQUIRED_TASK_FIELDS and value is None:
                raise InvalidInputError(f"Task {field_name} cannot be cleared.")
            if field_name == "title":
                value = _clean_title(value, entity="Task")
            elif field_name == "assignee_ids":
                value = list(dict.fromkeys(value))
                self._require_members(value)
            elif field_name == "priority":
                value = TaskPriority(value)
            elif field_name == "status":
                value = TaskStatus(value)
            elif field_name not in _CLEARABLE_TASK_FIELDS:
                raise InvalidInputError(f"Unknown task field {field_name!r}.")
            updates[field_name] = value

        changed = [name for name, value in updates.items() if getattr(task, name) != value]
        for name in changed:
            setattr(task, name, updates[name])
        return changed

    def remove_task(self, list_id: str, task_id: str) -> bool:
        """Drop a task from its list; a task that is already gone is a no-op."""
        board_list = self.get_list(list_id)
        remaining = [task for task in board_list.tasks if task.id != task_id]
        removed = len(remaining) != len(board_list.tasks)
        board_list.tasks = remaining
        return removed

    def assign_member(self, list_id: str, task_id: str, user_id: int) -> Task:
        if not self.is_member(user_id):
            raise InvalidInputError("User is not a board member.", details={"user_id": user_id})
        task = self.get_task(list_id, task_id)
        if user_id not in task.assignee_ids:
            task.assignee_ids.append(user_id)
        return task

    def add_comment(self, list_id: str, task_id: str, *, author_id: int, text: str) -> Comment:
        body = text.strip() if isinstance(text, str) else ""
        if not body:
            raise InvalidInputError("Comment text is required.")
        task = self.get_task(list_id, task_id)
        comment = Comment(author_id=author_id, text=body)
        task.comments.append(comment)
        return comment

    def move_task(self, task_id: str, destination_list_id: str) -> Task:
        """Move a task to the end of ``destination_list_id``.

        The destination is resolved before anything is detached, so a failed
        move leaves the source list untouched.
        """
        located = self.locate_task(task_id)
        if located is None:
            raise NotFoundError("Task not found.", details={"task_id": task_id})
        destination = self.find_list(destination_list_id)
        if destination is None:
            raise NotFoundError("Destination list not found.", details={"list_id": destination_list_id})
        source, task = located
        source.tasks = [item for item in source.tasks if item.id != task_id]
        destination.tasks.append(task)
        return task


class Board(Document, BoardBase):
    """Persistent board document; lists and tasks are embedded."""

    class Settings:
        name = "boards"
        indexes = [
            IndexModel([("owner_id", ASCENDING)], name="boards_owner_id"),
            IndexModel([("member_ids", ASCENDING)], name="boards_member_ids"),
            IndexModel([("lists.tasks.id", ASCENDING)], name="boards_task_ids"),
        ]


class DetachedBoard(BoardBase):
    """A board kept outside MongoDB, used by the in-memory board store."""

    id: PydanticObjectId | None = None


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
    "generate_task_key",
]

"""Request and response schemas for boards, lists, tasks and commit checks.

Update payloads distinguish omitted fields from explicit ``null``: only the
keys a client actually sent reach the aggregate (``exclude_unset``).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from ..models import BoardBase, Comment, Task, TaskList, TaskPriority, TaskStatus, User
from ..services.commits import CommitMatch
from .user import UserSummary

UserDirectory = Mapping[int, User]


class BoardCreate(BaseModel):
    title: str = ""
    github_repo: str | None = Field(default=None, description="Repository as owner/repo")
    background: str | None = Field(default=None, description="Colour code or image URL")


class BoardUpdate(BaseModel):
    """Partial board update. Send ``github_repo: null`` to unlink the repository."""

    title: str | None = None
    github_repo: str | None = None
    background: str | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class InviteRequest(BaseModel):
    email: EmailStr


class ListCreate(BaseModel):
    title: str = ""


class TaskCreate(BaseModel):
    title: str = ""
    description: str | None = None
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    assignee_ids: list[int] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Task update. ``title`` is required; other omitted fields stay as they are."""

    title: str | None = None
    description: str | None = None
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    assignee_ids: list[int] | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class AssignRequest(BaseModel):
    user_id: int


class CommentCreate(BaseModel):
    text: str = ""


class MoveTaskRequest(BaseModel):
    destination_list_id: str = Field(min_length=1)


class CommentRead(BaseModel):
    id: str
    author: UserSummary
    text: str
    created_at: datetime

    @classmethod
    def build(cls, comment: Comment, users: UserDirectory) -> "CommentRead":
        return cls(
            id=comment.id,
            author=UserSummary.lookup(comment.author_id, users),
            text=comment.text,
            created_at=comment.created_at,
        )


class TaskRead(BaseModel):
    id: str
    task_id: str
    title: str
    description: str | None = None
    due_date: datetime | None = None
    priority: TaskPriority
    status: TaskStatus
    assignees: list[UserSummary]
    comments: list[CommentRead]

    @classmethod
    def build(cls, task: Task, users: UserDirectory) -> "TaskRead":
        return cls(
            id=task.id,
            task_id=task.task_id,
            title=task.title,
            description=task.description,
            due_date=task.due_date,
            priority=task.priority,
            status=task.status,
            assignees=[UserSummary.lookup(user_id, users) for user_id in task.assignee_ids],
            comments=[CommentRead.build(comment, users) for comment in task.comments],
        )


class ListRead(BaseModel):
    id: str
    title: str
    tasks: list[TaskRead]

    @classmethod
    def build(cls, board_list: TaskList, users: UserDirectory) -> "ListRead":
        return cls(
            id=board_list.id,
            title=board_list.title,
            tasks=[TaskRead.build(task, users) for task in board_list.tasks],
        )


class BoardRead(BaseModel):
    id: str
    title: str
    github_repo: str | None = None
    background: str
    owner: UserSummary
    members: list[UserSummary]
    lists: list[ListRead]
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def build(cls, board: BoardBase, users: UserDirectory) -> "BoardRead":
        return cls(
            id=str(board.id),  # type: ignore[attr-defined]
            title=board.title,
            github_repo=board.github_repo,
            background=board.background,
            owner=UserSummary.lookup(board.owner_id, users),
            members=[UserSummary.lookup(user_id, users) for user_id in board.member_ids],
            lists=[ListRead.build(board_list, users) for board_list in board.lists],
            version=board.version,
            created_at=board.created_at,
            updated_at=board.updated_at,
        )


class CommitMatchRead(BaseModel):
    task_id: str
    commit_id: str

    @classmethod
    def build(cls, match: CommitMatch) -> "CommitMatchRead":
        return cls(task_id=match.task_id, commit_id=match.commit_id)


class CommitCheckResponse(BaseModel):
    """Tasks closed by this check; empty when nothing matched."""

    matched: list[CommitMatchRead]


__all__ = [
    "AssignRequest",
    "BoardCreate",
    "BoardRead",
    "BoardUpdate",
    "CommentCreate",
    "CommentRead",
    "CommitCheckResponse",
    "CommitMatchRead",
    "InviteRequest",
    "ListCreate",
    "ListRead",
    "MoveTaskRequest",
    "TaskCreate",
    "TaskRead",
    "TaskUpdate",
    "UserDirectory",
]

"""Board aggregate engine: every board, list and task operation.

Each mutation follows the same path: take the board's lock, load a fresh
working copy, check that the board exists, authorize the principal, apply the
change in memory and write the board back with one compare-and-swap save.
Nothing is written when the change raises or leaves the board as it was.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from beanie import PydanticObjectId

from ..core.config import Settings
from ..errors import InvalidInputError, NotFoundError
from ..integrations.github import parse_repository_ref
from ..models import BoardBase, Comment, Task, TaskList, TaskPriority, User
from ..repositories import BoardRepository, parse_board_id
from .authorization import BoardRole, require_member, require_owner
from .users import UserService

logger = logging.getLogger(__name__)


def _require_board_id(board_id: str | PydanticObjectId) -> PydanticObjectId:
    object_id = parse_board_id(board_id)
    if object_id is None:
        raise NotFoundError("Board not found.", details={"board_id": str(board_id)})
    return object_id


def _normalise_repository(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    owner, repo = parse_repository_ref(value)
    return f"{owner}/{repo}"


class BoardService:
    """Operations on board aggregates on behalf of an authenticated principal."""

    def __init__(self, repository: BoardRepository, users: UserService, settings: Settings) -> None:
        self._repository = repository
        self._users = users
        self._settings = settings

    async def _load(self, board_id: PydanticObjectId) -> BoardBase:
        board = await self._repository.get(board_id)
        if board is None:
            logger.info("Board not found", extra={"board_id": str(board_id)})
            raise NotFoundError("Board not found.", details={"board_id": str(board_id)})
        return board

    async def load_for(self, principal_id: int, board_id: str | PydanticObjectId) -> BoardBase:
        """Load a board the principal may read, without taking its lock."""
        board = await self._load(_require_board_id(board_id))
        require_member(principal_id, board)
        return board

    @asynccontextmanager
    async def editing(
        self,
        principal_id: int,
        board_id: str | PydanticObjectId,
        *,
        role: BoardRole = BoardRole.MEMBER,
    ) -> AsyncIterator[BoardBase]:
        """Yield a locked, authorized working copy and save it on a clean exit."""
        object_id = _require_board_id(board_id)
        async with self._repository.lock(object_id):
            board = await self._load(object_id)
            if role is BoardRole.OWNER:
                require_owner(principal_id, board)
            else:
                require_member(principal_id, board)
            before = board.model_dump()
            yield board
            if board.model_dump() != before:
                await self._repository.save(board)

    # -- boards ------------------------------------------------------------

    async def create_board(
        self,
        principal_id: int,
        *,
        title: str,
        github_repo: str | None = None,
        background: str | None = None,
    ) -> BoardBase:
        cleaned_title = (title or "").strip()
        if not cleaned_title:
            raise InvalidInputError("Board title is required.")
        board = self._repository.new_board(
            title=cleaned_title,
            github_repo=_normalise_repository(github_repo),
            owner_id=principal_id,
            member_ids=[principal_id],
            background=(background or "").strip() or self._settings.board_default_background,
        )
        return await self._repository.add(board)

    async def get_board(self, principal_id: int, board_id: str) -> BoardBase:
        """Return the board, restoring ``owner in members`` first if it was lost."""
        board = await self.load_for(principal_id, board_id)
        if board.owner_id in board.member_ids:
            return board
        async with self.editing(principal_id, board_id) as board:
            if board.ensure_owner_membership():
                logger.warning("Restored board owner membership", extra={"board_id": str(board.id)})
        return board

    async def list_boards(self, principal_id: int) -> list[BoardBase]:
        return await self._repository.list_for_member(principal_id)

    async def update_board(self, principal_id: int, board_id: str, changes: Mapping[str, Any]) -> BoardBase:
        """Owner-only partial update; see ``BoardBase.apply_changes``."""
        updates = dict(changes)
        async with self.editing(principal_id, board_id, role=BoardRole.OWNER) as board:
            if "github_repo" in updates:
                updates["github_repo"] = _normalise_repository(updates["github_repo"])
            board.apply_changes(updates)
        return board

    async def delete_board(self, principal_id: int, board_id: str) -> None:
        object_id = _require_board_id(board_id)
        async with self._repository.lock(object_id):
            board = await self._load(object_id)
            require_owner(principal_id, board)
            await self._repository.delete(board)

    async def invite_member(self, principal_id: int, board_id: str, email: str) -> BoardBase:
        async with self.editing(principal_id, board_id, role=BoardRole.OWNER) as board:
            invitee = await self._users.get_user_by_email(email)
            if invitee is None or invitee.id is None:
                raise NotFoundError("User not found.", details={"email": email})
            board.add_member(invitee.id)
        logger.info("Member invited", extra={"board_id": str(board.id), "user_id": invitee.id})
        return board

    # -- lists -------------------------------------------------------------

    async def create_list(self, principal_id: int, board_id: str, title: str) -> TaskList:
        async with self.editing(principal_id, board_id) as board:
            board_list = board.add_list(title)
        return board_list

    async def delete_list(self, principal_id: int, board_id: str, list_id: str) -> bool:
        async with self.editing(principal_id, board_id) as board:
            removed = board.remove_list(list_id)
        return removed

    # -- tasks -------------------------------------------------------------

    async def create_task(
        self,
        principal_id: int,
        board_id: str,
        list_id: str,
        *,
        title: str,
        description: str | None = None,
        due_date: datetime | None = None,
        priority: TaskPriority | None = None,
        assignee_ids: list[int] | None = None,
    ) -> Task:
        async with self.editing(principal_id, board_id) as board:
            task = board.add_task(
                list_id,
                title=title,
                description=description,
                due_date=due_date,
                priority=priority,
                assignee_ids=assignee_ids,
            )
        return task

    async def update_task(
        self,
        principal_id: int,
        board_id: str,
        list_id: str,
        task_id: str,
        changes: Mapping[str, Any],
    ) -> Task:
        """Apply ``changes`` to a task; ``task_id`` is the task's ``id``."""
        async with self.editing(principal_id, board_id) as board:
            board.update_task(list_id, task_id, changes)
            task = board.get_task(list_id, task_id)
        return task

    async def delete_task(self, principal_id: int, board_id: str, list_id: str, task_id: str) -> bool:
        async with self.editing(principal_id, board_id) as board:
            removed = board.remove_task(list_id, task_id)
        return removed

    async def assign_member(
        self,
        principal_id: int,
        board_id: str,
        list_id: str,
        task_id: str,
        user_id: int,
    ) -> Task:
        async with self.editing(principal_id, board_id) as board:
            task = board.assign_member(list_id, task_id, user_id)
        return task

    async def add_comment(
        self,
        principal_id: int,
        board_id: str,
        list_id: str,
        task_id: str,
        text: str,
    ) -> tuple[Task, Comment]:
        async with self.editing(principal_id, board_id) as board:
            comment = board.add_comment(list_id, task_id, author_id=principal_id, text=text)
            task = board.get_task(list_id, task_id)
        return task, comment

    async def move_task(self, principal_id: int, task_id: str, destination_list_id: str) -> Task:
        """Move a task addressed only by its ``id``, whichever board holds it."""
        located = await self._repository.find_containing_task(task_id)
        if located is None:
            raise NotFoundError("Task not found.", details={"task_id": task_id})
        return await self.move_task_on_board(principal_id, str(located.id), task_id, destination_list_id)

    async def move_task_on_board(
        self,
        principal_id: int,
        board_id: str,
        task_id: str,
        destination_list_id: str,
    ) -> Task:
        async with self.editing(principal_id, board_id) as board:
            task = board.move_task(task_id, destination_list_id)
        logger.info(
            "Task moved",
            extra={"board_id": str(board.id), "task_id": task_id, "list_id": destination_list_id},
        )
        return task

    # -- projections -------------------------------------------------------

    async def user_directory(self, boards: Iterable[BoardBase]) -> dict[int, User]:
        """Users referenced by ``boards``, keyed by id."""
        user_ids: set[int] = set()
        for board in boards:
            user_ids.update(board.referenced_user_ids())
        return await self._users.users_by_id(user_ids)

    async def task_directory(self, task: Task) -> dict[int, User]:
        """Users referenced by one task, keyed by id."""
        return await self._users.users_by_id(task.referenced_user_ids())


__all__ = ["BoardService"]

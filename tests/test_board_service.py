from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from taskboard.app.errors import (
    ConcurrentModificationError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from taskboard.app.models import TaskStatus, User
from taskboard.app.repositories import InMemoryBoardRepository
from taskboard.app.services import BoardService

pytestmark = pytest.mark.asyncio

MakeUser = Callable[..., Awaitable[User]]


async def test_create_board_makes_owner_a_member(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()

    board = await board_service.create_board(owner.id, title=" Sprint 1 ", github_repo="acme/widgets.git")

    assert board.title == "Sprint 1"
    assert board.owner_id == owner.id
    assert board.member_ids == [owner.id]
    assert board.github_repo == "acme/widgets"
    assert board.background == "#f0f0f0"
    assert board.version == 0


async def test_create_board_validates_input(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()

    with pytest.raises(InvalidInputError):
        await board_service.create_board(owner.id, title="  ")
    with pytest.raises(InvalidInputError):
        await board_service.create_board(owner.id, title="Sprint 1", github_repo="not a repo")
    assert await board_service.list_boards(owner.id) == []


async def test_missing_board_is_not_found_before_permission(
    board_service: BoardService,
    make_user: MakeUser,
) -> None:
    outsider = await make_user()

    with pytest.raises(NotFoundError):
        await board_service.get_board(outsider.id, "64b7f0c2a1b2c3d4e5f60718")
    with pytest.raises(NotFoundError):
        await board_service.get_board(outsider.id, "not-an-object-id")
    with pytest.raises(NotFoundError):
        await board_service.delete_board(outsider.id, "64b7f0c2a1b2c3d4e5f60718")


async def test_outsider_is_forbidden(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    outsider = await make_user()
    board = await board_service.create_board(owner.id, title="Sprint 1")

    with pytest.raises(PermissionDeniedError):
        await board_service.get_board(outsider.id, str(board.id))
    with pytest.raises(PermissionDeniedError):
        await board_service.create_list(outsider.id, str(board.id), "To Do")


async def test_member_cannot_manage_board(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    member = await make_user("member@example.com")
    board = await board_service.create_board(owner.id, title="Sprint 1")
    await board_service.invite_member(owner.id, str(board.id), "member@example.com")

    with pytest.raises(PermissionDeniedError):
        await board_service.update_board(member.id, str(board.id), {"title": "Renamed"})
    with pytest.raises(PermissionDeniedError):
        await board_service.delete_board(member.id, str(board.id))
    with pytest.raises(PermissionDeniedError):
        await board_service.invite_member(member.id, str(board.id), "member@example.com")

    board_list = await board_service.create_list(member.id, str(board.id), "To Do")
    assert board_list.title == "To Do"


async def test_invite_member_errors(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user("owner@example.com")
    await make_user("member@example.com")
    board = await board_service.create_board(owner.id, title="Sprint 1")

    with pytest.raises(NotFoundError):
        await board_service.invite_member(owner.id, str(board.id), "ghost@example.com")

    invited = await board_service.invite_member(owner.id, str(board.id), "Member@Example.com")
    assert len(invited.member_ids) == 2

    with pytest.raises(ConflictError):
        await board_service.invite_member(owner.id, str(board.id), "member@example.com")
    with pytest.raises(ConflictError):
        await board_service.invite_member(owner.id, str(board.id), "owner@example.com")


async def test_update_board_links_and_unlinks_repository(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    board = await board_service.create_board(owner.id, title="Sprint 1")

    linked = await board_service.update_board(owner.id, str(board.id), {"github_repo": "acme/widgets"})
    assert linked.github_repo == "acme/widgets"
    assert linked.version == 1

    unlinked = await board_service.update_board(owner.id, str(board.id), {"github_repo": None})
    assert unlinked.github_repo is None
    assert unlinked.title == "Sprint 1"


async def test_bad_repository_is_checked_after_existence_and_ownership(
    board_service: BoardService,
    make_user: MakeUser,
) -> None:
    owner = await make_user()
    member = await make_user("member@example.com")
    board = await board_service.create_board(owner.id, title="Sprint 1")
    await board_service.invite_member(owner.id, str(board.id), "member@example.com")
    bad_link = {"github_repo": "not a repo"}

    with pytest.raises(NotFoundError):
        await board_service.update_board(owner.id, "64b7f0c2a1b2c3d4e5f60718", bad_link)
    with pytest.raises(PermissionDeniedError):
        await board_service.update_board(member.id, str(board.id), bad_link)
    with pytest.raises(InvalidInputError):
        await board_service.update_board(owner.id, str(board.id), bad_link)


async def test_noop_update_does_not_bump_version(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    board = await board_service.create_board(owner.id, title="Sprint 1")

    unchanged = await board_service.update_board(owner.id, str(board.id), {"title": "Sprint 1"})

    assert unchanged.version == 0


async def test_failed_mutation_writes_nothing(
    board_service: BoardService,
    board_repository: InMemoryBoardRepository,
    make_user: MakeUser,
) -> None:
    owner = await make_user()
    board = await board_service.create_board(owner.id, title="Sprint 1")
    todo = await board_service.create_list(owner.id, str(board.id), "To Do")
    task = await board_service.create_task(owner.id, str(board.id), todo.id, title="Login")
    before = [dict(document) for document in board_repository.snapshot()]

    with pytest.raises(NotFoundError):
        await board_service.move_task_on_board(owner.id, str(board.id), task.id, "missing")

    assert list(board_repository.snapshot()) == before


async def test_delete_operations_are_idempotent(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    board = await board_service.create_board(owner.id, title="Sprint 1")
    todo = await board_service.create_list(owner.id, str(board.id), "To Do")
    task = await board_service.create_task(owner.id, str(board.id), todo.id, title="Login")

    assert await board_service.delete_task(owner.id, str(board.id), todo.id, task.id) is True
    assert await board_service.delete_task(owner.id, str(board.id), todo.id, task.id) is False
    assert await board_service.delete_list(owner.id, str(board.id), todo.id) is True
    assert await board_service.delete_list(owner.id, str(board.id), todo.id) is False

    await board_service.delete_board(owner.id, str(board.id))
    with pytest.raises(NotFoundError):
        await board_service.get_board(owner.id, str(board.id))


async def test_get_board_restores_owner_membership(
    board_service: BoardService,
    board_repository: InMemoryBoardRepository,
    make_user: MakeUser,
) -> None:
    owner = await make_user()
    board = await board_service.create_board(owner.id, title="Sprint 1")
    damaged = await board_repository.get(board.id)
    assert damaged is not None
    damaged.member_ids = []
    await board_repository.save(damaged)

    healed = await board_service.get_board(owner.id, str(board.id))

    assert healed.member_ids == [owner.id]
    stored = await board_repository.get(board.id)
    assert stored is not None
    assert stored.member_ids == [owner.id]


async def test_task_lifecycle(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    member = await make_user("member@example.com")
    board = await board_service.create_board(owner.id, title="Sprint 1")
    board_id = str(board.id)
    await board_service.invite_member(owner.id, board_id, "member@example.com")
    todo = await board_service.create_list(owner.id, board_id, "To Do")
    done = await board_service.create_list(owner.id, board_id, "Done")

    task = await board_service.create_task(member.id, board_id, todo.id, title="Login", assignee_ids=[member.id])
    assert task.assignee_ids == [member.id]

    updated = await board_service.update_task(
        member.id,
        board_id,
        todo.id,
        task.id,
        {"title": "Login form", "status": "In-Progress"},
    )
    assert updated.title == "Login form"
    assert updated.status is TaskStatus.IN_PROGRESS

    assigned = await board_service.assign_member(member.id, board_id, todo.id, task.id, owner.id)
    assert assigned.assignee_ids == [member.id, owner.id]

    commented, comment = await board_service.add_comment(member.id, board_id, todo.id, task.id, "on it")
    assert commented.comments[-1].id == comment.id
    assert comment.author_id == member.id

    moved = await board_service.move_task(owner.id, task.id, done.id)
    assert moved.id == task.id

    stored = await board_service.get_board(owner.id, board_id)
    assert stored.lists[0].tasks == []
    assert [item.id for item in stored.lists[1].tasks] == [task.id]
    assert stored.version == 8


async def test_move_unknown_task_is_not_found(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    with pytest.raises(NotFoundError):
        await board_service.move_task(owner.id, "missing", "missing")


async def test_move_task_requires_membership(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    outsider = await make_user()
    board = await board_service.create_board(owner.id, title="Sprint 1")
    todo = await board_service.create_list(owner.id, str(board.id), "To Do")
    done = await board_service.create_list(owner.id, str(board.id), "Done")
    task = await board_service.create_task(owner.id, str(board.id), todo.id, title="Login")

    with pytest.raises(PermissionDeniedError):
        await board_service.move_task(outsider.id, task.id, done.id)


async def test_concurrent_task_creation_loses_nothing(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    board = await board_service.create_board(owner.id, title="Sprint 1")
    todo = await board_service.create_list(owner.id, str(board.id), "To Do")

    await asyncio.gather(
        *(
            board_service.create_task(owner.id, str(board.id), todo.id, title=f"Task {index}")
            for index in range(20)
        )
    )

    stored = await board_service.get_board(owner.id, str(board.id))
    assert len(stored.lists[0].tasks) == 20
    assert len({task.task_id for task in stored.lists[0].tasks}) == 20
    assert stored.version == 21


async def test_stale_save_is_rejected(
    board_service: BoardService,
    board_repository: InMemoryBoardRepository,
    make_user: MakeUser,
) -> None:
    owner = await make_user()
    board = await board_service.create_board(owner.id, title="Sprint 1")
    first = await board_repository.get(board.id)
    second = await board_repository.get(board.id)
    assert first is not None and second is not None

    first.add_list("To Do")
    await board_repository.save(first)
    second.add_list("Doing")

    with pytest.raises(ConcurrentModificationError):
        await board_repository.save(second)

    stored = await board_repository.get(board.id)
    assert stored is not None
    assert [board_list.title for board_list in stored.lists] == ["To Do"]
    assert stored.version == 1


async def test_list_boards_returns_owned_and_joined(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    member = await make_user("member@example.com")
    own = await board_service.create_board(owner.id, title="Owned")
    other = await board_service.create_board(member.id, title="Theirs")
    await board_service.create_board(member.id, title="Private")
    await board_service.invite_member(member.id, str(other.id), owner.email)

    boards = await board_service.list_boards(owner.id)

    assert [str(item.id) for item in boards] == [str(own.id), str(other.id)]


async def test_user_directory_skips_unknown_users(board_service: BoardService, make_user: MakeUser) -> None:
    owner = await make_user()
    board = await board_service.create_board(owner.id, title="Sprint 1")
    board.member_ids.append(9999)

    directory = await board_service.user_directory([board])

    assert set(directory) == {owner.id}

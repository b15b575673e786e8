"""Routes for boards and the lists and tasks embedded in them."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from ...deps import BoardServiceDependency, CurrentUserDependency, principal_id
from ...models import BoardBase
from ...schemas.board import (
    AssignRequest,
    BoardCreate,
    BoardRead,
    BoardUpdate,
    CommentCreate,
    InviteRequest,
    ListCreate,
    ListRead,
    MoveTaskRequest,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)
from ...services import BoardService

router = APIRouter(prefix="/boards", tags=["boards"])


async def _board_read(service: BoardService, board: BoardBase) -> BoardRead:
    users = await service.user_directory([board])
    return BoardRead.build(board, users)


@router.get("", response_model=list[BoardRead], summary="Boards the caller owns or belongs to")
async def list_boards(service: BoardServiceDependency, current_user: CurrentUserDependency) -> list[BoardRead]:
    boards = await service.list_boards(principal_id(current_user))
    users = await service.user_directory(boards)
    return [BoardRead.build(board, users) for board in boards]


@router.post(
    "",
    response_model=BoardRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a board owned by the caller",
)
async def create_board(
    payload: BoardCreate,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> BoardRead:
    board = await service.create_board(
        principal_id(current_user),
        title=payload.title,
        github_repo=payload.github_repo,
        background=payload.background,
    )
    return await _board_read(service, board)


@router.put(
    "/tasks/{task_id}/move",
    response_model=TaskRead,
    summary="Move a task to another list of whichever board holds it",
)
async def move_task(
    task_id: str,
    payload: MoveTaskRequest,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    task = await service.move_task(principal_id(current_user), task_id, payload.destination_list_id)
    return TaskRead.build(task, await service.task_directory(task))


@router.get("/{board_id}", response_model=BoardRead, summary="Read a board")
async def read_board(
    board_id: str,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> BoardRead:
    board = await service.get_board(principal_id(current_user), board_id)
    return await _board_read(service, board)


@router.patch("/{board_id}", response_model=BoardRead, summary="Update board fields (owner only)")
async def update_board(
    board_id: str,
    payload: BoardUpdate,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> BoardRead:
    board = await service.update_board(principal_id(current_user), board_id, payload.changes())
    return await _board_read(service, board)


@router.delete(
    "/{board_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a board (owner only)",
)
async def delete_board(
    board_id: str,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> Response:
    await service.delete_board(principal_id(current_user), board_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{board_id}/invite", response_model=BoardRead, summary="Invite a user by email (owner only)")
async def invite_member(
    board_id: str,
    payload: InviteRequest,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> BoardRead:
    board = await service.invite_member(principal_id(current_user), board_id, payload.email)
    return await _board_read(service, board)


@router.post(
    "/{board_id}/lists",
    response_model=ListRead,
    status_code=status.HTTP_201_CREATED,
    summary="Append a list",
)
async def create_list(
    board_id: str,
    payload: ListCreate,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> ListRead:
    board_list = await service.create_list(principal_id(current_user), board_id, payload.title)
    return ListRead.build(board_list, {})


@router.delete(
    "/{board_id}/lists/{list_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a list and its tasks",
)
async def delete_list(
    board_id: str,
    list_id: str,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> Response:
    await service.delete_list(principal_id(current_user), board_id, list_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{board_id}/lists/{list_id}/tasks",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Append a task to a list",
)
async def create_task(
    board_id: str,
    list_id: str,
    payload: TaskCreate,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    task = await service.create_task(
        principal_id(current_user),
        board_id,
        list_id,
        title=payload.title,
        description=payload.description,
        due_date=payload.due_date,
        priority=payload.priority,
        assignee_ids=payload.assignee_ids,
    )
    return TaskRead.build(task, await service.task_directory(task))


@router.patch(
    "/{board_id}/lists/{list_id}/tasks/{task_id}",
    response_model=TaskRead,
    summary="Update a task",
)
async def update_task(
    board_id: str,
    list_id: str,
    task_id: str,
    payload: TaskUpdate,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    task = await service.update_task(principal_id(current_user), board_id, list_id, task_id, payload.changes())
    return TaskRead.build(task, await service.task_directory(task))


@router.delete(
    "/{board_id}/lists/{list_id}/tasks/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a task",
)
async def delete_task(
    board_id: str,
    list_id: str,
    task_id: str,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> Response:
    await service.delete_task(principal_id(current_user), board_id, list_id, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{board_id}/lists/{list_id}/tasks/{task_id}/assign",
    response_model=TaskRead,
    summary="Assign a board member to a task",
)
async def assign_member(
    board_id: str,
    list_id: str,
    task_id: str,
    payload: AssignRequest,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    task = await service.assign_member(principal_id(current_user), board_id, list_id, task_id, payload.user_id)
    return TaskRead.build(task, await service.task_directory(task))


@router.post(
    "/{board_id}/lists/{list_id}/tasks/{task_id}/comments",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a task",
)
async def add_comment(
    board_id: str,
    list_id: str,
    task_id: str,
    payload: CommentCreate,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    task, _ = await service.add_comment(principal_id(current_user), board_id, list_id, task_id, payload.text)
    return TaskRead.build(task, await service.task_directory(task))


@router.put(
    "/{board_id}/tasks/{task_id}/move",
    response_model=TaskRead,
    summary="Move a task to another list on this board",
)
async def move_task_on_board(
    board_id: str,
    task_id: str,
    payload: MoveTaskRequest,
    service: BoardServiceDependency,
    current_user: CurrentUserDependency,
) -> TaskRead:
    task = await service.move_task_on_board(
        principal_id(current_user),
        board_id,
        task_id,
        payload.destination_list_id,
    )
    return TaskRead.build(task, await service.task_directory(task))

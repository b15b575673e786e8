"""Commit reconciliation endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from ...deps import CommitServiceDependency, CurrentUserDependency, principal_id
from ...schemas.board import CommitCheckResponse, CommitMatchRead

router = APIRouter(prefix="/boards", tags=["commits"])


@router.post(
    "/{board_id}/check-commits",
    response_model=CommitCheckResponse,
    summary="Complete tasks referenced by the linked repository's commits",
)
async def check_commits(
    board_id: str,
    service: CommitServiceDependency,
    current_user: CurrentUserDependency,
) -> CommitCheckResponse:
    matches = await service.check_commits(principal_id(current_user), board_id)
    return CommitCheckResponse(matched=[CommitMatchRead.build(match) for match in matches])

"""The authenticated user's own account."""

from __future__ import annotations

from fastapi import APIRouter

from ...deps import CurrentUserDependency
from ...schemas.user import UserPublic

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserPublic, summary="Return the authenticated user")
async def read_current_user(current_user: CurrentUserDependency) -> UserPublic:
    return UserPublic.model_validate(current_user)

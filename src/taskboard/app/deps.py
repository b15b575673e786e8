"""FastAPI dependencies: settings, sessions, the current principal and services."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from .core.config import Settings, get_settings
from .core.context import bind_principal_id
from .core.security import InvalidTokenError, read_principal_id
from .db.session import get_session
from .integrations.github import CommitLookup, GitHubCommitClient
from .models import User
from .repositories import BoardRepository, UserRepository
from .services import BoardService, CommitReconciliationService, UserService

logger = logging.getLogger(__name__)

SettingsDependency = Annotated[Settings, Depends(get_settings)]

_bearer_token = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_db_session() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


DatabaseSessionDependency = Annotated[AsyncSession, Depends(get_db_session)]


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials.",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str, Depends(_bearer_token)],
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> User:
    """Resolve the bearer token to an active user and bind it to the log context."""

    try:
        user_id = read_principal_id(token, settings)
    except InvalidTokenError as exc:
        logger.info("Bearer token rejected", extra={"reason": str(exc)})
        raise _unauthorized() from exc

    user = await UserRepository(session).get(user_id)
    if user is None:
        logger.info("Bearer token names an unknown user", extra={"user_id": user_id})
        raise _unauthorized()
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive.")
    bind_principal_id(user_id)
    return user


CurrentUserDependency = Annotated[User, Depends(get_current_user)]


def principal_id(user: User) -> int:
    if user.id is None:  # pragma: no cover - persisted users always have an id
        raise _unauthorized()
    return user.id


def get_board_repository(request: Request) -> BoardRepository:
    return request.app.state.board_repository


BoardRepositoryDependency = Annotated[BoardRepository, Depends(get_board_repository)]


def get_commit_lookup(settings: SettingsDependency) -> CommitLookup:
    return GitHubCommitClient(settings)


def get_board_service(
    repository: BoardRepositoryDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> BoardService:
    return BoardService(repository, UserService(session), settings)


BoardServiceDependency = Annotated[BoardService, Depends(get_board_service)]


def get_commit_service(
    boards: BoardServiceDependency,
    lookup: Annotated[CommitLookup, Depends(get_commit_lookup)],
) -> CommitReconciliationService:
    return CommitReconciliationService(boards, lookup)


CommitServiceDependency = Annotated[CommitReconciliationService, Depends(get_commit_service)]


__all__ = [
    "BoardRepositoryDependency",
    "BoardServiceDependency",
    "CommitServiceDependency",
    "CurrentUserDependency",
    "DatabaseSessionDependency",
    "SettingsDependency",
    "get_board_repository",
    "get_board_service",
    "get_commit_lookup",
    "get_commit_service",
    "get_current_user",
    "get_db_session",
    "principal_id",
]

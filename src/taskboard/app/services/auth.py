"""Signup and login. Both end with a freshly issued access token."""

from __future__ import annotations

import logging

from fastapi import status
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings
from ..core.security import IssuedToken, issue_access_token, verify_password
from ..errors import ApplicationError, AuthenticationError
from ..models import User
from .users import UserService

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self._users = UserService(session)
        self._settings = settings

    def _issue(self, user: User) -> IssuedToken:
        if user.id is None:  # pragma: no cover - only persisted users reach here
            raise ApplicationError("User must be persisted before issuing tokens.")
        return issue_access_token(user.id, self._settings)

    async def signup(
        self,
        *,
        email: str,
        password: str,
        full_name: str | None = None,
    ) -> tuple[User, IssuedToken]:
        if await self._users.get_user_by_email(email) is not None:
            raise ApplicationError(
                "Email is already registered.",
                code="email_taken",
                status_code=status.HTTP_400_BAD_REQUEST,
            )
        user = await self._users.create_user(email=email, password=password, full_name=full_name)
        return user, self._issue(user)

    async def login(self, email: str, password: str) -> tuple[User, IssuedToken]:
        """Check credentials; an inactive account is refused even with the right password."""
        user = await self._users.get_user_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.info("Login rejected")
            raise AuthenticationError()
        if not user.is_active:
            raise ApplicationError(
                "User account is inactive.",
                code="inactive_user",
                status_code=status.HTTP_403_FORBIDDEN,
            )
        logger.info("User logged in", extra={"user_id": user.id})
        return user, self._issue(user)


__all__ = ["AuthService"]

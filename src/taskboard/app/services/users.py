"""Account lookups used by boards, and account creation."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.security import hash_password
from ..models import User, normalise_email
from ..repositories import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._users = UserRepository(session)

    async def create_user(
        self,
        *,
        email: str,
        password: str,
        full_name: str | None = None,
        is_active: bool = True,
    ) -> User:
        """Store a new account and commit it."""
        user = await self._users.add(
            User(
                email=normalise_email(email),
                full_name=full_name,
                hashed_password=hash_password(password),
                is_active=is_active,
            )
        )
        await self._session.commit()
        await self._session.refresh(user)
        logger.info("User account created", extra={"user_id": user.id})
        return user

    async def get_user(self, user_id: int) -> User | None:
        return await self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._users.get_by_email(email)

    async def users_by_id(self, ids: Iterable[int]) -> dict[int, User]:
        """Map each known id in ``ids`` to its user; unknown ids are left out."""
        return {user.id: user for user in await self._users.list_by_ids(ids) if user.id is not None}

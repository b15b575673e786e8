"""SQL access to user accounts."""

from __future__ import annotations

from collections.abc import Iterable

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import User, normalise_email


class UserRepository:
    """Queries over the ``users`` table; callers own the transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: int) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        result = await self._session.execute(select(User).where(User.email == normalise_email(email)))
        return result.scalar_one_or_none()

    async def list_by_ids(self, ids: Iterable[int]) -> list[User]:
        """Users whose id is in ``ids``; ids without an account are skipped."""
        wanted = sorted(set(ids))
        if not wanted:
            return []
        result = await self._session.execute(select(User).where(User.id.in_(wanted)))  # type: ignore[union-attr]
        return list(result.scalars().all())

    async def add(self, user: User) -> User:
        """Stage ``user`` and flush so its id is assigned."""
        self._session.add(user)
        await self._session.flush()
        return user

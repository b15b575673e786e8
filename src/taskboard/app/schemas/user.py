"""User-facing Pydantic schemas."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from ..models import User


class UserPublic(BaseModel):
    """Public representation of the authenticated user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str | None = None


class UserSummary(BaseModel):
    """The ``{id, email}`` projection boards use for every referenced user.

    ``email`` is ``None`` when the account no longer exists.
    """

    id: int
    email: str | None = None

    @classmethod
    def lookup(cls, user_id: int, users: Mapping[int, User]) -> "UserSummary":
        user = users.get(user_id)
        return cls(id=user_id, email=user.email if user is not None else None)


__all__ = ["UserPublic", "UserSummary"]

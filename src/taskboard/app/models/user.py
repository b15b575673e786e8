"""User accounts, stored in the relational database.

Boards refer to users by ``id`` alone and render them as ``{id, email}``.
"""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .common import timestamp_field


def normalise_email(email: str) -> str:
    return email.strip().lower()


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(sa_column=sa.Column(sa.String(length=320), nullable=False, unique=True, index=True))
    full_name: str | None = Field(default=None, sa_column=sa.Column(sa.String(length=255), nullable=True))
    hashed_password: str = Field(sa_column=sa.Column(sa.String(length=255), nullable=False))
    is_active: bool = Field(
        default=True,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field(refresh_on_update=True)


__all__ = ["User", "normalise_email"]

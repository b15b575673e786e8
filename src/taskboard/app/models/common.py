"""Time helpers shared by the user table and the board documents."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field


def utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def timestamp_field(*, refresh_on_update: bool = False) -> Any:
    """A non-null, timezone-aware timestamp column the database also defaults."""

    column_kwargs: dict[str, Any] = {"server_default": sa.func.now()}
    if refresh_on_update:
        column_kwargs["server_onupdate"] = sa.func.now()
    return Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs=column_kwargs,
    )


__all__ = ["timestamp_field", "utcnow"]

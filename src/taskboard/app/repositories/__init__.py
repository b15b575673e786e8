"""Repositories encapsulating persistence logic."""

from __future__ import annotations

from .boards import (
    BoardLockRegistry,
    BoardRepository,
    InMemoryBoardRepository,
    MongoBoardRepository,
    build_board_repository,
    parse_board_id,
)
from .users import UserRepository

__all__ = [
    "BoardLockRegistry",
    "BoardRepository",
    "InMemoryBoardRepository",
    "MongoBoardRepository",
    "UserRepository",
    "build_board_repository",
    "parse_board_id",
]

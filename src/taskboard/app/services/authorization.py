"""Board access policy.

Owners may do anything to their board. Members may read it and work on its
lists and tasks. Everyone else is turned away.
"""

from __future__ import annotations

import logging
from enum import Enum

from ..errors import PermissionDeniedError
from ..models.board import BoardBase

logger = logging.getLogger(__name__)


class BoardRole(str, Enum):
    """The relationship between a principal and a board."""

    OWNER = "owner"
    MEMBER = "member"
    NONE = "none"


def classify(principal_id: int, board: BoardBase) -> BoardRole:
    if board.is_owner(principal_id):
        return BoardRole.OWNER
    if board.is_member(principal_id):
        return BoardRole.MEMBER
    return BoardRole.NONE


def _deny(principal_id: int, board: BoardBase, required: BoardRole, message: str) -> PermissionDeniedError:
    board_id = str(getattr(board, "id", None))
    logger.warning(
        "Board access denied",
        extra={"principal_id": principal_id, "board_id": board_id, "required_role": required.value},
    )
    return PermissionDeniedError(message, details={"board_id": board_id})


def require_owner(principal_id: int, board: BoardBase) -> BoardRole:
    """Return the principal's role, raising unless it is ``OWNER``."""

    role = classify(principal_id, board)
    if role is not BoardRole.OWNER:
        raise _deny(principal_id, board, BoardRole.OWNER, "Only the board owner can do that.")
    return role


def require_member(principal_id: int, board: BoardBase) -> BoardRole:
    """Return the principal's role, raising when it is ``NONE``."""

    role = classify(principal_id, board)
    if role is BoardRole.NONE:
        raise _deny(principal_id, board, BoardRole.MEMBER, "You are not a member of this board.")
    return role


__all__ = ["BoardRole", "classify", "require_member", "require_owner"]

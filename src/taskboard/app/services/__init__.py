"""Domain service layer package."""

from __future__ import annotations

from .auth import AuthService
from .authorization import BoardRole, classify, require_member, require_owner
from .boards import BoardService
from .commits import CommitMatch, CommitReconciliationService, match_commits
from .users import UserService

__all__ = [
    "AuthService",
    "BoardRole",
    "BoardService",
    "CommitMatch",
    "CommitReconciliationService",
    "UserService",
    "classify",
    "match_commits",
    "require_member",
    "require_owner",
]

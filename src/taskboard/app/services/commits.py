"""Close tasks whose ``task_id`` shows up in the linked repository's commits."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..errors import ConflictError, InvalidInputError
from ..integrations.github import CommitLookup, CommitRecord
from ..models import BoardBase, TaskStatus
from .boards import BoardService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommitMatch:
    task_id: str
    commit_id: str


def match_commits(board: BoardBase, commits: Sequence[CommitRecord]) -> list[CommitMatch]:
    """Complete every open task named by a commit message and report the matches.

    Tasks are visited list by list; each open task takes the first commit, in
    the order given, whose message contains its ``task_id`` verbatim.
    """
    matches: list[CommitMatch] = []
    for task in board.iter_tasks():
        if task.status is TaskStatus.COMPLETED or not task.task_id:
            continue
        commit = next((record for record in commits if task.task_id in record.message), None)
        if commit is None:
            continue
        task.status = TaskStatus.COMPLETED
        matches.append(CommitMatch(task_id=task.task_id, commit_id=commit.id))
    return matches


class CommitReconciliationService:
    """Run commit matching for one board on demand."""

    def __init__(self, boards: BoardService, lookup: CommitLookup) -> None:
        self._boards = boards
        self._lookup = lookup

    async def check_commits(self, principal_id: int, board_id: str) -> list[CommitMatch]:
        board = await self._boards.load_for(principal_id, board_id)
        if not board.github_repo:
            raise InvalidInputError(
                "No GitHub repository is linked to this board.",
                details={"board_id": board_id},
            )

        # The lookup runs without the board lock; matching reloads the board.
        repository = board.github_repo
        commits = await self._lookup.fetch_commits(repository)

        async with self._boards.editing(principal_id, board_id) as fresh:
            if not fresh.github_repo:
                raise InvalidInputError(
                    "The GitHub repository was unlinked while commits were fetched.",
                    details={"board_id": board_id},
                )
            if fresh.github_repo != repository:
                raise ConflictError(
                    "The GitHub repository changed while commits were fetched; retry the check.",
                    details={"board_id": board_id, "fetched": repository, "linked": fresh.github_repo},
                )
            matches = match_commits(fresh, commits)

        logger.info(
            "Commit reconciliation finished",
            extra={"board_id": board_id, "commits": len(commits), "matched": len(matches)},
        )
        return matches


__all__ = ["CommitMatch", "CommitReconciliationService", "match_commits"]

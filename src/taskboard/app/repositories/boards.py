"""Persistence for board aggregates.

A board is loaded whole, mutated in memory and written back whole. Writes are
guarded twice: a per-board ``asyncio.Lock`` serialises mutations issued by this
process, and every save is a compare-and-swap on ``version`` so writers in
other processes cannot silently overwrite each other.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Sequence
from typing import Any

from beanie import PydanticObjectId
from beanie.exceptions import DocumentNotFound
from pymongo.errors import PyMongoError

from ..core.config import Settings
from ..errors import ConcurrentModificationError, StorageError
from ..models.board import Board, BoardBase, DetachedBoard

logger = logging.getLogger(__name__)


def parse_board_id(board_id: str | PydanticObjectId) -> PydanticObjectId | None:
    """Return ``board_id`` as an ObjectId, or ``None`` when it is malformed."""

    if isinstance(board_id, PydanticObjectId):
        return board_id
    if not isinstance(board_id, str) or not PydanticObjectId.is_valid(board_id):
        return None
    return PydanticObjectId(board_id)


class BoardLockRegistry:
    """Hand out one ``asyncio.Lock`` per board id.

    Locks are held weakly so boards nobody is mutating do not pin memory.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def for_board(self, board_id: str) -> asyncio.Lock:
        lock = self._locks.get(board_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[board_id] = lock
        return lock


board_locks = BoardLockRegistry()


class BoardRepository:
    """Operations every board store provides."""

    def __init__(self, locks: BoardLockRegistry | None = None) -> None:
        self._locks = locks or board_locks

    def lock(self, board_id: str | PydanticObjectId) -> asyncio.Lock:
        """Return the lock serialising mutations of ``board_id``."""
        return self._locks.for_board(str(board_id))

    def new_board(self, **fields: Any) -> BoardBase:
        raise NotImplementedError

    async def get(self, board_id: str | PydanticObjectId) -> BoardBase | None:
        raise NotImplementedError

    async def add(self, board: BoardBase) -> BoardBase:
        raise NotImplementedError

    async def save(self, board: BoardBase) -> BoardBase:
        """Persist ``board`` if nobody saved it since it was loaded.

        Raises ``ConcurrentModificationError`` otherwise. On success the
        board's ``version`` is one higher than when it was loaded.
        """
        raise NotImplementedError

    async def delete(self, board: BoardBase) -> None:
        raise NotImplementedError

    async def list_for_member(self, user_id: int) -> list[BoardBase]:
        """Boards ``user_id`` owns or belongs to, oldest first."""
        raise NotImplementedError

    async def find_containing_task(self, task_id: str) -> BoardBase | None:
        """Return the board holding the task whose ``id`` is ``task_id``."""
        raise NotImplementedError

    async def ping(self) -> bool:
        """Return whether the store answers."""
        raise NotImplementedError


class MongoBoardRepository(BoardRepository):
    """Board store backed by the Beanie ``Board`` document."""

    def new_board(self, **fields: Any) -> Board:
        return Board(**fields)

    async def get(self, board_id: str | PydanticObjectId) -> Board | None:
        object_id = parse_board_id(board_id)
        if object_id is None:
            return None
        try:
            return await Board.get(object_id)
        except PyMongoError as exc:
            raise _storage_error("load", exc) from exc

    async def add(self, board: Board) -> Board:
        try:
            await board.insert()
        except PyMongoError as exc:
            raise _storage_error("insert", exc) from exc
        logger.info("Board created", extra={"board_id": str(board.id), "owner_id": board.owner_id})
        return board

    async def save(self, board: Board) -> Board:
        expected = board.version
        board.version = expected + 1
        board.touch()
        try:
            await Board.find_one({"_id": board.id, "version": expected}).replace_one(board)
        except DocumentNotFound as exc:
            board.version = expected
            logger.warning(
                "Board version conflict",
                extra={"board_id": str(board.id), "expected_version": expected},
            )
            raise ConcurrentModificationError(details={"board_id": str(board.id)}) from exc
        except PyMongoError as exc:
            board.version = expected
            raise _storage_error("save", exc) from exc
        return board

    async def delete(self, board: Board) -> None:
        try:
            await board.delete()
        except PyMongoError as exc:
            raise _storage_error("delete", exc) from exc
        logger.info("Board deleted", extra={"board_id": str(board.id)})

    async def list_for_member(self, user_id: int) -> list[Board]:
        query = {"$or": [{"owner_id": user_id}, {"member_ids": user_id}]}
        try:
            return await Board.find(query).sort("+created_at").to_list()
        except PyMongoError as exc:
            raise _storage_error("list", exc) from exc

    async def find_containing_task(self, task_id: str) -> Board | None:
        try:
            return await Board.find_one({"lists.tasks.id": task_id})
        except PyMongoError as exc:
            raise _storage_error("lookup", exc) from exc

    async def ping(self) -> bool:
        try:
            await Board.get_pymongo_collection().database.command("ping")
        except PyMongoError as exc:
            logger.warning("Board store ping failed", extra={"error": str(exc)})
            return False
        return True


class InMemoryBoardRepository(BoardRepository):
    """Process-local board store for development without MongoDB and for tests.

    Boards are stored as plain dumps so callers never share state with the
    store; the compare-and-swap rules match ``MongoBoardRepository``.
    """

    def __init__(self, locks: BoardLockRegistry | None = None) -> None:
        super().__init__(locks or BoardLockRegistry())
        self._documents: dict[str, dict[str, Any]] = {}

    def new_board(self, **fields: Any) -> DetachedBoard:
        return DetachedBoard(**fields)

    def _load(self, key: str) -> DetachedBoard | None:
        data = self._documents.get(key)
        if data is None:
            return None
        return DetachedBoard.model_validate(data)

    async def get(self, board_id: str | PydanticObjectId) -> DetachedBoard | None:
        object_id = parse_board_id(board_id)
        if object_id is None:
            return None
        return self._load(str(object_id))

    async def add(self, board: DetachedBoard) -> DetachedBoard:
        if board.id is None:
            board.id = PydanticObjectId()
        self._documents[str(board.id)] = board.model_dump()
        logger.info("Board created", extra={"board_id": str(board.id), "owner_id": board.owner_id})
        return board

    async def save(self, board: DetachedBoard) -> DetachedBoard:
        key = str(board.id)
        stored = self._documents.get(key)
        if stored is None or stored["version"] != board.version:
            logger.warning(
                "Board version conflict",
                extra={"board_id": key, "expected_version": board.version},
            )
            raise ConcurrentModificationError(details={"board_id": key})
        board.version += 1
        board.touch()
        self._documents[key] = board.model_dump()
        return board

    async def delete(self, board: DetachedBoard) -> None:
        self._documents.pop(str(board.id), None)
        logger.info("Board deleted", extra={"board_id": str(board.id)})

    async def list_for_member(self, user_id: int) -> list[DetachedBoard]:
        boards = [self._load(key) for key in self._documents]
        matching = [
            board
            for board in boards
            if board is not None and (board.owner_id == user_id or user_id in board.member_ids)
        ]
        return sorted(matching, key=lambda board: board.created_at)

    async def find_containing_task(self, task_id: str) -> DetachedBoard | None:
        for key in self._documents:
            board = self._load(key)
            if board is not None and board.locate_task(task_id) is not None:
                return board
        return None

    async def ping(self) -> bool:
        return True

    def snapshot(self) -> Sequence[dict[str, Any]]:
        """Raw stored documents, for inspection in tests."""
        return list(self._documents.values())


def _storage_error(operation: str, exc: PyMongoError) -> StorageError:
    logger.error("Board store failure", extra={"operation": operation}, exc_info=exc)
    return StorageError(f"Board storage failed during {operation}.", details={"operation": operation})


def build_board_repository(settings: Settings) -> BoardRepository:
    """Return the board store selected by ``settings.board_store``."""

    if settings.board_store == "memory":
        return InMemoryBoardRepository()
    return MongoBoardRepository()


__all__ = [
    "BoardLockRegistry",
    "BoardRepository",
    "InMemoryBoardRepository",
    "MongoBoardRepository",
    "board_locks",
    "build_board_repository",
    "parse_board_id",
]

"""MongoDB document store holding board aggregates."""

from __future__ import annotations

import asyncio
import logging

from beanie import init_beanie
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from ..core.config import get_settings
from ..models.board import Board

logger = logging.getLogger(__name__)

_client: AsyncMongoClient | None = None
_database: AsyncDatabase | None = None
_initialized = False
_lock = asyncio.Lock()


def set_board_client(client: AsyncMongoClient | None) -> None:
    """Inject a custom MongoDB client instance (primarily for tests)."""

    global _client, _database, _initialized
    _client = client
    _database = None
    _initialized = False


async def init_board_store(*, client: AsyncMongoClient | None = None, force: bool = False) -> None:
    """Bind the ``Board`` document to its collection and create its indexes."""

    global _client, _database, _initialized

    async with _lock:
        if client is not None:
            set_board_client(client)

        if _initialized and not force:
            return

        settings = get_settings()
        if _client is None:
            _client = AsyncMongoClient(settings.mongo_url, tz_aware=True, uuidRepresentation="standard")
        _database = _client[settings.mongo_database]

        await init_beanie(
            database=_database,
            document_models=[Board],
            allow_index_dropping=True,
        )
        _initialized = True
        logger.info("Board store initialised", extra={"database": settings.mongo_database})


async def close_board_store() -> None:
    """Dispose the MongoDB client used for boards."""

    global _client, _database, _initialized
    client = _client
    _client = None
    _database = None
    _initialized = False
    if client is not None:
        await client.close()

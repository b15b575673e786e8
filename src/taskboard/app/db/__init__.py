"""Connections to the SQL user store and the MongoDB board store."""

from __future__ import annotations

from .mongo import close_board_store, init_board_store, set_board_client
from .session import dispose_engine, get_engine, get_session

__all__ = [
    "close_board_store",
    "dispose_engine",
    "get_engine",
    "get_session",
    "init_board_store",
    "set_board_client",
]

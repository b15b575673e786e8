"""Routers mounted under the API prefix, plus the unprefixed probes."""

from __future__ import annotations

from fastapi import APIRouter

from .auth import router as auth_router
from .boards import router as boards_router
from .commits import router as commits_router
from .health import router as health_router
from .users import router as users_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(boards_router)
api_router.include_router(commits_router)

__all__ = [
    "api_router",
    "auth_router",
    "boards_router",
    "commits_router",
    "health_router",
    "users_router",
]

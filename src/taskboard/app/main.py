"""ASGI application factory and the ``taskboard`` console entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers import api_router, health_router
from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .core.middleware import CorrelationIdMiddleware
from .db.mongo import close_board_store, init_board_store
from .db.session import dispose_engine
from .deps import SettingsDependency
from .errors import register_exception_handlers
from .repositories import build_board_repository
from .schemas.system import RootResponse

logger = logging.getLogger(__name__)


def _mount_point(prefix: str) -> str:
    cleaned = prefix.strip().rstrip("/")
    if cleaned and not cleaned.startswith("/"):
        cleaned = f"/{cleaned}"
    return cleaned


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if settings.board_store == "mongo":
            await init_board_store()
        try:
            yield
        finally:
            if settings.board_store == "mongo":
                await close_board_store()
            await dispose_engine()

    return lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the board service for ``settings`` (the cached settings by default)."""

    settings = settings or get_settings()
    configure_logging(settings)
    mount_point = _mount_point(settings.api_prefix)

    application = FastAPI(
        title=settings.project_name,
        version=settings.version,
        summary="Collaborative task boards with commit-driven task completion.",
        openapi_url=f"{mount_point}/openapi.json",
        lifespan=_lifespan(settings),
    )
    application.state.settings = settings
    application.state.board_repository = build_board_repository(settings)

    application.add_middleware(CorrelationIdMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    register_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router, prefix=mount_point)

    @application.get(f"{mount_point}/metadata", response_model=RootResponse, summary="Service metadata")
    async def read_api_metadata(current: SettingsDependency) -> RootResponse:
        return RootResponse(
            name=current.project_name,
            environment=current.environment,
            version=current.version,
            api_prefix=current.api_prefix,
            board_store=current.board_store,
        )

    logger.info(
        "Application configured",
        extra={"environment": settings.environment, "board_store": settings.board_store},
    )
    return application


app = create_app()


def run() -> None:
    """Serve ``app`` with uvicorn using the host and port from settings."""

    settings = get_settings()
    uvicorn.run(
        "taskboard.app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.reload,
        log_config=None,
    )

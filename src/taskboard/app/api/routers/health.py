"""Liveness and readiness probes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ...deps import BoardRepositoryDependency, DatabaseSessionDependency
from ...schemas.system import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/healthz", response_model=HealthCheckResponse, summary="Liveness probe")
async def read_health() -> HealthCheckResponse:
    return HealthCheckResponse()


@router.get(
    "/readyz",
    response_model=HealthCheckResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": HealthCheckResponse}},
    summary="Readiness probe covering the user database and the board store",
)
async def read_readiness(
    session: DatabaseSessionDependency,
    boards: BoardRepositoryDependency,
) -> HealthCheckResponse | JSONResponse:
    checks: dict[str, str] = {}
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("User database is not ready", extra={"error": str(exc)})
        checks["database"] = "unavailable"
    else:
        checks["database"] = "ok"
    checks["board_store"] = "ok" if await boards.ping() else "unavailable"

    if all(result == "ok" for result in checks.values()):
        return HealthCheckResponse(checks=checks)
    payload = HealthCheckResponse(status="degraded", checks=checks)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=payload.model_dump())

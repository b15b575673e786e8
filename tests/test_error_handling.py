from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI, status
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from taskboard.app.core.config import Settings
from taskboard.app.core.logging import RequestContextFilter
from taskboard.app.errors import (
    ApplicationError,
    AuthenticationError,
    ConcurrentModificationError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    UpstreamUnavailableError,
)
from taskboard.app.main import create_app

pytestmark = pytest.mark.asyncio


class Payload(BaseModel):
    name: str


@pytest.fixture()
def app(settings: Settings) -> FastAPI:
    application = create_app(settings)

    @application.post("/raise/validation")
    async def validate(_: Payload) -> None:  # pragma: no cover
        return None

    @application.get("/raise/integrity")
    async def integrity() -> None:
        raise IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed"))

    @application.get("/raise/crash")
    async def crash() -> None:
        raise RuntimeError("connection string with password")

    return application


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app, raise_app_exceptions=False), base_url="http://test")


async def _raise(app: FastAPI, error: Exception):
    @app.get("/raise/domain")
    async def domain() -> None:
        raise error

    async with _client(app) as client:
        return await client.get("/raise/domain")


@pytest.mark.parametrize(
    ("error", "status_code", "code"),
    [
        (InvalidInputError("Board title is required."), 400, "invalid_input"),
        (AuthenticationError(), 401, "invalid_credentials"),
        (PermissionDeniedError(), 403, "forbidden"),
        (NotFoundError("Board not found."), 404, "not_found"),
        (ConcurrentModificationError(), 409, "concurrent_modification"),
        (UpstreamUnavailableError(), 502, "upstream_unavailable"),
        (StorageError(), 503, "storage_error"),
    ],
)
async def test_domain_errors_map_to_status_and_code(
    app: FastAPI, error: ApplicationError, status_code: int, code: str
) -> None:
    response = await _raise(app, error)

    assert response.status_code == status_code
    assert response.json()["code"] == code
    assert response.json()["message"] == error.message


async def test_error_envelope_carries_details_and_request_id(app: FastAPI) -> None:
    response = await _raise(
        app,
        ApplicationError("Teapot", code="teapot", status_code=status.HTTP_418_IM_A_TEAPOT, details={"board_id": "b1"}),
    )

    assert response.status_code == 418
    assert response.json() == {
        "code": "teapot",
        "message": "Teapot",
        "details": {"board_id": "b1", "request_id": response.headers["X-Request-ID"]},
    }


async def test_validation_errors_are_listed(app: FastAPI) -> None:
    async with _client(app) as client:
        response = await client.post("/raise/validation", json={})

    body = response.json()
    assert response.status_code == 422
    assert body["code"] == "validation_error"
    assert body["details"]["errors"][0]["loc"] == ["body", "name"]
    assert body["details"]["request_id"] == response.headers["X-Request-ID"]


async def test_unknown_route_uses_the_envelope(app: FastAPI) -> None:
    async with _client(app) as client:
        response = await client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"
    assert response.json()["message"] == "Not Found"


async def test_integrity_error_is_a_conflict(app: FastAPI) -> None:
    async with _client(app) as client:
        response = await client.get("/raise/integrity")

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "db_integrity_error"


async def test_unhandled_error_hides_internals(app: FastAPI) -> None:
    async with _client(app) as client:
        response = await client.get("/raise/crash")

    assert response.status_code == 500
    assert response.json()["code"] == "server_error"
    assert "password" not in response.text


async def test_client_request_id_is_echoed(app: FastAPI) -> None:
    async with _client(app) as client:
        response = await client.get("/healthz", headers={"X-Request-ID": "trace-123"})

    assert response.headers["X-Request-ID"] == "trace-123"


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.INFO)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


async def test_access_log_is_tagged_with_request_id(app: FastAPI) -> None:
    access_logger = logging.getLogger("taskboard.access")
    handler = _ListHandler()
    handler.addFilter(RequestContextFilter())
    access_logger.addHandler(handler)
    previous_level = access_logger.level
    access_logger.setLevel(logging.INFO)
    try:
        async with _client(app) as client:
            response = await client.get("/healthz", headers={"X-Request-ID": "trace-456"})
    finally:
        access_logger.removeHandler(handler)
        access_logger.setLevel(previous_level)

    assert response.status_code == 200
    [record] = [r for r in handler.records if r.getMessage() == "Request completed"]
    assert record.request_id == "trace-456"
    assert record.path == "/healthz"
    assert record.status_code == 200

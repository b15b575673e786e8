"""Envelopes for the metadata, probe and error responses."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class RootResponse(BaseModel):
    """What a client needs to know before talking to the board API."""

    name: str = Field(description="Service display name")
    environment: str = Field(description="Active settings profile")
    version: str = Field(description="Deployed release")
    api_prefix: str = Field(description="Path every board and auth route is mounted under")
    board_store: str = Field(description="Backend holding board documents (mongo or memory)")


class HealthCheckResponse(BaseModel):
    status: Literal["ok", "degraded"] = "ok"
    checks: dict[str, str] = Field(
        default_factory=dict,
        description="Per-dependency probe result; empty for the liveness probe.",
    )


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    code: str = Field(description="Stable identifier clients can branch on")
    message: str
    details: Any | None = Field(default=None, description="Context such as the offending ids or request_id")

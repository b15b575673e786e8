"""Pydantic schemas for public interfaces.

Only the system envelopes are re-exported; import the rest from their modules.
"""

from __future__ import annotations

from .system import ErrorResponse, HealthCheckResponse, RootResponse

__all__ = ["ErrorResponse", "HealthCheckResponse", "RootResponse"]

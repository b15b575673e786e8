"""JSON logging for the task board service.

Every record becomes one JSON object per line. Anything passed through
``extra=`` is copied into that object, so call sites log structured fields
such as ``board_id`` or ``principal_id`` rather than formatting them into the
message.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

from .config import Settings
from .context import get_principal_id, get_request_id

# Attributes every LogRecord carries; whatever else is set came from ``extra``.
_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}
_CONTEXT_ATTRS = frozenset({"request_id", "principal_id"})


class JsonLogFormatter(logging.Formatter):
    def __init__(self, *, defaults: dict[str, Any] | None = None) -> None:
        super().__init__()
        self._defaults = dict(defaults or {})

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, Any] = {
            **self._defaults,
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }
        principal_id = getattr(record, "principal_id", None)
        if principal_id is not None:
            payload["principal_id"] = principal_id

        for key, value in record.__dict__.items():
            if key in _STANDARD_RECORD_ATTRS or key in _CONTEXT_ATTRS:
                continue
            payload.setdefault(key, value)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class RequestContextFilter(logging.Filter):
    """Stamp records with the current request id and, once known, the principal id.

    A ``principal_id`` passed explicitly through ``extra`` wins.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.request_id = get_request_id()
        if getattr(record, "principal_id", None) is None:
            record.principal_id = get_principal_id()
        return True


def configure_logging(settings: Settings) -> None:
    """Install the JSON handler on the root logger and on the server loggers."""

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    quiet_level = max(level, logging.WARNING)
    logging.captureWarnings(True)

    def _logger(logger_level: int) -> dict[str, Any]:
        return {"handlers": ["default"], "level": logger_level, "propagate": False}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": JsonLogFormatter,
                    "defaults": {"service": settings.project_name, "environment": settings.environment},
                }
            },
            "filters": {"request_context": {"()": RequestContextFilter}},
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                    "formatter": "json",
                    "level": level,
                    "filters": ["request_context"],
                }
            },
            "root": {"handlers": ["default"], "level": level},
            "loggers": {
                "uvicorn": _logger(level),
                "uvicorn.error": _logger(level),
                "uvicorn.access": _logger(quiet_level),
                "httpx": _logger(quiet_level),
                "pymongo": _logger(quiet_level),
            },
        }
    )

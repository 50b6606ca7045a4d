"""
clinic_portal.observability.logging

Structured logging configuration for the portal.

Responsibilities:
- Configure `structlog` for JSON logs (or console logs in local dev) over stdlib logging.
- Keep credentials (tokens, passwords, auth headers) out of log events.
- Provide a small wrapper for obtaining bound loggers.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# Event keys whose values never reach the log stream.
_SECRET_KEYS = frozenset({"access_token", "refresh_token", "password", "authorization", "apikey"})
_REDACTED = "***"


def configure_logging(*, service_name: str, level: str, json_logs: bool = True) -> None:
    """
    One event per line with a stable `service` field. JSON unless `json_logs` is off.
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    # httpx logs every backend round trip at INFO, including auth endpoints.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            _redact_secrets,
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _redact_secrets(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in event_dict.keys() & _SECRET_KEYS:
        event_dict[key] = _REDACTED
    return event_dict


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Coordinator logs are not request-scoped; they carry `principal_id` / `generation`
# explicitly instead of relying on the middleware contextvars.

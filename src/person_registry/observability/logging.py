"""
person_registry.observability.logging

Structured logging configuration for the service.

Responsibilities:
- Configure `structlog` for JSON logs on stdout (console rendering for local runs).
- Keep bearer tokens and key material out of log output.
- Provide a small wrapper for obtaining bound loggers.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# Event keys whose values must never be written out.
REDACTED_KEYS = frozenset({"authorization", "token", "access_token", "key"})

# Third-party loggers that are chatty at INFO (one line per JWKS fetch, per connection).
_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "uvicorn.access")


def configure_logging(*, service_name: str, level: str, json: bool = True) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer: Any = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            redact_secrets,
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


def redact_secrets(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for k in REDACTED_KEYS.intersection(event_dict):
        event_dict[k] = "[redacted]"
    return event_dict


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Request-scoped metadata (request id, subject) is bound via contextvars in
# `observability.middleware` and `auth.middleware`.

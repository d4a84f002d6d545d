"""Structured auth, security and usage event logging."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from time import perf_counter
from typing import Any

from flask import g, has_request_context, request

auth_logger = logging.getLogger("user_api.auth")
security_logger = logging.getLogger("user_api.security")
usage_logger = logging.getLogger("user_api.usage")

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "password_hash",
        "passwordhash",
        "newpassword",
        "currentpassword",
        "new_password",
        "current_password",
        "token",
        "devtoken",
    }
)
SKIP_USAGE_PATHS = ("/health",)


def scrub(fields: dict[str, Any]) -> dict[str, Any]:
    """Drop password and token fields from a log payload."""

    return {key: value for key, value in fields.items() if key.lower() not in SENSITIVE_KEYS}


def _request_fields() -> dict[str, Any]:
    if not has_request_context():
        return {}
    return {
        "ip": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
        "method": request.method,
        "path": request.path,
        "request_id": g.get("request_id"),
    }


def _emit(logger: logging.Logger, level: int, event: str, fields: dict[str, Any]) -> None:
    payload = {**_request_fields(), **scrub(fields)}
    payload["timestamp"] = datetime.now(timezone.utc).isoformat()
    logger.log(level, "%s %s", event, payload, extra={"event": event, "fields": payload})


def log_auth_event(event: str, user_id: str | None = None, **info: Any) -> None:
    _emit(auth_logger, logging.INFO, event, {"user_id": user_id, **info})


def log_security_event(event: str, **info: Any) -> None:
    _emit(security_logger, logging.WARNING, event, info)


def log_api_usage(response, started_at: float | None = None) -> None:
    """Record one finished request; ``started_at`` is a ``time.perf_counter`` value."""

    if not has_request_context() or request.path in SKIP_USAGE_PATHS:
        return
    fields: dict[str, Any] = {"status_code": response.status_code}
    if started_at is not None:
        fields["response_time_ms"] = round((perf_counter() - started_at) * 1000, 2)
    _emit(usage_logger, logging.INFO, "API_USAGE", fields)

"""JSON error payloads shared by every error path."""

from __future__ import annotations

import uuid
from http import HTTPStatus

from flask import Response, g, jsonify


def current_request_id() -> str:
    request_id = g.get("request_id")
    if not request_id:
        request_id = str(uuid.uuid4())
        g.request_id = request_id
    return request_id


def error_payload(status: int, code: str, detail: str, name: str | None = None) -> dict:
    return {
        "error": name or HTTPStatus(status).phrase,
        "code": code,
        "detail": detail,
        "request_id": current_request_id(),
    }


def json_error(status: int, code: str, detail: str, name: str | None = None) -> Response:
    response = jsonify(error_payload(status, code, detail, name))
    response.status_code = int(status)
    response.headers.setdefault("X-Request-ID", current_request_id())
    return response

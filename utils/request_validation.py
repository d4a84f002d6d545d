"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

import re
from typing import Iterable, NamedTuple

from email_validator import EmailNotValidError, validate_email
from flask import Request

from models.user import ROLES, normalize_email
from services.errors import ValidationError

MAX_EMAIL_LENGTH = 100
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10

_NAME_PATTERN = re.compile(r"^[A-Za-z\s]+$")
_SEARCH_PATTERN = re.compile(r"^[A-Za-z0-9\s@._-]+$")


class Pagination(NamedTuple):
    page: int
    limit: int

    @property
    def start(self) -> int:
        return (self.page - 1) * self.limit


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise ValidationError(message="Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise ValidationError(message="Request JSON body is required.")

    if not isinstance(data, dict):
        raise ValidationError(message="Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise ValidationError(message="Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if not data.get(key)]
        if missing:
            raise ValidationError(
                message="Missing required fields: {}.".format(", ".join(sorted(missing)))
            )

    return data


def require_string(payload: dict, key: str, label: str | None = None) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationError(message=f"{label or key} is required")
    return value


def clean_email(raw_email: object) -> str:
    """Validate the address format and return it normalized."""

    if not isinstance(raw_email, str) or not raw_email.strip():
        raise ValidationError(message="Email is required")
    email = normalize_email(raw_email)
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(message="Email must be less than 100 characters")
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError(message="Please provide a valid email") from exc
    return email


def clean_name(raw_name: object) -> str:
    if not isinstance(raw_name, str) or not raw_name.strip():
        raise ValidationError(message="Name is required")
    name = raw_name.strip()
    if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        raise ValidationError(message="Name must be between 2 and 50 characters")
    if not _NAME_PATTERN.match(name):
        raise ValidationError(message="Name can only contain letters and spaces")
    return name


def clean_role(raw_role: object) -> str:
    role = raw_role.strip().lower() if isinstance(raw_role, str) else ""
    if role not in ROLES:
        raise ValidationError(message='Invalid role. Must be either "user" or "admin"')
    return role


def _positive_int(raw: str | None, default: int, label: str) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(message=f"{label} must be a positive integer") from None
    if value < 1:
        raise ValidationError(message=f"{label} must be a positive integer")
    return value


def parse_pagination(args) -> Pagination:
    page = _positive_int(args.get("page"), 1, "Page")
    limit = _positive_int(args.get("limit"), DEFAULT_PAGE_SIZE, "Limit")
    if limit > MAX_PAGE_SIZE:
        raise ValidationError(message="Limit must be between 1 and 100")
    return Pagination(page, limit)


def clean_search_query(raw_query: str | None) -> str | None:
    if raw_query is None:
        return None
    query = raw_query.strip()
    if not 1 <= len(query) <= 100:
        raise ValidationError(message="Search query must be between 1 and 100 characters")
    if not _SEARCH_PATTERN.match(query):
        raise ValidationError(message="Search query contains invalid characters")
    return query.lower()

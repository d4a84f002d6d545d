"""Signed bearer sessions built on flask-jwt-extended."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask_jwt_extended import JWTManager, create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from models.user import User
from storage.abstract_storage import AbstractUserStore
from utils.event_log import log_security_event
from utils.responses import json_error

from .errors import SessionError
from .registry import get_services

MISSING = "MISSING"
INVALID_OR_EXPIRED = "INVALID_OR_EXPIRED"
SUBJECT_GONE = "SUBJECT_GONE"


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_payload(cls, payload: dict) -> "SessionClaims":
        return cls(
            user_id=str(payload.get("sub")),
            email=payload.get("email", ""),
            role=payload.get("role", "user"),
        )


class SessionIssuer:
    """Issue and verify session tokens carrying the user's id, email and role.

    Tokens are not stored; a token stays valid only while its signature
    checks out, it has not expired and its user still exists.
    """

    def __init__(self, user_store: AbstractUserStore):
        self.user_store = user_store

    def issue(self, user: User) -> str:
        return create_access_token(
            identity=user.id,
            additional_claims={"email": user.email, "role": user.role},
        )

    def resolve(self, user_id: Optional[str]) -> Optional[User]:
        if user_id is None:
            return None
        return self.user_store.get(str(user_id))

    def verify(self, token: Optional[str]) -> SessionClaims:
        if not token:
            raise SessionError(MISSING)
        try:
            payload = decode_token(token)
        except (PyJWTError, JWTExtendedException) as exc:
            raise SessionError(INVALID_OR_EXPIRED) from exc
        if self.resolve(payload.get("sub")) is None:
            raise SessionError(SUBJECT_GONE)
        return SessionClaims.from_payload(payload)


def _session_error_response(reason: str):
    error = SessionError(reason)
    return json_error(error.status_code, error.code, error.message)


def register_jwt_callbacks(jwt: JWTManager) -> None:
    """Map flask-jwt-extended failures onto the session error taxonomy."""

    @jwt.user_lookup_loader
    def _load_user(_jwt_header, jwt_data):
        return get_services().sessions.resolve(jwt_data.get("sub"))

    @jwt.user_lookup_error_loader
    def _user_gone(_jwt_header, jwt_data):
        log_security_event("SESSION_SUBJECT_GONE", user_id=jwt_data.get("sub"))
        return _session_error_response(SUBJECT_GONE)

    @jwt.unauthorized_loader
    def _missing_token(_reason):
        return _session_error_response(MISSING)

    @jwt.invalid_token_loader
    def _invalid_token(reason):
        log_security_event("INVALID_SESSION_TOKEN", reason=reason)
        return _session_error_response(INVALID_OR_EXPIRED)

    @jwt.expired_token_loader
    def _expired_token(_jwt_header, _jwt_payload):
        return _session_error_response(INVALID_OR_EXPIRED)

"""Per-request access decisions.

Each check is a pure function returning an ``AccessDecision``; none of them
touch the store. Routes call ``.enforce()`` to turn a denial into an error.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import NamedTuple, Optional

from models.user import User

from .errors import AuthenticationError, AuthorizationError, ServiceError
from .sessions import SessionClaims


class AccessDecision(NamedTuple):
    allowed: bool
    status: int = HTTPStatus.OK
    code: Optional[str] = None
    message: Optional[str] = None

    def enforce(self) -> None:
        if self.allowed:
            return
        if self.status == HTTPStatus.UNAUTHORIZED:
            raise AuthenticationError(self.code, self.message)
        if self.status == HTTPStatus.FORBIDDEN:
            raise AuthorizationError(self.code, self.message)
        raise ServiceError(self.code, self.message)


ALLOW = AccessDecision(True)


def _deny(status: HTTPStatus, code: str, message: str) -> AccessDecision:
    return AccessDecision(False, status, code, message)


def require_authenticated(claims: Optional[SessionClaims]) -> AccessDecision:
    if claims is None:
        return _deny(HTTPStatus.UNAUTHORIZED, "AUTH_REQUIRED", "Access token required")
    return ALLOW


def require_admin(claims: Optional[SessionClaims]) -> AccessDecision:
    if claims is None or not claims.is_admin:
        return _deny(HTTPStatus.FORBIDDEN, "ADMIN_REQUIRED", "Admin access required")
    return ALLOW


def require_self_or_admin(claims: Optional[SessionClaims], target_id: str) -> AccessDecision:
    if claims is not None and (claims.user_id == target_id or claims.is_admin):
        return ALLOW
    return _deny(
        HTTPStatus.FORBIDDEN,
        "FORBIDDEN",
        "Access denied: can only modify own profile or need admin access",
    )


def require_active_account(user: User) -> AccessDecision:
    if not user.is_active:
        return _deny(
            HTTPStatus.FORBIDDEN,
            "ACCOUNT_NOT_ACTIVE",
            "Account not activated. Please check your email and activate your account first.",
        )
    return ALLOW

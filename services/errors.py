"""Error taxonomy shared by the services and the HTTP layer.

Every error carries an HTTP status, a machine-readable ``code`` and a human
message. The application factory renders them as JSON; nothing here knows
about Flask.
"""

from __future__ import annotations

from http import HTTPStatus


class ServiceError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    default_code = "INTERNAL"
    default_message = "An unexpected error occurred."

    def __init__(self, code: str | None = None, message: str | None = None):
        self.code = code or self.default_code
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def name(self) -> str:
        return self.status_code.phrase


class ValidationError(ServiceError):
    status_code = HTTPStatus.BAD_REQUEST
    default_code = "VALIDATION_ERROR"
    default_message = "Invalid input data."


class AuthenticationError(ServiceError):
    status_code = HTTPStatus.UNAUTHORIZED
    default_code = "AUTH_REQUIRED"
    default_message = "Authentication required."


class AuthorizationError(ServiceError):
    status_code = HTTPStatus.FORBIDDEN
    default_code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action."


class NotFoundError(ServiceError):
    status_code = HTTPStatus.NOT_FOUND
    default_code = "NOT_FOUND"
    default_message = "Resource not found."


class ConflictError(ServiceError):
    status_code = HTTPStatus.CONFLICT
    default_code = "ALREADY_EXISTS"
    default_message = "User already exists."


class TokenError(ValidationError):
    """A reset or activation token could not be used."""

    MESSAGES = {
        "NOT_FOUND": "Token not found",
        "ALREADY_USED": "Token already used",
        "EXPIRED": "Token expired",
    }

    def __init__(self, reason: str, kind: str = "token"):
        self.reason = reason
        super().__init__(
            code=f"TOKEN_{reason}",
            message=f"Invalid {kind} token: {self.MESSAGES.get(reason, reason)}",
        )


class SessionError(AuthenticationError):
    """A bearer session token failed verification."""

    MESSAGES = {
        "MISSING": "Access token required",
        "INVALID_OR_EXPIRED": "Invalid or expired token",
        "SUBJECT_GONE": "User no longer exists",
    }

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(code=reason, message=self.MESSAGES.get(reason, reason))


class DeliveryError(Exception):
    """Raised by a mailer when a message could not be handed off."""

"""Authentication flows: login, registration, password and activation lifecycles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from models.user import DEFAULT_ROLE, User, UserPatch, normalize_email
from storage.abstract_storage import AbstractUserStore
from utils.event_log import log_auth_event, log_security_event

from . import credentials
from .authorization import require_active_account
from .errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TokenError,
    ValidationError,
)
from .sessions import SessionIssuer
from .tokens import NOT_FOUND, AccountActivationService, PasswordResetService, TokenDispatch

GENERIC_RESET_MESSAGE = (
    "If an account with that email exists, password reset instructions have been sent."
)
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


@dataclass
class LoginResult:
    token: str
    user: User


@dataclass
class Registration:
    user: User
    activation: Optional[TokenDispatch]


class AuthService:
    """Orchestrates the user store, credential engine, token services and sessions."""

    def __init__(
        self,
        user_store: AbstractUserStore,
        sessions: SessionIssuer,
        reset_tokens: PasswordResetService,
        activation_tokens: AccountActivationService,
        hash_method: str = credentials.DEFAULT_HASH_METHOD,
    ):
        self.user_store = user_store
        self.sessions = sessions
        self.reset_tokens = reset_tokens
        self.activation_tokens = activation_tokens
        self.hash_method = hash_method

    def hash(self, password: str) -> str:
        return credentials.hash_password(password, method=self.hash_method)

    @staticmethod
    def _require_strong(password: Optional[str], policy: str = credentials.STRICT) -> None:
        result = credentials.check_strength(password, policy)
        if not result.ok:
            raise ValidationError("WEAK_PASSWORD", result.reason)

    def login(self, email: str, password: str) -> LoginResult:
        user = self.user_store.get_by_email(email)
        if user is None:
            log_security_event("FAILED_LOGIN_ATTEMPT", email=normalize_email(email), reason="User not found")
            raise AuthenticationError("INVALID_CREDENTIALS", INVALID_CREDENTIALS_MESSAGE)

        decision = require_active_account(user)
        if not decision.allowed:
            log_security_event("INACTIVE_ACCOUNT_LOGIN", email=user.email, user_id=user.id)
            decision.enforce()

        if not credentials.verify_password(password, user.password_hash):
            log_security_event(
                "FAILED_LOGIN_ATTEMPT", email=user.email, user_id=user.id, reason="Invalid password"
            )
            raise AuthenticationError("INVALID_CREDENTIALS", INVALID_CREDENTIALS_MESSAGE)

        token = self.sessions.issue(user)
        log_auth_event("LOGIN_SUCCESS", user.id, email=user.email)
        return LoginResult(token=token, user=user)

    def register(
        self, name: str, email: str, password: str, role: Optional[str] = None
    ) -> Registration:
        """Create an inactive user and send an activation token.

        A failed activation email leaves the user in place; the caller sees
        ``activation.delivered`` is False and can use resend-activation.
        """

        if role and role != DEFAULT_ROLE:
            log_security_event("ROLE_ESCALATION_ON_REGISTER", email=normalize_email(email), role=role)
            raise AuthorizationError("ROLE_NOT_ALLOWED", "Only an admin can grant the admin role")

        self._require_strong(password)

        if self.user_store.get_by_email(email) is not None:
            raise ConflictError("ALREADY_EXISTS", "User already exists")

        user = self.user_store.add(
            User(email=email, password_hash=self.hash(password), name=name, role=DEFAULT_ROLE)
        )
        activation = self.activation_tokens.request_activation(user.email, user.id)
        log_auth_event(
            "USER_REGISTERED",
            user.id,
            email=user.email,
            requires_activation=True,
            activation_email_sent=activation.delivered,
        )
        return Registration(user=user, activation=activation)

    def change_password(self, user_id: str, current_password: str, new_password: str) -> User:
        user = self.user_store.get(user_id)
        if user is None:
            raise NotFoundError("NOT_FOUND", "User not found")

        if not credentials.verify_password(current_password, user.password_hash):
            log_security_event("PASSWORD_CHANGE_REJECTED", user_id=user.id)
            raise AuthenticationError("INVALID_CURRENT_PASSWORD", "Current password is incorrect")

        self._require_strong(new_password)
        updated = self.user_store.update(user.id, UserPatch(password_hash=self.hash(new_password)))
        log_auth_event("PASSWORD_CHANGED", user.id)
        return updated

    def forgot_password(self, email: str) -> Optional[TokenDispatch]:
        """Issue a reset token if the account exists; the caller always answers generically."""

        user = self.user_store.get_by_email(email)
        if user is None:
            log_security_event("PASSWORD_RESET_ATTEMPT_INVALID_EMAIL", email=normalize_email(email))
            return None

        dispatch = self.reset_tokens.request_reset(user.email)
        log_auth_event("PASSWORD_RESET_REQUESTED", user.id, email=user.email)
        return dispatch

    def reset_password(self, token: str, new_password: str) -> User:
        # Reject a weak password before consuming so the token survives a retry.
        self._require_strong(new_password)

        try:
            record = self.reset_tokens.consume(token)
        except TokenError as exc:
            log_security_event("PASSWORD_RESET_TOKEN_REJECTED", reason=exc.reason)
            raise

        user = self.user_store.get_by_email(record.subject_email)
        if user is None:
            raise TokenError(NOT_FOUND, self.reset_tokens.kind)

        updated = self.user_store.update(user.id, UserPatch(password_hash=self.hash(new_password)))
        log_auth_event("PASSWORD_RESET_APPLIED", user.id, email=user.email)
        return updated

    def activate(self, token: str) -> User:
        try:
            record = self.activation_tokens.consume(token)
        except TokenError as exc:
            log_security_event("ACTIVATION_TOKEN_REJECTED", reason=exc.reason)
            raise

        user = None
        if record.subject_user_id:
            user = self.user_store.get(record.subject_user_id)
        if user is None:
            user = self.user_store.get_by_email(record.subject_email)
        if user is None:
            raise TokenError(NOT_FOUND, self.activation_tokens.kind)

        updated = self.user_store.update(user.id, UserPatch(is_active=True))
        log_auth_event("ACCOUNT_ACTIVATED", user.id, email=user.email)
        return updated

    def resend_activation(self, email: str) -> TokenDispatch:
        user = self.user_store.get_by_email(email)
        if user is None:
            raise NotFoundError("NOT_FOUND", "User not found")
        if user.is_active:
            raise ValidationError("ALREADY_ACTIVE", "Account is already activated")

        dispatch = self.activation_tokens.resend_activation(user.email, user.id)
        log_auth_event("ACTIVATION_RESENT", user.id, email=user.email)
        return dispatch

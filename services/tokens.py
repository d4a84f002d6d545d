"""Single-use, expiring tokens for password reset and account activation."""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, NamedTuple, Optional

from models.token import TokenRecord
from models.user import normalize_email, utcnow
from utils.event_log import log_auth_event, log_security_event

from .errors import DeliveryError, TokenError
from .mailer import EmailMessage, Mailer

logger = logging.getLogger("user_api.tokens")

NOT_FOUND = "NOT_FOUND"
ALREADY_USED = "ALREADY_USED"
EXPIRED = "EXPIRED"

TOKEN_BYTES = 32
DEFAULT_CONSUMED_GRACE = timedelta(minutes=5)


class TokenValidation(NamedTuple):
    valid: bool
    reason: Optional[str] = None
    record: Optional[TokenRecord] = None


@dataclass
class TokenDispatch:
    """Outcome of issuing a token and handing it to the mailer."""

    record: TokenRecord
    delivered: bool
    error: Optional[str] = None
    dev_token: Optional[str] = None


class TokenService:
    """Store of single-use tokens keyed by token value.

    A token authorizes an action only while it is present, unused and
    unexpired. ``consume`` checks and marks under one lock, so of two
    concurrent consumes of the same token exactly one wins.
    """

    kind = "token"
    issued_event = "TOKEN_ISSUED"
    consumed_event = "TOKEN_CONSUMED"
    delivery_failed_event = "TOKEN_DELIVERY_FAILED"
    swept_event = "EXPIRED_TOKENS_CLEANED"

    def __init__(
        self,
        ttl: timedelta,
        *,
        mailer: Optional[Mailer] = None,
        frontend_url: str = "http://localhost:3000",
        expose_tokens: bool = False,
        consumed_grace: timedelta = DEFAULT_CONSUMED_GRACE,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ttl = ttl
        self.mailer = mailer
        self.frontend_url = frontend_url.rstrip("/")
        self.expose_tokens = expose_tokens
        self.consumed_grace = consumed_grace
        self._clock = clock
        self._lock = threading.RLock()
        self._tokens: dict[str, TokenRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._tokens

    @staticmethod
    def generate_token() -> str:
        return secrets.token_hex(TOKEN_BYTES)

    def issue(self, subject_email: str, subject_user_id: Optional[str] = None) -> TokenRecord:
        now = self._clock()
        record = TokenRecord(
            token=self.generate_token(),
            subject_email=normalize_email(subject_email),
            subject_user_id=subject_user_id,
            expires_at=now + self.ttl,
            created_at=now,
        )
        with self._lock:
            self._tokens[record.token] = record
        log_auth_event(
            self.issued_event,
            subject_user_id,
            email=record.subject_email,
            expires_at=record.expires_at.isoformat(),
        )
        return record

    def _check(self, token: object) -> TokenValidation:
        # Caller holds the lock.
        if not isinstance(token, str) or not token:
            return TokenValidation(False, NOT_FOUND)
        record = self._tokens.get(token)
        if record is None:
            return TokenValidation(False, NOT_FOUND)
        if record.used:
            return TokenValidation(False, ALREADY_USED, record)
        if record.is_expired(self._clock()):
            del self._tokens[token]
            return TokenValidation(False, EXPIRED, record)
        return TokenValidation(True, None, record)

    def validate(self, token: object) -> TokenValidation:
        with self._lock:
            return self._check(token)

    def consume(self, token: object) -> TokenRecord:
        """Mark ``token`` used and return its record, or raise ``TokenError``."""

        with self._lock:
            result = self._check(token)
            if not result.valid:
                raise TokenError(result.reason, self.kind)
            record = result.record
            record.used = True
            record.consumed_at = self._clock()

        log_auth_event(self.consumed_event, record.subject_user_id, email=record.subject_email)
        return record

    def invalidate_for(self, subject_email: str) -> int:
        """Drop every unused token issued to ``subject_email``."""

        email = normalize_email(subject_email)
        with self._lock:
            stale = [
                key
                for key, record in self._tokens.items()
                if record.subject_email == email and not record.used
            ]
            for key in stale:
                del self._tokens[key]
        return len(stale)

    def resend_for(self, subject_email: str, subject_user_id: Optional[str] = None) -> TokenRecord:
        self.invalidate_for(subject_email)
        return self.issue(subject_email, subject_user_id)

    def sweep_expired(self) -> int:
        """Remove expired tokens and consumed tokens past the grace window."""

        now = self._clock()
        with self._lock:
            doomed = [
                key
                for key, record in self._tokens.items()
                if record.is_expired(now)
                or (
                    record.used
                    and record.consumed_at is not None
                    and now - record.consumed_at >= self.consumed_grace
                )
            ]
            for key in doomed:
                del self._tokens[key]
            remaining = len(self._tokens)

        logger.info("%s removed=%d remaining=%d", self.swept_event, len(doomed), remaining)
        return len(doomed)

    def render(self, record: TokenRecord) -> EmailMessage:
        raise NotImplementedError

    def dispatch(self, record: TokenRecord) -> TokenDispatch:
        """Send the token to its subject; delivery problems are logged, not raised."""

        dev_token = record.token if self.expose_tokens else None
        if self.mailer is None:
            return TokenDispatch(record, delivered=False, error="No mailer configured", dev_token=dev_token)

        try:
            self.mailer.send(self.render(record))
        except DeliveryError as exc:
            log_security_event(
                self.delivery_failed_event,
                email=record.subject_email,
                user_id=record.subject_user_id,
                error=str(exc),
            )
            return TokenDispatch(record, delivered=False, error=str(exc), dev_token=dev_token)

        return TokenDispatch(record, delivered=True, dev_token=dev_token)


class PasswordResetService(TokenService):
    """Issues one-hour tokens authorizing a password change without the old password."""

    kind = "reset"
    issued_event = "PASSWORD_RESET_TOKEN_GENERATED"
    consumed_event = "PASSWORD_RESET_COMPLETED"
    delivery_failed_event = "PASSWORD_RESET_EMAIL_FAILED"
    swept_event = "EXPIRED_TOKENS_CLEANED"

    def __init__(self, ttl: timedelta = timedelta(hours=1), **kwargs):
        super().__init__(ttl, **kwargs)

    def render(self, record: TokenRecord) -> EmailMessage:
        link = f"{self.frontend_url}/reset-password?token={record.token}"
        return EmailMessage(
            to=record.subject_email,
            subject="Password Reset Request - User Management API",
            html=(
                "<h2>Password Reset Request</h2>"
                "<p>You requested a password reset for your account.</p>"
                f'<p><a href="{link}">Reset Password</a></p>'
                "<p><strong>This link will expire in 1 hour.</strong></p>"
                "<p>If you didn't request this reset, please ignore this email.</p>"
            ),
            text=f"Reset your password: {link}\nThis link will expire in 1 hour.",
        )

    def request_reset(self, email: str) -> TokenDispatch:
        return self.dispatch(self.issue(email))


class AccountActivationService(TokenService):
    """Issues 24-hour tokens proving control of a newly registered email."""

    kind = "activation"
    issued_event = "ACTIVATION_TOKEN_GENERATED"
    consumed_event = "ACCOUNT_ACTIVATED"
    delivery_failed_event = "ACTIVATION_EMAIL_FAILED"
    swept_event = "EXPIRED_ACTIVATION_TOKENS_CLEANED"

    def __init__(self, ttl: timedelta = timedelta(hours=24), **kwargs):
        super().__init__(ttl, **kwargs)

    def render(self, record: TokenRecord) -> EmailMessage:
        link = f"{self.frontend_url}/activate?token={record.token}"
        return EmailMessage(
            to=record.subject_email,
            subject="Account Activation - User Management API",
            html=(
                "<h2>Welcome! Please Activate Your Account</h2>"
                "<p>Thank you for registering with User Management API.</p>"
                f'<p><a href="{link}">Activate Account</a></p>'
                "<p><strong>This link will expire in 24 hours.</strong></p>"
                "<p>If you didn't create this account, please ignore this email.</p>"
            ),
            text=f"Activate your account: {link}\nThis link will expire in 24 hours.",
        )

    def request_activation(self, email: str, user_id: str) -> TokenDispatch:
        return self.dispatch(self.issue(email, user_id))

    def resend_activation(self, email: str, user_id: str) -> TokenDispatch:
        return self.dispatch(self.resend_for(email, user_id))

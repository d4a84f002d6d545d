"""Tests for the reset and activation token services."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from services.errors import DeliveryError, TokenError
from services.mailer import LogMailer, Mailer
from services.tokens import (
    ALREADY_USED,
    EXPIRED,
    NOT_FOUND,
    AccountActivationService,
    PasswordResetService,
)


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FailingMailer(Mailer):
    def send(self, message):
        raise DeliveryError("smtp relay unavailable")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def reset_service(clock) -> PasswordResetService:
    return PasswordResetService(mailer=LogMailer(), clock=clock)


def test_issue_creates_high_entropy_token_with_one_hour_expiry(reset_service, clock):
    record = reset_service.issue("Alice@Example.com")

    assert len(record.token) == 64
    int(record.token, 16)
    assert record.subject_email == "alice@example.com"
    assert record.expires_at == clock.now + timedelta(hours=1)
    assert record.used is False
    assert reset_service.issue("alice@example.com").token != record.token


def test_activation_tokens_last_24_hours(clock):
    service = AccountActivationService(clock=clock)
    record = service.issue("bob@example.com", "user-1")

    assert record.expires_at == clock.now + timedelta(hours=24)
    assert record.subject_user_id == "user-1"


def test_validate_reports_subject(reset_service):
    record = reset_service.issue("alice@example.com")
    result = reset_service.validate(record.token)

    assert result.valid is True
    assert result.record.subject_email == "alice@example.com"


@pytest.mark.parametrize("token", ["", None, 42, "does-not-exist"])
def test_validate_unknown_token(reset_service, token):
    assert reset_service.validate(token).reason == NOT_FOUND


def test_consume_is_single_use(reset_service):
    record = reset_service.issue("alice@example.com")

    consumed = reset_service.consume(record.token)
    assert consumed.subject_email == "alice@example.com"
    assert consumed.used is True

    with pytest.raises(TokenError) as excinfo:
        reset_service.consume(record.token)
    assert excinfo.value.reason == ALREADY_USED
    assert excinfo.value.code == "TOKEN_ALREADY_USED"


def test_concurrent_consumes_only_one_wins(reset_service):
    record = reset_service.issue("alice@example.com")
    barrier = threading.Barrier(8)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def worker():
        barrier.wait()
        try:
            reset_service.consume(record.token)
            outcome = "ok"
        except TokenError as exc:
            outcome = exc.reason
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count(ALREADY_USED) == 7


def test_expired_token_is_rejected_and_purged(reset_service, clock):
    record = reset_service.issue("alice@example.com")
    clock.advance(hours=1, seconds=1)

    result = reset_service.validate(record.token)
    assert result.valid is False
    assert result.reason == EXPIRED
    assert record.token not in reset_service

    with pytest.raises(TokenError) as excinfo:
        reset_service.consume(record.token)
    assert excinfo.value.reason == NOT_FOUND


def test_expired_token_already_swept_reports_not_found(reset_service, clock):
    record = reset_service.issue("alice@example.com")
    clock.advance(hours=2)

    assert reset_service.sweep_expired() == 1
    assert reset_service.validate(record.token).reason == NOT_FOUND


def test_sweep_keeps_live_tokens_and_drops_consumed_after_grace(reset_service, clock):
    live = reset_service.issue("alice@example.com")
    consumed = reset_service.issue("bob@example.com")
    reset_service.consume(consumed.token)

    assert reset_service.sweep_expired() == 0
    assert reset_service.validate(consumed.token).reason == ALREADY_USED

    clock.advance(minutes=5)
    assert reset_service.sweep_expired() == 1
    assert live.token in reset_service
    assert consumed.token not in reset_service


def test_resend_invalidates_only_that_subjects_tokens(clock):
    service = AccountActivationService(clock=clock)
    first = service.issue("alice@example.com", "u1")
    other = service.issue("bob@example.com", "u2")

    fresh = service.resend_for("alice@example.com", "u1")

    assert service.validate(first.token).reason == NOT_FOUND
    assert service.validate(fresh.token).valid
    assert service.validate(other.token).valid


def test_request_reset_sends_email_with_link(clock):
    mailer = LogMailer()
    service = PasswordResetService(mailer=mailer, clock=clock, frontend_url="https://app.example.com/")

    dispatch = service.request_reset("alice@example.com")

    assert dispatch.delivered is True
    assert dispatch.dev_token is None
    [message] = mailer.outbox
    assert message.to == "alice@example.com"
    assert f"https://app.example.com/reset-password?token={dispatch.record.token}" in message.html


def test_delivery_failure_is_reported_not_raised(clock):
    service = AccountActivationService(mailer=FailingMailer(), clock=clock, expose_tokens=True)

    dispatch = service.request_activation("alice@example.com", "u1")

    assert dispatch.delivered is False
    assert "unavailable" in dispatch.error
    assert dispatch.dev_token == dispatch.record.token
    assert service.validate(dispatch.record.token).valid

"""Tests for the access decision functions."""

import pytest

from models.user import User
from services.authorization import (
    require_active_account,
    require_admin,
    require_authenticated,
    require_self_or_admin,
)
from services.errors import AuthenticationError, AuthorizationError
from services.sessions import SessionClaims

ALICE = SessionClaims(user_id="u-alice", email="alice@example.com", role="user")
ADMIN = SessionClaims(user_id="u-admin", email="admin@example.com", role="admin")


def test_require_authenticated():
    assert require_authenticated(ALICE).allowed
    denied = require_authenticated(None)
    assert denied.status == 401
    with pytest.raises(AuthenticationError):
        denied.enforce()


def test_require_admin():
    assert require_admin(ADMIN).allowed
    denied = require_admin(ALICE)
    assert denied.status == 403
    assert denied.code == "ADMIN_REQUIRED"
    with pytest.raises(AuthorizationError):
        denied.enforce()


@pytest.mark.parametrize(
    "claims, target, allowed",
    [
        (ALICE, "u-alice", True),
        (ALICE, "u-bob", False),
        (ADMIN, "u-bob", True),
        (None, "u-alice", False),
    ],
)
def test_require_self_or_admin(claims, target, allowed):
    assert require_self_or_admin(claims, target).allowed is allowed


def test_require_active_account_has_distinct_code():
    user = User(email="new@example.com", password_hash="x", is_active=False)

    decision = require_active_account(user)

    assert decision.allowed is False
    assert decision.code == "ACCOUNT_NOT_ACTIVE"
    user.is_active = True
    assert require_active_account(user).allowed


def test_allowed_decision_enforce_is_noop():
    require_admin(ADMIN).enforce()

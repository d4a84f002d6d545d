"""Tests for session issuance, verification and revocation-by-deletion."""

from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token, decode_token

from services.errors import SessionError


def test_issue_embeds_identity_and_role(app, services, make_user):
    user = make_user("admin@example.com", "AdminPass123", role="admin")

    with app.app_context():
        token = services.sessions.issue(user)
        payload = decode_token(token)
        claims = services.sessions.verify(token)

    assert payload["sub"] == user.id
    assert payload["email"] == "admin@example.com"
    assert payload["role"] == "admin"
    assert payload["exp"] - payload["iat"] == 24 * 3600
    assert claims.user_id == user.id
    assert claims.is_admin


@pytest.mark.parametrize(
    "token, reason",
    [(None, "MISSING"), ("", "MISSING"), ("not.a.jwt", "INVALID_OR_EXPIRED")],
)
def test_verify_rejects_bad_tokens(app, services, token, reason):
    with app.app_context():
        with pytest.raises(SessionError) as excinfo:
            services.sessions.verify(token)
    assert excinfo.value.reason == reason


def test_verify_rejects_expired_token(app, services, make_user):
    user = make_user("old@example.com", "Password123")

    with app.app_context():
        token = create_access_token(identity=user.id, expires_delta=timedelta(seconds=-1))
        with pytest.raises(SessionError) as excinfo:
            services.sessions.verify(token)
    assert excinfo.value.reason == "INVALID_OR_EXPIRED"


def test_deleted_user_session_is_revoked(app, client, services, make_user, login):
    user = make_user("gone@example.com", "Password123")
    headers = login("gone@example.com", "Password123")

    with app.app_context():
        token = headers["Authorization"].split(" ", 1)[1]
        services.user_store.delete(user.id)
        with pytest.raises(SessionError) as excinfo:
            services.sessions.verify(token)
    assert excinfo.value.reason == "SUBJECT_GONE"

    response = client.get("/auth/profile", headers=headers)
    assert response.status_code == 401
    assert response.get_json()["code"] == "SUBJECT_GONE"


def test_protected_route_without_token(client):
    response = client.get("/auth/profile")

    assert response.status_code == 401
    payload = response.get_json()
    assert payload["code"] == "MISSING"
    assert payload["detail"] == "Access token required"


def test_protected_route_with_tampered_token(client, make_user, login):
    make_user("alice@example.com", "Password123")
    headers = login("alice@example.com", "Password123")
    unsigned = headers["Authorization"].rsplit(".", 1)[0]
    headers["Authorization"] = unsigned + ".forged-signature"

    response = client.get("/auth/profile", headers=headers)

    assert response.status_code == 401
    assert response.get_json()["code"] == "INVALID_OR_EXPIRED"

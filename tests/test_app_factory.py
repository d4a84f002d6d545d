"""Tests for the Flask application factory."""
from __future__ import annotations

import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from conftest import AppTestConfig  # noqa: E402
from services.mailer import LogMailer  # noqa: E402
from storage import InMemoryUserStore  # noqa: E402


def test_health_endpoint_returns_ok(client):
    """The health endpoint should respond with an OK payload."""
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["timestamp"]


def test_blueprints_registered(app):
    """Application factory should register expected blueprints."""
    bps = set(app.blueprints.keys())
    assert {"auth", "users", "api_auth", "api_users"}.issubset(bps)


def test_each_app_gets_isolated_state(services, make_user):
    make_user("alice@example.com", "Password123")

    other = create_app(AppTestConfig)

    assert services.user_store.count() == 1
    assert other.extensions["user_api"].user_store.count() == 0


def test_injected_collaborators_are_used():
    store = InMemoryUserStore()
    mailer = LogMailer()

    app = create_app(AppTestConfig, user_store=store, mailer=mailer)

    registry = app.extensions["user_api"]
    assert registry.user_store is store
    assert registry.activation_tokens.mailer is mailer
    assert registry.scheduler is None


def test_demo_users_seeded_when_enabled():
    class SeededConfig(AppTestConfig):
        SEED_DEMO_USERS = True

    app = create_app(SeededConfig)
    client = app.test_client()

    response = client.post("/auth/login", json={"email": "admin@test.com", "password": "admin123"})

    assert response.status_code == 200
    assert response.get_json()["user"]["role"] == "admin"


def test_sweeper_starts_when_enabled():
    class SweepingConfig(AppTestConfig):
        TOKEN_SWEEP_ENABLED = True

    app = create_app(SweepingConfig)
    scheduler = app.extensions["user_api"].scheduler
    try:
        job_ids = {job.id for job in scheduler.get_jobs()}
        assert job_ids == {"reset_token_sweep", "activation_token_sweep"}
    finally:
        scheduler.shutdown(wait=False)

"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models.user import User  # noqa: E402
from services.credentials import hash_password  # noqa: E402
from services.mailer import LogMailer  # noqa: E402
from services.registry import EXTENSION_KEY, ServiceRegistry  # noqa: E402

FAST_HASH = "pbkdf2:sha256:1000"


class AppTestConfig(Config):
    TESTING = True
    DEBUG = False
    SECRET_KEY = "test-secret-key-that-is-long-enough-for-hs256"
    JWT_SECRET_KEY = SECRET_KEY
    PASSWORD_HASH_METHOD = FAST_HASH
    TOKEN_SWEEP_ENABLED = False
    SEED_DEMO_USERS = False
    EXPOSE_DEV_TOKENS = True
    MAIL_BACKEND = "log"
    CORS_ORIGINS = "*"
    RATELIMIT_ENABLED = True
    RATE_LIMIT = "1000 per minute"
    AUTH_RATE_LIMIT = "1000 per minute"
    STRICT_RATE_LIMIT = "1000 per minute"


@pytest.fixture()
def mailer() -> LogMailer:
    return LogMailer()


@pytest.fixture()
def app(mailer) -> Flask:
    """Create a Flask application instance with fresh in-memory state."""

    return create_app(AppTestConfig, mailer=mailer)


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def services(app: Flask) -> ServiceRegistry:
    return app.extensions[EXTENSION_KEY]


@pytest.fixture()
def make_user(services):
    """Factory persisting a user directly in the store."""

    def _make(
        email: str,
        password: str,
        role: str = "user",
        *,
        active: bool = True,
        name: str = "Test User",
    ) -> User:
        user = User(
            email=email,
            password_hash=hash_password(password, method=FAST_HASH),
            name=name,
            role=role,
            is_active=active,
        )
        return services.user_store.add(user)

    return _make


@pytest.fixture()
def login(client: FlaskClient):
    """Log in and return ready-made Authorization headers."""

    def _login(email: str, password: str) -> dict:
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.get_json()
        return {"Authorization": f"Bearer {response.get_json()['token']}"}

    return _login

"""Flask extension instances shared by the app factory and the blueprints."""

from flask import current_app
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address


def default_rate_limit() -> str:
    return current_app.config.get("RATE_LIMIT", "100 per 15 minutes")


def auth_rate_limit() -> str:
    return current_app.config.get("AUTH_RATE_LIMIT", "5 per 15 minutes")


def strict_rate_limit() -> str:
    return current_app.config.get("STRICT_RATE_LIMIT", "3 per hour")


jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address, default_limits=[default_rate_limit])

"""Application configuration module."""

import os
from datetime import timedelta


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


class Config:
    """Base configuration for the Flask application."""

    # Core
    ENV_NAME = os.getenv("APP_ENV", "production")
    DEBUG = _env_bool("DEBUG", False)
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_TOKEN_LOCATION = ["headers"]
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SEED_DEMO_USERS = _env_bool("SEED_DEMO_USERS", False)

    # Credentials
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    # Reset / activation tokens
    RESET_TOKEN_TTL = timedelta(hours=1)
    ACTIVATION_TOKEN_TTL = timedelta(hours=24)
    CONSUMED_TOKEN_GRACE = timedelta(minutes=5)
    RESET_SWEEP_INTERVAL_MINUTES = int(os.getenv("RESET_SWEEP_INTERVAL_MINUTES", "30"))
    ACTIVATION_SWEEP_INTERVAL_MINUTES = int(
        os.getenv("ACTIVATION_SWEEP_INTERVAL_MINUTES", "60")
    )
    TOKEN_SWEEP_ENABLED = _env_bool("TOKEN_SWEEP_ENABLED", True)
    # Echo reset/activation tokens in responses instead of relying on email.
    EXPOSE_DEV_TOKENS = _env_bool("EXPOSE_DEV_TOKENS", ENV_NAME == "development")

    # Mail
    MAIL_BACKEND = os.getenv("MAIL_BACKEND", "log")
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", True)
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "noreply@userapi.local")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # CORS
    _raw_origins = os.getenv("ORIGINS", "*")
    if _raw_origins.strip() == "*":
        CORS_ORIGINS = "*"
    else:
        CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]

    # Rate limiting
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)
    RATE_LIMIT = os.getenv("RATE_LIMIT", "100 per 15 minutes")
    AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "5 per 15 minutes")
    STRICT_RATE_LIMIT = os.getenv("STRICT_RATE_LIMIT", "3 per hour")
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_KEY_PREFIX = os.getenv("RATELIMIT_KEY_PREFIX", "")


class DevelopmentConfig(Config):
    """Local development defaults: verbose errors and echoed tokens."""

    ENV_NAME = "development"
    DEBUG = True
    EXPOSE_DEV_TOKENS = True
    SEED_DEMO_USERS = True

"""Application factory."""

import atexit
import logging
import os
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from flask_limiter.errors import RateLimitExceeded
from werkzeug.exceptions import HTTPException

from config import Config, DevelopmentConfig
from extensions import jwt, limiter
from models.user import User
from routes.auth import auth_bp
from routes.users import users_bp
from services.auth_service import AuthService
from services.credentials import hash_password
from services.errors import ServiceError
from services.mailer import Mailer, mailer_from_config
from services.registry import EXTENSION_KEY, ServiceRegistry
from services.sessions import SessionIssuer, register_jwt_callbacks
from services.sweeper import start_token_sweeper, stop_token_sweeper
from services.tokens import AccountActivationService, PasswordResetService
from storage import AbstractUserStore, InMemoryUserStore
from utils.event_log import log_api_usage, log_security_event
from utils.responses import current_request_id, json_error

DEMO_USERS = (
    ("admin@test.com", "admin123", "Admin User", "admin"),
    ("user@test.com", "user123", "Regular User", "user"),
)


def create_app(
    config_class: type[Config] = Config,
    *,
    user_store: Optional[AbstractUserStore] = None,
    mailer: Optional[Mailer] = None,
) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("user_api").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Core subsystems
    jwt.init_app(app)
    register_jwt_callbacks(jwt)
    _init_services(app, user_store=user_store, mailer=mailer)

    # CORS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Rate limiting
    limiter.init_app(app)

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(users_bp, url_prefix="/users")
    app.register_blueprint(auth_bp, url_prefix="/api/auth", name="api_auth")
    app.register_blueprint(users_bp, url_prefix="/api/users", name="api_users")

    # Health
    @app.route("/health", methods=["GET"])
    @limiter.exempt
    def health_check():
        return jsonify({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})

    # Errors
    _register_error_handlers(app)

    return app


def _init_services(
    app: Flask,
    *,
    user_store: Optional[AbstractUserStore],
    mailer: Optional[Mailer],
) -> ServiceRegistry:
    """Construct the per-process stores and services and attach them to the app."""
    config = app.config
    store = user_store if user_store is not None else InMemoryUserStore()
    mailer = mailer if mailer is not None else mailer_from_config(config)

    token_options = {
        "mailer": mailer,
        "frontend_url": config.get("FRONTEND_URL", "http://localhost:3000"),
        "expose_tokens": bool(config.get("EXPOSE_DEV_TOKENS", False)),
        "consumed_grace": config["CONSUMED_TOKEN_GRACE"],
    }
    reset_tokens = PasswordResetService(config["RESET_TOKEN_TTL"], **token_options)
    activation_tokens = AccountActivationService(config["ACTIVATION_TOKEN_TTL"], **token_options)
    sessions = SessionIssuer(store)
    auth = AuthService(
        store,
        sessions,
        reset_tokens,
        activation_tokens,
        hash_method=config.get("PASSWORD_HASH_METHOD", "scrypt"),
    )

    registry = ServiceRegistry(
        user_store=store,
        mailer=mailer,
        reset_tokens=reset_tokens,
        activation_tokens=activation_tokens,
        sessions=sessions,
        auth=auth,
    )

    if config.get("SEED_DEMO_USERS"):
        _seed_demo_users(store, config.get("PASSWORD_HASH_METHOD", "scrypt"))

    if config.get("TOKEN_SWEEP_ENABLED"):
        registry.scheduler = start_token_sweeper(
            [
                (reset_tokens, config["RESET_SWEEP_INTERVAL_MINUTES"]),
                (activation_tokens, config["ACTIVATION_SWEEP_INTERVAL_MINUTES"]),
            ]
        )
        atexit.register(stop_token_sweeper, registry.scheduler)

    app.extensions[EXTENSION_KEY] = registry
    return registry


def _seed_demo_users(store: AbstractUserStore, hash_method: str) -> None:
    for email, password, name, role in DEMO_USERS:
        if store.get_by_email(email) is None:
            store.add(
                User(
                    email=email,
                    password_hash=hash_password(password, method=hash_method),
                    name=name,
                    role=role,
                    is_active=True,
                )
            )


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():  # pragma: no cover
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        g.started_at = time.perf_counter()

    @app.after_request
    def _add_request_id_header(response):  # pragma: no cover
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        log_api_usage(response, g.get("started_at"))
        return response

    @app.errorhandler(ServiceError)
    def _handle_service_error(error: ServiceError):
        return json_error(error.status_code, error.code, error.message, error.name)

    @app.errorhandler(RateLimitExceeded)
    def _handle_rate_limited(error: RateLimitExceeded):
        log_security_event("RATE_LIMIT_EXCEEDED", limit=str(error.description))
        response = json_error(
            429,
            "RATE_LIMITED",
            "Too many requests. Please try again later.",
        )
        item = getattr(getattr(error, "limit", None), "limit", None)
        if item is not None:
            response.headers.setdefault("Retry-After", str(item.get_expiry()))
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        code = (getattr(error, "name", "Error") or "Error").upper().replace(" ", "_")
        response = json_error(error.code or 500, code, error.description, error.name)
        for header, value in error.get_response().headers.items():
            if header.lower() not in {"content-type", "content-length"}:
                response.headers.setdefault(header, value)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):  # pragma: no cover
        app.logger.exception(
            "Unhandled application error", extra={"request_id": current_request_id()}
        )
        detail = "An unexpected error occurred."
        if app.config.get("DEBUG"):
            detail = f"{type(error).__name__}: {error}"
        return json_error(500, "INTERNAL", detail, "Internal Server Error")


if __name__ == "__main__":
    config_class = DevelopmentConfig if os.environ.get("APP_ENV") == "development" else Config
    application = create_app(config_class)
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 8888)), threaded=True)

"""Authentication blueprint: registration, login, password and activation flows."""

from __future__ import annotations

from datetime import datetime, timezone
from http import HTTPStatus

from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user, get_jwt, jwt_required

from extensions import auth_rate_limit, limiter, strict_rate_limit
from services.auth_service import GENERIC_RESET_MESSAGE
from services.authorization import require_admin
from services.registry import get_services
from services.sessions import SessionClaims
from utils.request_validation import (
    clean_email,
    clean_name,
    clean_role,
    parse_json_request,
    require_string,
)

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
@limiter.limit(auth_rate_limit)
def register() -> tuple:
    """Register a new, inactive user and send an activation token."""
    payload = parse_json_request(request)
    email = clean_email(payload.get("email"))
    password = require_string(payload, "password", "Password")
    name = clean_name(payload.get("name"))
    role = clean_role(payload["role"]) if payload.get("role") else None

    registration = get_services().auth.register(name, email, password, role)
    activation = registration.activation

    body = {
        "message": "User created successfully. Please check your email to activate your account.",
        "user": registration.user.to_dict(),
        "activationEmailSent": bool(activation and activation.delivered),
    }
    if activation and activation.dev_token:
        body["activationToken"] = activation.dev_token
    return jsonify(body), HTTPStatus.CREATED


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(auth_rate_limit)
def login() -> tuple:
    """Authenticate a user and return a session token."""
    payload = parse_json_request(request)
    email = clean_email(payload.get("email"))
    password = require_string(payload, "password", "Password")

    result = get_services().auth.login(email, password)
    return (
        jsonify(
            {
                "message": "Login successful",
                "token": result.token,
                "user": result.user.to_dict(),
            }
        ),
        HTTPStatus.OK,
    )


@auth_bp.route("/forgot-password", methods=["POST"])
@limiter.limit(auth_rate_limit)
def forgot_password() -> tuple:
    """Start a password reset; the answer never reveals whether the email exists."""
    payload = parse_json_request(request)
    email = clean_email(payload.get("email"))

    dispatch = get_services().auth.forgot_password(email)

    body = {"message": GENERIC_RESET_MESSAGE}
    if dispatch and dispatch.dev_token:
        body["resetToken"] = dispatch.dev_token
    return jsonify(body), HTTPStatus.OK


@auth_bp.route("/reset-password", methods=["POST"])
@limiter.limit(auth_rate_limit)
def reset_password() -> tuple:
    payload = parse_json_request(request)
    token = require_string(payload, "token", "Token")
    new_password = require_string(payload, "newPassword", "New password")

    get_services().auth.reset_password(token, new_password)
    return jsonify({"message": "Password has been reset successfully"}), HTTPStatus.OK


@auth_bp.route("/activate", methods=["POST"])
def activate() -> tuple:
    payload = parse_json_request(request)
    token = require_string(payload, "token", "Token")

    user = get_services().auth.activate(token)
    return (
        jsonify({"message": "Account activated successfully", "email": user.email}),
        HTTPStatus.OK,
    )


@auth_bp.route("/resend-activation", methods=["POST"])
@limiter.limit(auth_rate_limit)
def resend_activation() -> tuple:
    payload = parse_json_request(request)
    email = clean_email(payload.get("email"))

    dispatch = get_services().auth.resend_activation(email)

    body = {
        "message": "Activation instructions sent to your email",
        "activationEmailSent": dispatch.delivered,
    }
    if dispatch.dev_token:
        body["activationToken"] = dispatch.dev_token
    return jsonify(body), HTTPStatus.OK


@auth_bp.route("/profile", methods=["GET"])
@jwt_required()
def profile() -> tuple:
    """Return the authenticated user's own record."""
    return jsonify(current_user.to_dict()), HTTPStatus.OK


@auth_bp.route("/change-password", methods=["POST"])
@jwt_required()
@limiter.limit(strict_rate_limit)
def change_password() -> tuple:
    payload = parse_json_request(request)
    current_password = require_string(payload, "currentPassword", "Current password")
    new_password = require_string(payload, "newPassword", "New password")

    get_services().auth.change_password(current_user.id, current_password, new_password)
    return jsonify({"message": "Password changed successfully"}), HTTPStatus.OK


@auth_bp.route("/admin/stats", methods=["GET"])
@jwt_required()
def admin_stats() -> tuple:
    """Admin-only summary of the user population."""
    require_admin(SessionClaims.from_payload(get_jwt())).enforce()

    users = get_services().user_store.list()
    admins = sum(1 for user in users if user.role == "admin")
    recent = sorted(users, key=lambda user: user.created_at, reverse=True)[:5]

    return (
        jsonify(
            {
                "totalUsers": len(users),
                "adminUsers": admins,
                "regularUsers": len(users) - admins,
                "activeUsers": sum(1 for user in users if user.is_active),
                "usersByRole": {"admin": admins, "user": len(users) - admins},
                "recentUsers": [user.to_dict() for user in recent],
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ),
        HTTPStatus.OK,
    )

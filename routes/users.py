"""Users blueprint: listing, search, lookup, update and admin deletion."""

from __future__ import annotations

import math
from http import HTTPStatus
from typing import Sequence

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt, jwt_required

from models.user import User, UserPatch
from services import credentials
from services.authorization import require_admin, require_self_or_admin
from services.errors import NotFoundError, ValidationError
from services.registry import get_services
from services.sessions import SessionClaims
from utils.event_log import log_auth_event, log_security_event
from utils.request_validation import (
    Pagination,
    clean_email,
    clean_name,
    clean_role,
    clean_search_query,
    parse_json_request,
    parse_pagination,
)

users_bp = Blueprint("users", __name__)

UPDATABLE_FIELDS = {"email", "name", "role", "password"}


def _claims() -> SessionClaims:
    return SessionClaims.from_payload(get_jwt())


def _get_user_or_404(user_id: str) -> User:
    user = get_services().user_store.get(user_id)
    if user is None:
        raise NotFoundError("NOT_FOUND", "User not found")
    return user


def _paginated(users: Sequence[User], pagination: Pagination):
    total = len(users)
    total_pages = math.ceil(total / pagination.limit) if total else 0
    end = pagination.start + pagination.limit
    response = jsonify(
        {
            "users": [user.to_dict() for user in users[pagination.start:end]],
            "pagination": {
                "currentPage": pagination.page,
                "totalPages": total_pages,
                "totalUsers": total,
                "hasNext": end < total,
                "hasPrev": pagination.page > 1,
            },
        }
    )
    response.headers["X-Total-Users"] = str(total)
    response.headers["X-Current-Page"] = str(pagination.page)
    response.headers["X-Total-Pages"] = str(total_pages)
    return response


def _build_patch(payload: dict) -> UserPatch:
    """Validate each supplied field and turn the body into a typed patch."""

    unknown = set(payload) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(
            message="Unsupported fields: {}.".format(", ".join(sorted(unknown)))
        )

    password_hash = None
    if "password" in payload:
        result = credentials.check_strength(payload["password"], credentials.LEGACY)
        if not result.ok:
            raise ValidationError("WEAK_PASSWORD", result.reason)
        password_hash = get_services().auth.hash(payload["password"])

    patch = UserPatch(
        email=clean_email(payload["email"]) if "email" in payload else None,
        name=clean_name(payload["name"]) if "name" in payload else None,
        role=clean_role(payload["role"]) if "role" in payload else None,
        password_hash=password_hash,
    )
    if patch.is_empty():
        raise ValidationError(message="No updatable fields supplied.")
    return patch


@users_bp.route("", methods=["GET"])
@jwt_required()
def list_users():
    """Return a page of users."""
    pagination = parse_pagination(request.args)
    return _paginated(get_services().user_store.list(), pagination)


@users_bp.route("/search", methods=["GET"])
@jwt_required()
def search_users():
    """Filter users by a name/email substring and optionally by role."""
    pagination = parse_pagination(request.args)
    query = clean_search_query(request.args.get("q"))
    role = clean_role(request.args["role"]) if request.args.get("role") else None

    users = get_services().user_store.list()
    if query:
        users = [user for user in users if query in user.email or query in user.name.lower()]
    if role:
        users = [user for user in users if user.role == role]
    return _paginated(users, pagination)


@users_bp.route("/<user_id>", methods=["GET"])
@jwt_required()
def get_user(user_id: str):
    return jsonify(_get_user_or_404(user_id).to_dict())


@users_bp.route("/<user_id>", methods=["PUT"])
@jwt_required()
def update_user(user_id: str):
    """Update a profile. Only admins may change roles; a non-admin's role field is dropped."""
    claims = _claims()
    require_self_or_admin(claims, user_id).enforce()
    _get_user_or_404(user_id)

    patch = _build_patch(parse_json_request(request))
    if patch.role is not None and not claims.is_admin:
        log_security_event("ROLE_CHANGE_DROPPED", user_id=claims.user_id, target_id=user_id)
        patch = patch.without_role()

    updated = get_services().user_store.update(user_id, patch)
    if updated is None:
        raise NotFoundError("NOT_FOUND", "User not found")

    log_auth_event("USER_UPDATED", claims.user_id, target_id=user_id)
    return jsonify({"message": "User updated successfully", "user": updated.to_dict()})


@users_bp.route("/<user_id>", methods=["DELETE"])
@jwt_required()
def delete_user(user_id: str):
    """Admin-only deletion; an admin cannot delete their own account."""
    claims = _claims()
    require_admin(claims).enforce()

    if claims.user_id == user_id:
        raise ValidationError("SELF_DELETE", "Cannot delete your own account")

    if get_services().user_store.delete(user_id) is None:
        raise NotFoundError("NOT_FOUND", "User not found")

    log_auth_event("USER_DELETED", claims.user_id, target_id=user_id)
    return jsonify({"message": "User deleted successfully"})

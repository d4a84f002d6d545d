"""Per-application container for the stateful services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from flask import current_app

if TYPE_CHECKING:
    from storage.abstract_storage import AbstractUserStore

    from .auth_service import AuthService
    from .mailer import Mailer
    from .sessions import SessionIssuer
    from .tokens import AccountActivationService, PasswordResetService

EXTENSION_KEY = "user_api"


@dataclass
class ServiceRegistry:
    user_store: "AbstractUserStore"
    mailer: "Mailer"
    reset_tokens: "PasswordResetService"
    activation_tokens: "AccountActivationService"
    sessions: "SessionIssuer"
    auth: "AuthService"
    scheduler: Optional[Any] = None


def get_services() -> ServiceRegistry:
    """Return the registry bound to the current Flask application."""
    return current_app.extensions[EXTENSION_KEY]

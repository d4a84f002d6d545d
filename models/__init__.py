"""Domain records and model exports."""

from .token import TokenRecord
from .user import DEFAULT_ROLE, ROLES, User, UserPatch, normalize_email

__all__ = [
    "DEFAULT_ROLE",
    "ROLES",
    "TokenRecord",
    "User",
    "UserPatch",
    "normalize_email",
]

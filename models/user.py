"""User model definition."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional


ROLES = ("user", "admin")
DEFAULT_ROLE = "user"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(raw_email: str | None) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""
    return (raw_email or "").strip().lower()


@dataclass
class User:
    """Represents a platform user."""

    email: str
    password_hash: str = field(repr=False)
    name: str = ""
    role: str = DEFAULT_ROLE
    is_active: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.email = normalize_email(self.email)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> dict:
        """Public representation; the password hash is never included."""

        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class UserPatch:
    """Partial update for a user. ``None`` means leave the field unchanged."""

    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    password_hash: Optional[str] = None
    is_active: Optional[bool] = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.email, self.name, self.role, self.password_hash, self.is_active)
        )

    def without_role(self) -> "UserPatch":
        return replace(self, role=None)

    def apply(self, user: User) -> User:
        """Return a copy of ``user`` with the patch merged on top."""

        changes = {}
        if self.email is not None:
            changes["email"] = normalize_email(self.email)
        if self.name is not None:
            changes["name"] = self.name
        if self.role is not None:
            changes["role"] = self.role
        if self.password_hash is not None:
            changes["password_hash"] = self.password_hash
        if self.is_active is not None:
            changes["is_active"] = self.is_active
        return replace(user, **changes)

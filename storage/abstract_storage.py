"""Storage abstraction layer for user records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from models.user import User, UserPatch


class AbstractUserStore(ABC):
    """Interface for user storage backends."""

    @abstractmethod
    def add(self, user: User) -> User:
        """Persist a new user; raise ``ConflictError`` if the email is taken."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[User]:
        """Return the user with the given id, or ``None``."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        """Return the user with the given (normalized) email, or ``None``."""

    @abstractmethod
    def list(self) -> list[User]:
        """Return all users in insertion order."""

    @abstractmethod
    def update(self, user_id: str, patch: UserPatch) -> Optional[User]:
        """Merge ``patch`` onto the stored user and return it, or ``None``."""

    @abstractmethod
    def delete(self, user_id: str) -> Optional[User]:
        """Remove and return the user, or ``None`` if absent."""

    def count(self) -> int:
        return len(self.list())

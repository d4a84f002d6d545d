"""In-process user store."""

from __future__ import annotations

import threading
from typing import Iterable, Optional

from models.user import User, UserPatch, normalize_email
from services.errors import ConflictError

from .abstract_storage import AbstractUserStore


class InMemoryUserStore(AbstractUserStore):
    """Keep users in a dict guarded by a lock; contents die with the process."""

    def __init__(self, users: Iterable[User] | None = None):
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        for user in users or ():
            self.add(user)

    def _email_owner(self, email: str) -> Optional[User]:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    def add(self, user: User) -> User:
        with self._lock:
            if self._email_owner(user.email) is not None:
                raise ConflictError("ALREADY_EXISTS", "User already exists")
            self._users[user.id] = user
            return user

    def get(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            return self._email_owner(normalize_email(email))

    def list(self) -> list[User]:
        with self._lock:
            return list(self._users.values())

    def update(self, user_id: str, patch: UserPatch) -> Optional[User]:
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                return None
            updated = patch.apply(current)
            if updated.email != current.email:
                owner = self._email_owner(updated.email)
                if owner is not None and owner.id != user_id:
                    raise ConflictError("ALREADY_EXISTS", "Email is already in use")
            self._users[user_id] = updated
            return updated

    def delete(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.pop(user_id, None)

    def count(self) -> int:
        with self._lock:
            return len(self._users)

    def clear(self) -> None:
        with self._lock:
            self._users.clear()

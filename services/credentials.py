"""Password hashing, verification and strength policy."""

from __future__ import annotations

import re
from typing import NamedTuple

from werkzeug.security import check_password_hash, generate_password_hash

DEFAULT_HASH_METHOD = "scrypt"
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128

STRICT = "strict"
LEGACY = "legacy"

_LOWER = re.compile(r"[a-z]")
_UPPER = re.compile(r"[A-Z]")
_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")


class StrengthResult(NamedTuple):
    ok: bool
    reason: str | None = None


def hash_password(password: str, method: str = DEFAULT_HASH_METHOD) -> str:
    """Hash a password with a random salt; two calls never return the same digest."""

    return generate_password_hash(password, method=method)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Verify a password against the stored hash, returning False on a bad hash."""

    if not password or not password_hash:
        return False
    try:
        return check_password_hash(password_hash, password)
    except (ValueError, TypeError):
        return False


def check_strength(password: str | None, policy: str = STRICT) -> StrengthResult:
    """Check ``password`` against the named policy.

    ``strict`` (registration, password change and reset) requires 6-128
    characters with a lowercase letter, an uppercase letter and a digit.
    ``legacy`` (profile updates) requires at least 6 characters with a letter
    and a digit.
    """

    if not password:
        return StrengthResult(False, "Password is required")

    if policy == LEGACY:
        if len(password) < MIN_PASSWORD_LENGTH:
            return StrengthResult(False, "Password must be at least 6 characters long")
        if not (_LETTER.search(password) and _DIGIT.search(password)):
            return StrengthResult(
                False, "Password must contain at least one letter and one number"
            )
        return StrengthResult(True)

    if policy != STRICT:
        raise ValueError(f"Unknown password policy: {policy!r}")

    if not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
        return StrengthResult(False, "Password must be between 6 and 128 characters")
    if not (_LOWER.search(password) and _UPPER.search(password) and _DIGIT.search(password)):
        return StrengthResult(
            False,
            "Password must contain at least one lowercase letter, "
            "one uppercase letter, and one number",
        )
    return StrengthResult(True)

"""Single-use token record used by the reset and activation services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .user import utcnow


@dataclass
class TokenRecord:
    token: str = field(repr=False)
    subject_email: str
    expires_at: datetime
    subject_user_id: Optional[str] = None
    used: bool = False
    created_at: datetime = field(default_factory=utcnow)
    consumed_at: Optional[datetime] = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) > self.expires_at

"""Identity and account models used by the auth layer."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


@dataclass(frozen=True)
class Identity:
    """A verified caller, derived from a signed session token."""

    user_id: str
    email: str
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


@dataclass
class UserAccount:
    """In-memory representation of a row in the USER_ACCOUNT table."""

    id: str
    email: str
    display_name: str
    password_hash: bytes
    theme: Theme = Theme.SYSTEM
    created_at: float = field(default_factory=lambda: time.time())

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "theme": self.theme.value,
        }

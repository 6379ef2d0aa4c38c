"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these classes only own the domain shape.

Layer rule: no imports from api/ or posts/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)


@dataclass
class User:
    """A registered identity.

    hashed_password is the bcrypt digest. It is loaded so login can verify
    against it, but API response models never include it.
    """

    username: str
    email: str
    role: str = ROLE_USER  # "admin" | "user"
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, verified payload of a session token."""

    user_id: int
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime
